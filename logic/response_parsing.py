"""Turn the model's JSON-ish text into Python structures."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List

from stylist_app.errors import ResponseParseError
from stylist_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

RAW_EXCERPT_LENGTH = 500
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Return the body of the first ```json / ``` fenced block, or the trimmed text."""

    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    return cleaned.strip()


def _outermost_json(text: str) -> str | None:
    starts = [index for index in (text.find("["), text.find("{")) if index != -1]
    if not starts:
        return None
    start = min(starts)
    end = text.rfind("]" if text[start] == "[" else "}")
    return text[start : end + 1] if end > start else None


def parse_model_json(text: str) -> Any:
    """Parse model output after fence stripping; raise ``ResponseParseError`` on failure.

    When the cleaned text is not JSON on its own (for example a sentence of
    preamble before the payload), the outermost bracketed span is tried once.
    """

    cleaned = strip_code_fences(text or "")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        candidate = _outermost_json(cleaned)
        if candidate is not None:
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                pass
        log_event(
            LOGGER,
            logging.ERROR,
            "llm_response_parse_failed",
            error=str(exc),
            raw_excerpt=(text or "")[:RAW_EXCERPT_LENGTH],
        )
        raise ResponseParseError() from exc


def normalize_outfits(payload: Any) -> List[Dict[str, Any]]:
    """Accept a bare array, ``{"recommendations": [...]}`` or a single outfit object."""

    if isinstance(payload, dict) and isinstance(payload.get("recommendations"), list):
        outfits = payload["recommendations"]
    elif isinstance(payload, list):
        outfits = payload
    elif isinstance(payload, dict):
        outfits = [payload]
    else:
        log_event(LOGGER, logging.ERROR, "llm_response_unexpected_shape", payload_type=type(payload).__name__)
        raise ResponseParseError()

    dicts = [outfit for outfit in outfits if isinstance(outfit, dict)]
    if not dicts:
        log_event(LOGGER, logging.ERROR, "llm_response_without_outfits", entries=len(outfits))
        raise ResponseParseError()
    return dicts


def parse_outfits(text: str) -> List[Dict[str, Any]]:
    return normalize_outfits(parse_model_json(text))


__all__ = ["normalize_outfits", "parse_model_json", "parse_outfits", "strip_code_fences"]
