"""Single choke point for calls to the Anthropic Messages API.

The gateway has no timeout or retry of its own; callers that need a deadline
race the call themselves (see ``agents.closet_analyzer``).
"""

from __future__ import annotations

import base64
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import anthropic
import requests

from stylist_app.errors import LLMRequestError
from stylist_app.logging_config import get_logger, log_event
from tools.observability import instrument_call

LOGGER = get_logger(__name__)

SONNET = "claude-3-7-sonnet-20250219"
OPUS = "claude-opus-4-5-20251101"

# USD per million tokens.
MODEL_PRICING: Dict[str, Dict[str, float]] = {
    SONNET: {"input": 3.0, "output": 15.0},
    OPUS: {"input": 15.0, "output": 75.0},
}


def estimate_tokens(text: str) -> int:
    """Rough token count (characters / 4, rounded up) for usage accounting only."""

    return math.ceil(len(text) / 4)


def estimate_cost(input_tokens: int, output_tokens: int, model: str = SONNET) -> float:
    """Return the USD cost for a call using the static price table."""

    try:
        pricing = MODEL_PRICING[model]
    except KeyError as exc:
        raise ValueError(f"No pricing configured for model {model}") from exc
    return (input_tokens / 1_000_000) * pricing["input"] + (output_tokens / 1_000_000) * pricing["output"]


def safe_estimate_cost(input_tokens: int, output_tokens: int, model: str = SONNET) -> float:
    """Like ``estimate_cost`` but logs and returns 0.0 for unpriced models."""

    try:
        return estimate_cost(input_tokens, output_tokens, model)
    except ValueError:
        log_event(LOGGER, logging.WARNING, "model_pricing_missing", model=model)
        return 0.0


def _media_type(content_type: str) -> str:
    return "image/png" if "png" in content_type.lower() else "image/jpeg"


class LLMGateway:
    """Wraps text and image+text calls to the chat-completion provider."""

    def __init__(
        self,
        client: Any = None,
        api_key: Optional[str] = None,
        default_model: str = SONNET,
        image_timeout_seconds: float = 10.0,
    ) -> None:
        self._client = client
        self.api_key = api_key
        self.default_model = default_model
        self.image_timeout_seconds = image_timeout_seconds

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise LLMRequestError("AI service is not configured")
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    @instrument_call("llm.send_message")
    def send_message(self, prompt: str, model: Optional[str] = None, max_tokens: int = 4096) -> str:
        content = [{"type": "text", "text": prompt}]
        return self._create(content, model or self.default_model, max_tokens)

    @instrument_call("llm.send_message_with_images")
    def send_message_with_images(
        self,
        prompt: str,
        image_urls: Sequence[str],
        model: Optional[str] = None,
        max_tokens: int = 4096,
    ) -> str:
        # Any failed fetch aborts the whole call.
        blocks: List[Dict[str, Any]] = [self._fetch_image_block(url) for url in image_urls]
        blocks.append({"type": "text", "text": prompt})
        return self._create(blocks, model or self.default_model, max_tokens)

    def _fetch_image_block(self, url: str) -> Dict[str, Any]:
        try:
            response = requests.get(url, timeout=self.image_timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as exc:
            log_event(LOGGER, logging.ERROR, "llm_image_fetch_failed", error=str(exc))
            raise LLMRequestError() from exc
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": _media_type(response.headers.get("content-type", "")),
                "data": base64.b64encode(response.content).decode("ascii"),
            },
        }

    def _create(self, content: List[Dict[str, Any]], model: str, max_tokens: int) -> str:
        try:
            response = self.client.messages.create(
                model=model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIStatusError as exc:
            log_event(
                LOGGER,
                logging.ERROR,
                "llm_request_failed",
                model=model,
                status_code=exc.status_code,
                error=str(exc),
            )
            raise LLMRequestError() from exc
        except anthropic.APIError as exc:
            log_event(LOGGER, logging.ERROR, "llm_request_failed", model=model, error=str(exc))
            raise LLMRequestError() from exc

        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text
        log_event(LOGGER, logging.ERROR, "llm_response_without_text", model=model)
        raise LLMRequestError()


__all__ = [
    "LLMGateway",
    "MODEL_PRICING",
    "OPUS",
    "SONNET",
    "estimate_cost",
    "estimate_tokens",
    "safe_estimate_cost",
]
