"""Vision analysis of closet photos.

The model call is raced against a fixed deadline. On timeout only the caller
stops waiting: the worker thread keeps the HTTP request open until the
provider answers, and its result is discarded.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from logic.prompt_builder import ANALYSIS_KEYS, build_item_analysis_prompt
from logic.recommendation_mapping import coerce_string_list, coerce_text
from logic.response_parsing import parse_model_json
from logic.safety import validate_image_url
from memory.usage_ledger import AIOperationType, UsageLedger
from stylist_app.errors import AnalysisTimeoutError, ResponseParseError
from stylist_app.logging_config import get_logger, log_event
from tools.llm_gateway import LLMGateway, estimate_tokens, safe_estimate_cost

LOGGER = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_TOKENS = 2000
_LIST_KEYS = {"color", "style", "occasion", "season", "keyFeatures"}


def unconfigured_placeholder() -> Dict[str, Any]:
    return {
        "category": "dress",
        "subcategory": "",
        "color": [],
        "style": [],
        "pattern": "",
        "occasion": [],
        "season": [],
        "keyFeatures": [],
    }


def unparseable_placeholder() -> Dict[str, Any]:
    return {
        "category": "dress",
        "subcategory": "",
        "color": ["unknown"],
        "style": ["casual"],
        "pattern": "solid",
        "occasion": ["casual"],
        "season": ["all-season"],
        "keyFeatures": [],
    }


def normalize_analysis(raw: Any) -> Dict[str, Any]:
    """Keep exactly the analysis keys, coercing lists and strings."""

    data = raw if isinstance(raw, dict) else {}
    normalized: Dict[str, Any] = {}
    for key in ANALYSIS_KEYS:
        value = data.get(key)
        normalized[key] = coerce_string_list(value) if key in _LIST_KEYS else coerce_text(value)
    normalized["category"] = normalized["category"].strip().lower() or "dress"
    return normalized


@dataclass
class AnalysisResult:
    analysis: Dict[str, Any]
    note: Optional[str] = None
    usage: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": True, "analysis": self.analysis}
        if self.note:
            payload["note"] = self.note
        if self.usage:
            payload["usage"] = self.usage
        return payload


class ClosetAnalyzer:
    """Classifies a closet photo into the fixed analysis keys."""

    def __init__(
        self,
        gateway: LLMGateway,
        allowed_image_hosts: Sequence[str],
        usage_ledger: Optional[UsageLedger] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.gateway = gateway
        self.allowed_image_hosts: List[str] = list(allowed_image_hosts)
        self.usage_ledger = usage_ledger
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        # Long-lived so a timed-out call never blocks shutdown of a per-request pool.
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="closet-analysis")

    def analyze(self, user_id: str, image_url: str) -> AnalysisResult:
        validate_image_url(image_url, self.allowed_image_hosts)
        if not self.gateway.is_configured:
            log_event(LOGGER, logging.WARNING, "closet_analysis_unconfigured", user_id=user_id)
            return AnalysisResult(
                analysis=unconfigured_placeholder(),
                note="AI analysis unavailable, using placeholder",
            )

        prompt = build_item_analysis_prompt()
        model = self.gateway.default_model
        input_tokens = estimate_tokens(prompt)
        future = self.executor.submit(
            self.gateway.send_message_with_images,
            prompt,
            [image_url],
            model=model,
            max_tokens=self.max_tokens,
        )
        try:
            response_text = future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError as exc:
            log_event(
                LOGGER,
                logging.ERROR,
                "closet_analysis_timed_out",
                user_id=user_id,
                timeout_seconds=self.timeout_seconds,
            )
            self._track(user_id, model, input_tokens, 0, success=False, error_message="timeout")
            raise AnalysisTimeoutError() from exc
        except Exception as exc:
            self._track(user_id, model, input_tokens, 0, success=False, error_message=type(exc).__name__)
            raise

        output_tokens = estimate_tokens(response_text)
        self._track(user_id, model, input_tokens, output_tokens, success=True)
        usage = {
            "tokensUsed": input_tokens + output_tokens,
            "estimatedCost": safe_estimate_cost(input_tokens, output_tokens, model),
        }
        try:
            parsed = parse_model_json(response_text)
        except ResponseParseError:
            return AnalysisResult(
                analysis=unparseable_placeholder(),
                note="AI analysis failed, using placeholder",
                usage=usage,
            )
        return AnalysisResult(analysis=normalize_analysis(parsed), usage=usage)

    def _track(
        self,
        user_id: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        success: bool,
        error_message: Optional[str] = None,
    ) -> None:
        if self.usage_ledger is None:
            return
        self.usage_ledger.track_api_usage(
            user_id=user_id,
            operation_type=AIOperationType.CLOSET_ANALYSIS,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_cost=safe_estimate_cost(input_tokens, output_tokens, model),
            model=model,
            success=success,
            error_message=error_message,
        )


__all__ = [
    "AnalysisResult",
    "ClosetAnalyzer",
    "normalize_analysis",
    "unconfigured_placeholder",
    "unparseable_placeholder",
]
