"""AI usage records and the per-user monthly cost ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from memory.repositories import utc_now
from stylist_app.logging_config import get_logger, log_event
from tools.document_store import DocumentStore

LOGGER = get_logger(__name__)

API_USAGE = "api_usage"
MONTHLY_USAGE = "monthly_usage"


class AIOperationType(str, Enum):
    OUTFIT_RECOMMENDATION = "outfit_recommendation"
    CLOSET_ANALYSIS = "closet_analysis"
    STYLE_ADVICE = "style_advice"


@dataclass(frozen=True)
class CostCheck:
    exceeded: bool
    current_cost: float
    threshold: float

    def to_dict(self) -> Dict[str, Any]:
        return {"exceeded": self.exceeded, "currentCost": self.current_cost, "threshold": self.threshold}


def month_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def _empty_summary(user_id: str, month: str) -> Dict[str, Any]:
    return {
        "userId": user_id,
        "month": month,
        "totalRequests": 0,
        "successfulRequests": 0,
        "failedRequests": 0,
        "totalInputTokens": 0,
        "totalOutputTokens": 0,
        "totalTokens": 0,
        "estimatedCost": 0.0,
        "operationBreakdown": {},
    }


class UsageLedger:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock

    def _summary_id(self, user_id: str, moment: Optional[datetime] = None) -> str:
        return f"{user_id}_{month_key(moment or self.clock())}"

    def track_api_usage(
        self,
        user_id: str,
        operation_type: AIOperationType,
        input_tokens: int,
        output_tokens: int,
        estimated_cost: float,
        model: str,
        success: bool,
        error_message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record one AI call; failures here are logged and never raised."""

        now = self.clock()
        operation = AIOperationType(operation_type).value
        total_tokens = input_tokens + output_tokens
        record: Dict[str, Any] = {
            "userId": user_id,
            "operationType": operation,
            "timestamp": now,
            "inputTokens": input_tokens,
            "outputTokens": output_tokens,
            "totalTokens": total_tokens,
            "estimatedCost": estimated_cost,
            "model": model,
            "success": success,
        }
        if error_message:
            record["errorMessage"] = error_message
        if metadata:
            record["metadata"] = metadata

        def _accumulate(current: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], None]:
            summary = current or _empty_summary(user_id, month_key(now))
            summary.pop("id", None)
            summary["totalRequests"] += 1
            summary["successfulRequests" if success else "failedRequests"] += 1
            summary["totalInputTokens"] += input_tokens
            summary["totalOutputTokens"] += output_tokens
            summary["totalTokens"] += total_tokens
            summary["estimatedCost"] += estimated_cost
            breakdown = summary.setdefault("operationBreakdown", {})
            entry = breakdown.setdefault(operation, {"count": 0, "tokens": 0, "cost": 0.0})
            entry["count"] += 1
            entry["tokens"] += total_tokens
            entry["cost"] += estimated_cost
            summary["lastUpdated"] = now
            return summary, None

        try:
            self.store.add(API_USAGE, record)
            self.store.run_transaction(MONTHLY_USAGE, self._summary_id(user_id, now), _accumulate)
        except Exception:
            log_event(
                LOGGER,
                logging.ERROR,
                "usage_tracking_failed",
                user_id=user_id,
                operation=operation,
                exc_info=True,
            )

    def get_current_month_usage(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(MONTHLY_USAGE, self._summary_id(user_id))

    def check_cost_threshold(self, user_id: str, threshold_usd: float) -> CostCheck:
        """Compare this month's spend with ``threshold_usd``; store errors read as zero spend."""

        try:
            summary = self.get_current_month_usage(user_id)
        except Exception:
            log_event(LOGGER, logging.ERROR, "cost_threshold_check_failed", user_id=user_id, exc_info=True)
            summary = None
        current_cost = float(summary.get("estimatedCost", 0.0)) if summary else 0.0
        return CostCheck(exceeded=current_cost >= threshold_usd, current_cost=current_cost, threshold=threshold_usd)

    def get_usage_history(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        return self.store.query(API_USAGE, [("userId", user_id)], order_by="timestamp", descending=True, limit=limit)


__all__ = [
    "API_USAGE",
    "MONTHLY_USAGE",
    "AIOperationType",
    "CostCheck",
    "UsageLedger",
    "month_key",
]
