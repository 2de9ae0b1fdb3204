"""Recommendation generation pipeline.

Event status transitions::

    planning -> generating-recommendations -> recommendations-ready
                generating-recommendations -> planning   (any failure)

The status flip to ``generating-recommendations`` is written before the model
is called; from that point every failure rolls the event back to
``planning``. Two runs for the same event are not mutually excluded.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from logic.closet_filtering import select_closet_items
from logic.prompt_builder import build_recommendation_prompt
from logic.recommendation_mapping import map_recommendation
from logic.response_parsing import parse_outfits
from memory.repositories import ClosetRepository, EventRepository, RecommendationRepository
from memory.usage_ledger import AIOperationType, UsageLedger
from memory.user_profile import UserProfileService
from models.taxonomy import EventStatus
from stylist_app.errors import NotFoundError, StylistError
from stylist_app.logging_config import get_logger, log_event, operation_context
from tools.llm_gateway import LLMGateway, estimate_tokens, safe_estimate_cost

LOGGER = get_logger(__name__)

DEFAULT_MAX_TOKENS = 8000


@dataclass(frozen=True)
class GenerationResult:
    recommendation_ids: List[str]
    tokens_used: int
    estimated_cost: float

    def to_dict(self) -> dict:
        return {
            "success": True,
            "recommendationIds": list(self.recommendation_ids),
            "count": len(self.recommendation_ids),
            "usage": {"tokensUsed": self.tokens_used, "estimatedCost": self.estimated_cost},
        }


class RecommendationGenerator:
    """Runs fetch -> status flip -> filter -> prompt -> model -> parse -> persist -> finalize."""

    def __init__(
        self,
        events: EventRepository,
        profiles: UserProfileService,
        closet: ClosetRepository,
        recommendations: RecommendationRepository,
        gateway: LLMGateway,
        usage_ledger: Optional[UsageLedger] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self.events = events
        self.profiles = profiles
        self.closet = closet
        self.recommendations = recommendations
        self.gateway = gateway
        self.usage_ledger = usage_ledger
        self.max_tokens = max_tokens

    def generate(self, user_id: str, event_id: str) -> GenerationResult:
        with operation_context("generate_recommendations", event_id=event_id):
            with ThreadPoolExecutor(max_workers=3) as pool:
                event_future = pool.submit(self.events.get, event_id)
                profile_future = pool.submit(self.profiles.get_profile, user_id)
                closet_future = pool.submit(self.closet.list_for_user, user_id)
                event = event_future.result()
                profile = profile_future.result()
                closet_items = closet_future.result()

            if event is None or event.user_id != user_id:
                raise NotFoundError("Event not found")
            if profile is None:
                raise NotFoundError("User profile not found")

            self.events.set_status(event_id, EventStatus.GENERATING)
            log_event(LOGGER, logging.INFO, "generation_started", event_id=event_id, closet_size=len(closet_items))

            model = self.gateway.default_model
            input_tokens = 0
            output_tokens = 0
            try:
                filtered = select_closet_items(event, closet_items)
                prompt = build_recommendation_prompt(event, profile, filtered.items, products=[])
                input_tokens = estimate_tokens(prompt)

                response_text = self.gateway.send_message(prompt, model=model, max_tokens=self.max_tokens)
                output_tokens = estimate_tokens(response_text)

                outfits = parse_outfits(response_text)
                mapped = [map_recommendation(outfit, event_id=event_id, user_id=user_id) for outfit in outfits]
                recommendation_ids = [self.recommendations.create(recommendation) for recommendation in mapped]

                self.events.set_status(
                    event_id,
                    EventStatus.READY,
                    recommendationsGenerated=True,
                    recommendationIds=recommendation_ids,
                )
            except Exception as exc:
                self._rollback(event_id)
                self._track(user_id, model, input_tokens, output_tokens, success=False, error=exc)
                raise

            cost = safe_estimate_cost(input_tokens, output_tokens, model)
            self._track(user_id, model, input_tokens, output_tokens, success=True, event_id=event_id)
            log_event(
                LOGGER,
                logging.INFO,
                "generation_completed",
                event_id=event_id,
                recommendations=len(recommendation_ids),
                removed_closet_items=len(filtered.removed),
            )
            return GenerationResult(
                recommendation_ids=recommendation_ids,
                tokens_used=input_tokens + output_tokens,
                estimated_cost=cost,
            )

    def _rollback(self, event_id: str) -> None:
        try:
            self.events.set_status(event_id, EventStatus.PLANNING)
        except Exception:
            log_event(LOGGER, logging.ERROR, "generation_rollback_failed", event_id=event_id, exc_info=True)

    def _track(
        self,
        user_id: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        success: bool,
        error: Optional[Exception] = None,
        event_id: Optional[str] = None,
    ) -> None:
        if self.usage_ledger is None:
            return
        cost = safe_estimate_cost(input_tokens, output_tokens, model)
        message = None
        if error is not None:
            message = error.message if isinstance(error, StylistError) else type(error).__name__
        self.usage_ledger.track_api_usage(
            user_id=user_id,
            operation_type=AIOperationType.OUTFIT_RECOMMENDATION,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_cost=cost,
            model=model,
            success=success,
            error_message=message,
            metadata={"eventId": event_id} if event_id else None,
        )


__all__ = ["DEFAULT_MAX_TOKENS", "GenerationResult", "RecommendationGenerator"]
