"""Assemble a user's shopping dashboard from their events and recommendations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from logic.shopping_filters import (
    apply_filters,
    calculate_stats,
    get_event_summaries,
    get_unique_retailers,
    group_by_retailer,
    sort_items,
)
from logic.shopping_items import extract_shopping_items
from logic.validation import ShoppingQuery
from memory.repositories import EventRepository, RecommendationRepository
from models.shopping import ShoppingItem
from stylist_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)


class ShoppingAssistant:
    def __init__(self, events: EventRepository, recommendations: RecommendationRepository) -> None:
        self.events = events
        self.recommendations = recommendations

    def collect_items(self, user_id: str, now: Optional[datetime] = None) -> List[ShoppingItem]:
        """Every shopping item across the user's events that have recommendations."""

        items: List[ShoppingItem] = []
        for event in self.events.list_for_user(user_id):
            if not event.recommendation_ids:
                continue
            wanted = set(event.recommendation_ids)
            for recommendation in self.recommendations.list_for_event(event.id or ""):
                # Stale documents from earlier runs stay in the collection.
                if recommendation.id not in wanted:
                    continue
                items.extend(extract_shopping_items(recommendation, event, now=now))
        return items

    def build_shopping_list(
        self,
        user_id: str,
        query: Optional[ShoppingQuery] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        query = query or ShoppingQuery()
        collected = self.collect_items(user_id, now=now)
        filtered = sort_items(apply_filters(collected, query.to_filters()), query.sort_by)
        log_event(
            LOGGER,
            logging.INFO,
            "shopping_list_built",
            user_id=user_id,
            collected=len(collected),
            returned=len(filtered),
        )
        return {
            "items": [item.to_dict() for item in filtered],
            "stats": calculate_stats(filtered).to_dict(),
            "retailers": get_unique_retailers(collected),
            "retailerGroups": [group.to_dict() for group in group_by_retailer(filtered)],
            "eventSummaries": [summary.to_dict() for summary in get_event_summaries(filtered)],
        }


__all__ = ["ShoppingAssistant"]
