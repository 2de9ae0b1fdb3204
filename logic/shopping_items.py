"""Project persisted recommendations into flat shopping items."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from models.event import Event, SelectedOutfit
from models.recommendation import AlternativesOutfit, LegacyOutfit, Recommendation
from models.shopping import ShoppingItem
from models.taxonomy import DRESS_MODE_EXCLUDED, SEPARATES_MODE_EXCLUDED
from stylist_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

URGENT_WINDOW_DAYS = 7
_SECONDS_PER_DAY = 86400


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def days_until(event_date: datetime, now: Optional[datetime] = None) -> int:
    """Whole days until the event, rounded up; zero or negative once it has started."""

    current = _as_utc(now or datetime.now(timezone.utc))
    delta = _as_utc(event_date) - current
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def is_urgent(days_until_event: int) -> bool:
    return 0 < days_until_event <= URGENT_WINDOW_DAYS


def excluded_categories(mode: str) -> set:
    if mode == "separates":
        return SEPARATES_MODE_EXCLUDED
    if mode == "dress":
        return DRESS_MODE_EXCLUDED
    return set()


def _selection_for(recommendation: Recommendation, event: Event) -> Optional[SelectedOutfit]:
    selected = event.selected_outfit
    if selected and selected.recommendation_id == recommendation.id:
        return selected
    return None


def _alternatives_items(outfit: AlternativesOutfit, selection: Optional[SelectedOutfit]) -> List[tuple]:
    if selection is None:
        return [(entry.category, 0, entry.primary) for entry in outfit.items]

    skipped = excluded_categories(selection.mode)
    chosen = []
    for entry in outfit.items:
        if entry.category in skipped:
            continue
        options = entry.options()
        index = selection.selected_alternatives.get(entry.category, 0)
        if not 0 <= index < len(options):
            log_event(
                LOGGER,
                logging.WARNING,
                "selected_alternative_out_of_range",
                category=entry.category,
                index=index,
                options=len(options),
            )
            index = 0
        chosen.append((entry.category, index, options[index]))
    return chosen


def _legacy_items(outfit: LegacyOutfit) -> List[tuple]:
    items: List[tuple] = []
    for category, item in (("dress", outfit.dress), ("shoes", outfit.shoes), ("bags", outfit.bag)):
        if item is not None:
            items.append((category, 0, item))
    for index, piece in enumerate(outfit.jewelry.items):
        items.append(("jewelry", index, piece))
    if outfit.outerwear is not None:
        items.append(("outerwear", 0, outfit.outerwear))
    return items


def extract_shopping_items(
    recommendation: Recommendation,
    event: Event,
    now: Optional[datetime] = None,
) -> List[ShoppingItem]:
    """Flatten one recommendation into shopping items for its event.

    Current-shape outfits emit the primary of every category until the user
    selects an outfit; after that only the chosen alternatives of the
    categories allowed by the dress/separates mode are emitted.
    """

    outfit = recommendation.outfit
    if isinstance(outfit, AlternativesOutfit):
        entries = _alternatives_items(outfit, _selection_for(recommendation, event))
    else:
        entries = _legacy_items(outfit)

    remaining = days_until(event.date_time, now)
    urgent = is_urgent(remaining)
    shopping_items = []
    for category, index, item in entries:
        shopping_items.append(
            ShoppingItem(
                item=item,
                category=category,
                item_index=index,
                event_id=event.id or recommendation.event_id,
                event_type=event.event_type,
                event_date=_as_utc(event.date_time),
                dress_code=event.dress_code,
                recommendation_id=recommendation.id or "",
                days_until_event=remaining,
                is_urgent=urgent,
                shipping_deadline=event.shipping_deadline,
            )
        )
    return shopping_items


def selection_total(recommendation: Recommendation, selection: SelectedOutfit) -> float:
    """Price of the items a selection resolves to (legacy outfits: every slot)."""

    outfit = recommendation.outfit
    if isinstance(outfit, AlternativesOutfit):
        entries = _alternatives_items(outfit, selection)
    else:
        entries = _legacy_items(outfit)
    return sum((item.price or 0) for _, _, item in entries)


__all__ = [
    "URGENT_WINDOW_DAYS",
    "days_until",
    "excluded_categories",
    "extract_shopping_items",
    "is_urgent",
    "selection_total",
]
