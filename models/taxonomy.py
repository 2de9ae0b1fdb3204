"""Canonical labels for closet categories, shopping categories and statuses.

Helper functions keep validation consistent between the mapping layer, the
shopping utilities and the HTTP request schemas.
"""

from enum import Enum
from typing import List


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a taxonomy key."""

    return value.strip().lower().replace(" ", "-")


CLOSET_CATEGORIES: List[str] = ["dress", "shoes", "bag", "outerwear", "jewelry"]

ITEM_CATEGORIES: List[str] = [
    "dress",
    "tops",
    "bottoms",
    "jackets",
    "shoes",
    "bags",
    "jewelry",
    "accessories",
    "outerwear",
]

# Categories dropped by the dress/separates selection modes.
DRESS_MODE_EXCLUDED = {"tops", "bottoms"}
SEPARATES_MODE_EXCLUDED = {"dress"}

PURCHASE_STATUSES: List[str] = ["unpurchased", "in-cart", "purchased", "skipped"]


class EventStatus(str, Enum):
    PLANNING = "planning"
    GENERATING = "generating-recommendations"
    READY = "recommendations-ready"
    OUTFIT_SELECTED = "outfit-selected"
    COMPLETED = "completed"


class SortKey(str, Enum):
    EVENT_DATE_ASC = "event-date-asc"
    EVENT_DATE_DESC = "event-date-desc"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    CATEGORY = "category"
    RETAILER = "retailer"
    STATUS = "status"


def validate_closet_category(category: str) -> str:
    """Return the canonical closet category or raise ``ValueError``."""

    key = _normalize_key(category)
    if key not in CLOSET_CATEGORIES:
        raise ValueError(f"Unknown closet category: {category}")
    return key


def normalize_item_category(category: object, default: str = "accessories") -> str:
    """Map a model-provided category label onto the shopping categories."""

    if not isinstance(category, str) or not category.strip():
        return default
    key = _normalize_key(category)
    if key in ITEM_CATEGORIES:
        return key
    aliases = {"bag": "bags", "top": "tops", "bottom": "bottoms", "jacket": "jackets", "accessory": "accessories"}
    return aliases.get(key, default)


__all__ = [
    "CLOSET_CATEGORIES",
    "ITEM_CATEGORIES",
    "DRESS_MODE_EXCLUDED",
    "SEPARATES_MODE_EXCLUDED",
    "PURCHASE_STATUSES",
    "EventStatus",
    "SortKey",
    "validate_closet_category",
    "normalize_item_category",
]
