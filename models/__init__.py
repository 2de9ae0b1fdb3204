"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.closet_item import ClosetItem
from models.event import Event, SelectedOutfit
from models.recommendation import (
    AlternativesOutfit,
    CategoryItems,
    LegacyOutfit,
    OutfitItem,
    Recommendation,
    outfit_from_document,
)
from models.shopping import ShoppingFilters, ShoppingItem, ShoppingStats
from models.user_profile import UserProfile

__all__ = [
    "AlternativesOutfit",
    "CategoryItems",
    "ClosetItem",
    "Event",
    "LegacyOutfit",
    "OutfitItem",
    "Recommendation",
    "SelectedOutfit",
    "ShoppingFilters",
    "ShoppingItem",
    "ShoppingStats",
    "UserProfile",
    "outfit_from_document",
]
