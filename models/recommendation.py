"""Recommendation document model.

Two outfit shapes coexist in stored documents: the legacy fixed-slot outfit
(dress, shoes, bag, jewelry set, optional outerwear) and the current
per-category outfit where each entry holds a primary pick plus ranked
alternatives. ``outfit_from_document`` discriminates on a non-empty ``items``
list so callers dispatch on the model type instead of probing fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator

from models.document import DocumentModel


class OutfitItem(DocumentModel):
    is_closet_item: bool = False
    closet_item_id: Optional[str] = None
    product_name: str = "Item"
    image_url: str = ""
    price: Optional[float] = 0
    product_link: Optional[str] = None
    retailer: Optional[str] = None
    description: Optional[str] = None


class CategoryItems(DocumentModel):
    """One category entry; ``options()[0]`` is always the primary pick."""

    category: str
    primary: OutfitItem
    alternatives: List[OutfitItem] = Field(default_factory=list)
    reason: str = ""

    def options(self) -> List[OutfitItem]:
        return [self.primary, *self.alternatives]


class AlternativesOutfit(DocumentModel):
    items: List[CategoryItems]
    has_dress_option: bool = False
    has_separates_option: bool = False


class JewelrySet(DocumentModel):
    items: List[OutfitItem] = Field(default_factory=list)


class LegacyOutfit(DocumentModel):
    dress: Optional[OutfitItem] = None
    shoes: Optional[OutfitItem] = None
    bag: Optional[OutfitItem] = None
    jewelry: JewelrySet = Field(default_factory=JewelrySet)
    outerwear: Optional[OutfitItem] = None


Outfit = Union[LegacyOutfit, AlternativesOutfit]


def outfit_from_document(raw: Any) -> Outfit:
    """Pick the outfit shape from a stored payload."""

    if isinstance(raw, (LegacyOutfit, AlternativesOutfit)):
        return raw
    payload = raw or {}
    if payload.get("items"):
        return AlternativesOutfit.model_validate(payload)
    return LegacyOutfit.model_validate(payload)


class AIReasoning(DocumentModel):
    flattery_notes: List[str] = Field(default_factory=list)
    dress_code_fit: str = ""
    style_match: str = ""
    weather_appropriate: str = ""
    confidence_score: float = 75


class Pricing(DocumentModel):
    total_price: Optional[float] = None
    primary_total: Optional[float] = None
    min_total: Optional[float] = None
    max_total: Optional[float] = None
    dynamic_breakdown: Optional[Dict[str, float]] = None


class Recommendation(DocumentModel):
    id: Optional[str] = None
    event_id: str
    user_id: str
    outfit: Outfit
    ai_reasoning: AIReasoning = Field(default_factory=AIReasoning)
    pricing: Pricing = Field(default_factory=Pricing)
    generation_method: str = "ai-full"
    version: int = 1
    created_at: Optional[datetime] = None

    @field_validator("outfit", mode="before")
    @classmethod
    def _discriminate_outfit(cls, value: Any) -> Outfit:
        return outfit_from_document(value)

    @property
    def is_current_shape(self) -> bool:
        return isinstance(self.outfit, AlternativesOutfit)


__all__ = [
    "OutfitItem",
    "CategoryItems",
    "AlternativesOutfit",
    "JewelrySet",
    "LegacyOutfit",
    "Outfit",
    "outfit_from_document",
    "AIReasoning",
    "Pricing",
    "Recommendation",
]
