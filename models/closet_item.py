"""Closet item document model."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.document import DocumentModel


class ClosetImages(DocumentModel):
    original: str = ""
    thumbnail: str = ""
    processed: str = ""


class ItemAnalysis(DocumentModel):
    """Vision-derived tags; key names match the analysis prompt's JSON shape."""

    category: str = ""
    subcategory: str = ""
    color: List[str] = Field(default_factory=list)
    style: List[str] = Field(default_factory=list)
    pattern: str = ""
    occasion: List[str] = Field(default_factory=list)
    season: List[str] = Field(default_factory=list)
    key_features: List[str] = Field(default_factory=list)


class ClosetTags(DocumentModel):
    refuse_to_rewear: bool = False
    prefer_to_rewear: bool = False


class ClosetItem(DocumentModel):
    id: Optional[str] = None
    user_id: str
    category: str
    subcategory: str = ""
    brand: Optional[str] = None
    price: Optional[float] = None
    retailer: Optional[str] = None
    images: ClosetImages = Field(default_factory=ClosetImages)
    ai_analysis: ItemAnalysis = Field(default_factory=ItemAnalysis)
    tags: ClosetTags = Field(default_factory=ClosetTags)
    favorite: bool = False
    worn_count: int = 0
    last_worn: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = ["ClosetItem", "ClosetImages", "ItemAnalysis", "ClosetTags"]
