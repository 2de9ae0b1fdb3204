"""Pydantic schemas for HTTP request bodies and queries."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from models.shopping import ShoppingFilters
from models.taxonomy import ITEM_CATEGORIES, PURCHASE_STATUSES, SortKey, validate_closet_category
from stylist_app.errors import RequestValidationError

M = TypeVar("M", bound=BaseModel)


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class GenerateRecommendationsRequest(RequestModel):
    event_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    preferences: Optional[Dict[str, Any]] = None


class AnalyzeClosetItemRequest(RequestModel):
    image_url: str = Field(min_length=1, max_length=2048)
    item_id: Optional[str] = None


class CreateProfileRequest(RequestModel):
    email: Optional[str] = Field(default=None, max_length=320)
    display_name: Optional[str] = Field(default=None, max_length=200)
    photo_url: Optional[str] = Field(default=None, alias="photoURL", max_length=2048)


class ResetEventRequest(RequestModel):
    event_id: str = Field(min_length=1)


class SelectOutfitRequest(RequestModel):
    recommendation_id: str = Field(min_length=1)
    mode: Literal["dress", "separates"] = "dress"
    selected_alternatives: Dict[str, int] = Field(default_factory=dict)

    @field_validator("selected_alternatives")
    @classmethod
    def _validate_indexes(cls, value: Dict[str, int]) -> Dict[str, int]:
        for category, index in value.items():
            if category not in ITEM_CATEGORIES:
                raise ValueError(f"unknown category {category}")
            if index < 0:
                raise ValueError("alternative indexes must be >= 0")
        return value


class ClosetUploadRequest(RequestModel):
    category: str
    image_base64: str = Field(min_length=1)
    content_type: str = "image/jpeg"
    filename: str = Field(default="photo.jpg", min_length=1, max_length=200)
    subcategory: str = Field(default="", max_length=100)
    brand: Optional[str] = Field(default=None, max_length=100)
    price: Optional[float] = Field(default=None, ge=0)
    retailer: Optional[str] = Field(default=None, max_length=100)
    refuse_to_rewear: bool = False
    prefer_to_rewear: bool = False

    @field_validator("category")
    @classmethod
    def _validate_category(cls, value: str) -> str:
        return validate_closet_category(value)


class ShoppingQuery(RequestModel):
    sort_by: SortKey = SortKey.EVENT_DATE_ASC
    event_ids: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    statuses: Optional[List[str]] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    retailers: Optional[List[str]] = None
    urgent_only: bool = False
    closet_items_only: bool = False
    purchase_items_only: bool = False

    @field_validator("statuses")
    @classmethod
    def _validate_statuses(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        for status in value or []:
            if status not in PURCHASE_STATUSES:
                raise ValueError(f"unknown purchase status {status}")
        return value

    def to_filters(self) -> ShoppingFilters:
        def as_set(values: Optional[List[str]]) -> Optional[set]:
            return set(values) if values else None

        return ShoppingFilters(
            event_ids=as_set(self.event_ids),
            categories=as_set(self.categories),
            statuses=as_set(self.statuses),
            min_price=self.min_price,
            max_price=self.max_price,
            retailers=as_set(self.retailers),
            urgent_only=self.urgent_only,
            closet_items_only=self.closet_items_only,
            purchase_items_only=self.purchase_items_only,
        )


def validation_details(exc: ValidationError) -> List[Dict[str, Any]]:
    """Field-level error detail safe to return to clients."""

    return exc.errors(include_url=False, include_context=False, include_input=False)


def parse_request(model: Type[M], payload: Dict[str, Any]) -> M:
    """Validate ``payload`` or raise a 400-mapped ``RequestValidationError``."""

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError("Validation failed", details=validation_details(exc)) from exc


__all__ = [
    "AnalyzeClosetItemRequest",
    "ClosetUploadRequest",
    "CreateProfileRequest",
    "GenerateRecommendationsRequest",
    "ResetEventRequest",
    "SelectOutfitRequest",
    "ShoppingQuery",
    "parse_request",
    "validation_details",
]
