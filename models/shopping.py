"""Derived shopping dashboard types; none of these are persisted."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from models.recommendation import OutfitItem


@dataclass
class ShoppingItem:
    """One outfit item projected into the context of its event."""

    item: OutfitItem
    category: str
    item_index: int
    event_id: str
    event_type: str
    event_date: datetime
    dress_code: str
    recommendation_id: str
    days_until_event: int
    is_urgent: bool
    purchase_status: str = "unpurchased"
    shipping_deadline: Optional[datetime] = None

    @property
    def price(self) -> float:
        return self.item.price or 0

    @property
    def retailer(self) -> Optional[str]:
        return self.item.retailer

    @property
    def is_closet_item(self) -> bool:
        return self.item.is_closet_item

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.item.model_dump(by_alias=True, exclude_none=True),
            "category": self.category,
            "itemIndex": self.item_index,
            "eventId": self.event_id,
            "eventType": self.event_type,
            "eventDate": self.event_date.isoformat(),
            "dressCode": self.dress_code,
            "recommendationId": self.recommendation_id,
            "daysUntilEvent": self.days_until_event,
            "isUrgent": self.is_urgent,
            "purchaseStatus": self.purchase_status,
            "shippingDeadline": self.shipping_deadline.isoformat() if self.shipping_deadline else None,
        }


@dataclass
class ShoppingFilters:
    """Independent predicates; ``None`` means the dimension is not filtered."""

    event_ids: Optional[Set[str]] = None
    categories: Optional[Set[str]] = None
    statuses: Optional[Set[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    retailers: Optional[Set[str]] = None
    urgent_only: bool = False
    closet_items_only: bool = False
    purchase_items_only: bool = False


@dataclass
class ShoppingStats:
    total_items: int = 0
    unpurchased_count: int = 0
    in_cart_count: int = 0
    purchased_count: int = 0
    skipped_count: int = 0
    total_estimated_cost: float = 0.0
    total_actual_cost: float = 0.0
    remaining_budget: float = 0.0
    upcoming_events_count: int = 0
    urgent_items_count: int = 0
    items_by_category: Dict[str, int] = field(default_factory=dict)
    items_by_retailer: Dict[str, int] = field(default_factory=dict)
    items_by_event: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalItems": self.total_items,
            "unpurchasedCount": self.unpurchased_count,
            "inCartCount": self.in_cart_count,
            "purchasedCount": self.purchased_count,
            "skippedCount": self.skipped_count,
            "totalEstimatedCost": self.total_estimated_cost,
            "totalActualCost": self.total_actual_cost,
            "remainingBudget": self.remaining_budget,
            "upcomingEventsCount": self.upcoming_events_count,
            "urgentItemsCount": self.urgent_items_count,
            "itemsByCategory": dict(self.items_by_category),
            "itemsByRetailer": dict(self.items_by_retailer),
            "itemsByEvent": dict(self.items_by_event),
        }


@dataclass
class RetailerGroup:
    retailer: str
    items: List[ShoppingItem]
    total_cost: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "retailer": self.retailer,
            "itemCount": len(self.items),
            "totalCost": self.total_cost,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class EventShoppingSummary:
    event_id: str
    event_type: str
    event_date: datetime
    days_until_event: int
    is_urgent: bool
    item_count: int = 0
    unpurchased_count: int = 0
    total_cost: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eventId": self.event_id,
            "eventType": self.event_type,
            "eventDate": self.event_date.isoformat(),
            "daysUntilEvent": self.days_until_event,
            "isUrgent": self.is_urgent,
            "itemCount": self.item_count,
            "unpurchasedCount": self.unpurchased_count,
            "totalCost": self.total_cost,
        }


__all__ = ["ShoppingItem", "ShoppingFilters", "ShoppingStats", "RetailerGroup", "EventShoppingSummary"]
