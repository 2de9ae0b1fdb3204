"""Event document model."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import Field

from models.document import DocumentModel
from models.taxonomy import EventStatus


class EventLocation(DocumentModel):
    city: str = ""
    state: str = ""
    venue: Optional[str] = None


class WeatherSnapshot(DocumentModel):
    temperature: float
    conditions: str
    humidity: Optional[float] = None
    feels_like: Optional[float] = None
    wind_speed: Optional[float] = None
    icon: Optional[str] = None


class EventRequirements(DocumentModel):
    shop_only_mode: bool = False


class SelectedOutfit(DocumentModel):
    """The user's final pick; index 0 in ``selected_alternatives`` is the primary."""

    recommendation_id: str
    mode: Literal["dress", "separates"] = "dress"
    selected_alternatives: Dict[str, int] = Field(default_factory=dict)
    total_price: float = 0


class Event(DocumentModel):
    id: Optional[str] = None
    user_id: str
    event_type: str = ""
    custom_event_type: Optional[str] = None
    dress_code: str = ""
    location: EventLocation = Field(default_factory=EventLocation)
    date_time: datetime
    weather: Optional[WeatherSnapshot] = None
    user_role: str = ""
    activity_level: str = ""
    shipping_deadline: Optional[datetime] = None
    requirements: Optional[EventRequirements] = None
    status: EventStatus = Field(default=EventStatus.PLANNING, validate_default=True)
    recommendations_generated: bool = False
    recommendation_ids: List[str] = Field(default_factory=list)
    selected_outfit: Optional[SelectedOutfit] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def shop_only_mode(self) -> bool:
        return bool(self.requirements and self.requirements.shop_only_mode)


__all__ = ["Event", "EventLocation", "WeatherSnapshot", "EventRequirements", "SelectedOutfit"]
