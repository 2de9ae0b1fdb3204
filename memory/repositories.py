"""Thin CRUD wrappers over the document store for events, closet items and recommendations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from models.closet_item import ClosetItem
from models.event import Event, SelectedOutfit
from models.recommendation import Recommendation
from models.taxonomy import EventStatus
from stylist_app.errors import NotFoundError
from stylist_app.logging_config import get_logger, log_event
from tools.blob_storage import BlobStorage
from tools.document_store import DocumentStore

LOGGER = get_logger(__name__)

EVENTS = "events"
CLOSET_ITEMS = "closet_items"
RECOMMENDATIONS = "recommendations"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventRepository:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now) -> None:
        self.store = store
        self.clock = clock

    def get(self, event_id: str) -> Optional[Event]:
        document = self.store.get(EVENTS, event_id)
        return Event.from_document(document) if document else None

    def list_for_user(self, user_id: str) -> List[Event]:
        documents = self.store.query(EVENTS, [("userId", user_id)], order_by="dateTime", descending=True)
        return [Event.from_document(document) for document in documents]

    def create(self, event: Event) -> str:
        now = self.clock()
        payload = event.model_copy(update={"created_at": now, "updated_at": now}).to_document()
        return self.store.add(EVENTS, payload)

    def update(self, event_id: str, fields: Dict[str, Any]) -> None:
        self.store.update(EVENTS, event_id, {**fields, "updatedAt": self.clock()})

    def set_status(self, event_id: str, status: EventStatus, **fields: Any) -> None:
        self.update(event_id, {"status": EventStatus(status).value, **fields})

    def reset(self, event_id: str) -> None:
        self.set_status(event_id, EventStatus.PLANNING, recommendationsGenerated=False)

    def select_outfit(self, event_id: str, selection: SelectedOutfit) -> None:
        self.set_status(
            event_id,
            EventStatus.OUTFIT_SELECTED,
            selectedOutfit=selection.model_dump(by_alias=True, exclude_none=True),
        )


class ClosetRepository:
    def __init__(self, store: DocumentStore, blobs: Optional[BlobStorage] = None, clock: Clock = utc_now) -> None:
        self.store = store
        self.blobs = blobs
        self.clock = clock

    def get(self, item_id: str) -> Optional[ClosetItem]:
        document = self.store.get(CLOSET_ITEMS, item_id)
        return ClosetItem.from_document(document) if document else None

    def list_for_user(self, user_id: str) -> List[ClosetItem]:
        documents = self.store.query(CLOSET_ITEMS, [("userId", user_id)], order_by="createdAt", descending=True)
        return [ClosetItem.from_document(document) for document in documents]

    def create(self, item: ClosetItem) -> str:
        now = self.clock()
        payload = item.model_copy(update={"created_at": now, "updated_at": now}).to_document()
        return self.store.add(CLOSET_ITEMS, payload)

    def update(self, item_id: str, fields: Dict[str, Any]) -> None:
        self.store.update(CLOSET_ITEMS, item_id, {**fields, "updatedAt": self.clock()})

    def set_tags(self, item_id: str, refuse_to_rewear: Optional[bool] = None, prefer_to_rewear: Optional[bool] = None) -> None:
        fields: Dict[str, Any] = {}
        if refuse_to_rewear is not None:
            fields["tags.refuseToRewear"] = refuse_to_rewear
        if prefer_to_rewear is not None:
            fields["tags.preferToRewear"] = prefer_to_rewear
        if fields:
            self.update(item_id, fields)

    def toggle_favorite(self, item_id: str) -> bool:
        def _mutate(current: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], bool]:
            if current is None:
                raise NotFoundError("Closet item not found")
            favorite = not current.get("favorite", False)
            return {**current, "favorite": favorite, "updatedAt": self.clock()}, favorite

        return self.store.run_transaction(CLOSET_ITEMS, item_id, _mutate)

    def record_wear(self, item_id: str) -> int:
        """Increment ``wornCount`` atomically and stamp ``lastWorn``."""

        def _mutate(current: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], int]:
            if current is None:
                raise NotFoundError("Closet item not found")
            count = int(current.get("wornCount", 0)) + 1
            now = self.clock()
            return {**current, "wornCount": count, "lastWorn": now, "updatedAt": now}, count

        return self.store.run_transaction(CLOSET_ITEMS, item_id, _mutate)

    def delete(self, item: ClosetItem) -> None:
        """Delete the document, then its image blobs; blob cleanup failures are logged."""

        self.store.delete(CLOSET_ITEMS, item.id or "")
        if self.blobs is None:
            return
        for url in (item.images.original, item.images.thumbnail, item.images.processed):
            path = self.blobs.path_for_url(url) if url else None
            if not path:
                continue
            try:
                self.blobs.delete(path)
            except Exception:
                log_event(LOGGER, logging.WARNING, "closet_blob_delete_failed", item_id=item.id, exc_info=True)


class RecommendationRepository:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now) -> None:
        self.store = store
        self.clock = clock

    def get(self, recommendation_id: str) -> Optional[Recommendation]:
        document = self.store.get(RECOMMENDATIONS, recommendation_id)
        return Recommendation.from_document(document) if document else None

    def list_for_event(self, event_id: str) -> List[Recommendation]:
        documents = self.store.query(
            RECOMMENDATIONS,
            [("eventId", event_id)],
            order_by="aiReasoning.confidenceScore",
            descending=True,
        )
        return [Recommendation.from_document(document) for document in documents]

    def create(self, recommendation: Recommendation) -> str:
        payload = recommendation.model_copy(update={"created_at": self.clock()}).to_document()
        return self.store.add(RECOMMENDATIONS, payload)


__all__ = [
    "CLOSET_ITEMS",
    "EVENTS",
    "RECOMMENDATIONS",
    "ClosetRepository",
    "EventRepository",
    "RecommendationRepository",
    "utc_now",
]
