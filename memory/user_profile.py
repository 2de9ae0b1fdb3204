"""User profile service backed by the ``users`` collection."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from models.user_profile import UserProfile
from memory.repositories import utc_now
from stylist_app.logging_config import get_logger, log_event
from tools.document_store import DocumentStore, deep_merge

LOGGER = get_logger(__name__)

USERS = "users"


class UserProfileService:
    """Exactly one profile document per user id, created with default sections."""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        document = self.store.get(USERS, user_id)
        if document is None:
            return None
        document.pop("id", None)
        return UserProfile.from_document(document)

    def create_profile(
        self,
        user_id: str,
        email: str = "",
        display_name: str = "",
        photo_url: Optional[str] = None,
    ) -> Tuple[UserProfile, bool]:
        """Create the default profile unless one exists; returns ``(profile, created)``."""

        now = self.clock()
        candidate = UserProfile(
            uid=user_id,
            email=email,
            display_name=display_name,
            photo_url=photo_url,
            created_at=now,
            updated_at=now,
        )

        def _mutate(current: Optional[Dict[str, Any]]) -> Tuple[Optional[Dict[str, Any]], bool]:
            if current is not None:
                return None, False
            return candidate.to_document(), True

        created = self.store.run_transaction(USERS, user_id, _mutate)
        if created:
            log_event(LOGGER, logging.INFO, "profile_created", uid=user_id)
            return candidate, True
        return self.get_profile(user_id) or candidate, False

    def update_profile(self, user_id: str, updates: Dict[str, Any]) -> UserProfile:
        """Deep-merge camelCase ``updates`` into the profile and re-validate it."""

        def _mutate(current: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], UserProfile]:
            base = current or UserProfile(uid=user_id, created_at=self.clock()).to_document()
            base.pop("id", None)
            merged = deep_merge(base, {**updates, "uid": user_id, "updatedAt": self.clock()})
            profile = UserProfile.from_document(merged)
            return profile.to_document(), profile

        return self.store.run_transaction(USERS, user_id, _mutate)

    def complete_onboarding(self, user_id: str) -> UserProfile:
        return self.update_profile(user_id, {"onboardingCompleted": True})


__all__ = ["USERS", "UserProfileService"]
