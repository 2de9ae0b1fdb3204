"""Shared fixtures: a throwaway SQLite store, fake model clients and seeded documents."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from memory.repositories import ClosetRepository, EventRepository, RecommendationRepository  # noqa: E402
from memory.user_profile import UserProfileService  # noqa: E402
from models.closet_item import ClosetItem, ClosetTags, ItemAnalysis  # noqa: E402
from models.event import Event, EventLocation  # noqa: E402
from tools.document_store import SQLiteDocumentStore  # noqa: E402


class FakeMessages:
    """Stands in for ``anthropic.Anthropic().messages``."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.reply)])


@pytest.fixture
def fake_client():
    def _build(reply=None, error=None):
        return SimpleNamespace(messages=FakeMessages(reply=reply, error=error))

    return _build


@pytest.fixture
def store(tmp_path: Path) -> SQLiteDocumentStore:
    return SQLiteDocumentStore(tmp_path / "stylist.db")


@pytest.fixture
def repos(store):
    return SimpleNamespace(
        events=EventRepository(store),
        closet=ClosetRepository(store),
        recommendations=RecommendationRepository(store),
        profiles=UserProfileService(store),
    )


@pytest.fixture
def seeded(repos):
    """A user with a profile, two closet items (one refused) and a planning event."""

    repos.profiles.create_profile("user-1", email="ada@example.com", display_name="Ada")
    kept_id = repos.closet.create(
        ClosetItem(
            user_id="user-1",
            category="dress",
            brand="Reformation",
            ai_analysis=ItemAnalysis(color=["emerald"], style=["romantic"], occasion=["cocktail"]),
            tags=ClosetTags(prefer_to_rewear=True),
        )
    )
    refused_id = repos.closet.create(
        ClosetItem(user_id="user-1", category="shoes", brand="Old Pumps", tags=ClosetTags(refuse_to_rewear=True))
    )
    event_id = repos.events.create(
        Event(
            user_id="user-1",
            event_type="wedding",
            dress_code="cocktail",
            location=EventLocation(city="Austin", state="TX"),
            date_time=datetime(2030, 6, 14, 18, 30, tzinfo=timezone.utc),
        )
    )
    return SimpleNamespace(event_id=event_id, kept_id=kept_id, refused_id=refused_id)
