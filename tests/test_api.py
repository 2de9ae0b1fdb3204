"""HTTP surface exercised through FastAPI's TestClient."""

import base64
import io
import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from memory.rate_limiter import RATE_LIMITS_COLLECTION
from memory.usage_ledger import AIOperationType
from server.api import create_app
from stylist_app.app import StylistApp
from stylist_app.config import StylistConfig
from stylist_app.errors import AuthenticationError
from tools.auth import AuthenticatedUser, TokenVerifier
from tools.blob_storage import LocalBlobStorage
from tools.llm_gateway import LLMGateway
from tools.weather_provider import MockWeatherProvider

REPLY = json.dumps(
    [
        {
            "outfitItems": [
                {
                    "category": "dress",
                    "primary": {"productName": "Satin midi", "estimatedPrice": 200, "retailer": "Reformation"},
                    "alternatives": [{"productName": "Crepe midi", "estimatedPrice": 150, "retailer": "J.Crew"}],
                },
                {"category": "shoes", "primary": {"productName": "Gold sandal", "estimatedPrice": 95}},
            ],
            "overallReasoning": {"confidenceScore": 85},
        }
    ]
)


class FakeVerifier(TokenVerifier):
    """Accepts ``token-<uid>`` bearer tokens."""

    def verify(self, token: str) -> AuthenticatedUser:
        if not token.startswith("token-"):
            raise AuthenticationError("Invalid token format")
        return AuthenticatedUser(uid=token[len("token-"):], email=None)


def _auth(uid: str = "user-1") -> dict:
    return {"Authorization": f"Bearer token-{uid}"}


@pytest.fixture
def stylist(store, tmp_path: Path, fake_client) -> StylistApp:
    config = StylistConfig(environment="test", weather_api_key="key", blob_dir=str(tmp_path / "blobs"))
    return StylistApp(
        config=config,
        store=store,
        gateway=LLMGateway(client=fake_client(reply=REPLY)),
        weather_provider=MockWeatherProvider(),
        blob_storage=LocalBlobStorage(tmp_path / "blobs", base_url="https://cdn.example.com"),
        token_verifier=FakeVerifier(),
    )


@pytest.fixture
def client(stylist) -> TestClient:
    return TestClient(create_app(stylist))


def _generate(client, event_id):
    return client.post(
        "/api/recommendations/generate",
        json={"eventId": event_id, "userId": "user-1"},
        headers=_auth(),
    )


def test_healthz_and_correlation_header(client) -> None:
    response = client.get("/healthz", headers={"X-Correlation-ID": "abc123"})
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Correlation-ID"] == "abc123"


def test_requests_without_valid_token_are_rejected(client) -> None:
    missing = client.post("/api/recommendations/generate", json={})
    assert missing.status_code == 401
    assert missing.json()["message"] == "Missing or invalid authorization header"

    invalid = client.get("/api/usage", headers={"Authorization": "Bearer nope"})
    assert invalid.status_code == 401


def test_create_profile_is_idempotent(client) -> None:
    first = client.post("/api/admin/create-profile", json={"displayName": "Ada"}, headers=_auth("user-9"))
    assert first.status_code == 200
    assert first.json()["profile"]["displayName"] == "Ada"

    second = client.post("/api/admin/create-profile", json={}, headers=_auth("user-9"))
    assert second.json() == {"success": True, "message": "Profile already exists"}


def test_generate_flow_and_rate_limit_headers(client, seeded, stylist) -> None:
    response = _generate(client, seeded.event_id)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 1
    assert body["usage"]["tokensUsed"] > 0
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert response.headers["X-RateLimit-Remaining"] == "9"
    assert stylist.events.get(seeded.event_id).status == "recommendations-ready"


def test_generate_validation_and_ownership(client, seeded) -> None:
    invalid = client.post("/api/recommendations/generate", json={"userId": "user-1"}, headers=_auth())
    assert invalid.status_code == 400
    assert invalid.json()["details"]

    foreign = client.post(
        "/api/recommendations/generate",
        json={"eventId": seeded.event_id, "userId": "user-1"},
        headers=_auth("user-2"),
    )
    assert foreign.status_code == 403

    missing = _generate(client, "no-such-event")
    assert missing.status_code == 404
    assert missing.json()["message"] == "Event not found"


def test_generate_rate_limited(client, seeded, store) -> None:
    store.set(RATE_LIMITS_COLLECTION, "user-1_recommendations", {"count": 10, "resetAt": 4_102_444_800_000})

    response = _generate(client, seeded.event_id)
    assert response.status_code == 429
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) > 0
    assert response.json()["limit"] == 10


def test_generate_cost_ceiling(client, seeded, stylist) -> None:
    stylist.usage_ledger.track_api_usage(
        "user-1", AIOperationType.OUTFIT_RECOMMENDATION, 1, 1, 25.0, "model", True
    )
    response = _generate(client, seeded.event_id)
    assert response.status_code == 402
    assert response.json()["threshold"] == 10.0


def test_generate_without_api_key(store, seeded, tmp_path: Path) -> None:
    stylist = StylistApp(
        config=StylistConfig(environment="test"),
        store=store,
        gateway=LLMGateway(),
        weather_provider=MockWeatherProvider(),
        blob_storage=LocalBlobStorage(tmp_path / "blobs"),
        token_verifier=FakeVerifier(),
    )
    response = _generate(TestClient(create_app(stylist)), seeded.event_id)
    assert response.status_code == 503


def test_select_outfit_and_shopping_list(client, seeded, stylist) -> None:
    recommendation_id = _generate(client, seeded.event_id).json()["recommendationIds"][0]

    shopping = client.get("/api/shopping", params={"sortBy": "price-desc"}, headers=_auth())
    assert shopping.status_code == 200
    payload = shopping.json()
    assert [item["item"]["productName"] for item in payload["items"]] == ["Satin midi", "Gold sandal"]
    assert payload["stats"]["totalEstimatedCost"] == 295
    assert payload["retailers"] == ["Reformation"]

    selected = client.post(
        f"/api/events/{seeded.event_id}/select-outfit",
        json={"recommendationId": recommendation_id, "mode": "dress", "selectedAlternatives": {"dress": 1}},
        headers=_auth(),
    )
    assert selected.status_code == 200
    assert selected.json()["selectedOutfit"]["totalPrice"] == 245
    assert stylist.events.get(seeded.event_id).status == "outfit-selected"

    after = client.get("/api/shopping", headers=_auth()).json()
    assert [item["item"]["productName"] for item in after["items"]] == ["Crepe midi", "Gold sandal"]

    bad_sort = client.get("/api/shopping", params={"sortBy": "alphabetical"}, headers=_auth())
    assert bad_sort.status_code == 400


def test_reset_event_is_owner_only(client, seeded, stylist) -> None:
    _generate(client, seeded.event_id)

    forbidden = client.post("/api/admin/reset-event", json={"eventId": seeded.event_id}, headers=_auth("user-2"))
    assert forbidden.status_code == 403

    response = client.post("/api/admin/reset-event", json={"eventId": seeded.event_id}, headers=_auth())
    assert response.status_code == 200
    event = stylist.events.get(seeded.event_id)
    assert event.status == "planning"
    assert event.recommendations_generated is False


def test_closet_upload_and_delete(client, stylist) -> None:
    buffer = io.BytesIO()
    Image.new("RGB", (1200, 800), (10, 120, 60)).save(buffer, format="PNG")
    upload = client.post(
        "/api/closet/items",
        json={
            "category": "dress",
            "imageBase64": base64.b64encode(buffer.getvalue()).decode("ascii"),
            "contentType": "image/png",
            "filename": "green.png",
            "brand": "Reformation",
            "refuseToRewear": True,
        },
        headers=_auth(),
    )
    assert upload.status_code == 201
    item_id = upload.json()["itemId"]
    item = stylist.closet.get(item_id)
    assert item.tags.refuse_to_rewear
    assert item.images.thumbnail.startswith("https://cdn.example.com/images/user-1/dress/thumbnails/")

    assert client.delete(f"/api/closet/items/{item_id}", headers=_auth("user-2")).status_code == 403
    assert client.delete(f"/api/closet/items/{item_id}", headers=_auth()).status_code == 200
    assert stylist.closet.get(item_id) is None
    assert stylist.blob_storage.list("images/user-1/") == []


def test_closet_upload_rejects_bad_input(client) -> None:
    wrong_type = client.post(
        "/api/closet/items",
        json={"category": "dress", "imageBase64": base64.b64encode(b"GIF89a").decode(), "contentType": "image/gif"},
        headers=_auth(),
    )
    assert wrong_type.status_code == 400

    wrong_category = client.post(
        "/api/closet/items",
        json={"category": "hat", "imageBase64": "aGk="},
        headers=_auth(),
    )
    assert wrong_category.status_code == 400


def test_closet_analyze_rejects_foreign_urls(client) -> None:
    response = client.post(
        "/api/closet/analyze",
        json={"imageUrl": "https://example.com/dress.jpg"},
        headers=_auth(),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_weather(client) -> None:
    response = client.get("/api/weather", params={"city": "Austin", "state": "TX"}, headers=_auth())
    assert response.status_code == 200
    assert response.json()["feelsLike"] == 67
    assert response.headers["X-RateLimit-Limit"] == "100"

    missing = client.get("/api/weather", params={"city": "Austin"}, headers=_auth())
    assert missing.status_code == 400


def test_usage_summary(client, seeded) -> None:
    _generate(client, seeded.event_id)

    payload = client.get("/api/usage", headers=_auth()).json()
    assert payload["currentMonth"]["totalRequests"] == 1
    assert payload["costCheck"]["exceeded"] is False
    assert payload["rateLimits"]["recommendations"]["count"] == 1
    assert len(payload["history"]) == 1
