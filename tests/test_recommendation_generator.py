"""Recommendation generation pipeline against SQLite and a fake model."""

import json

import pytest

from agents.recommendation_generator import RecommendationGenerator
from memory.repositories import RECOMMENDATIONS
from memory.usage_ledger import API_USAGE, UsageLedger
from stylist_app.errors import LLMRequestError, NotFoundError, ResponseParseError
from tools.llm_gateway import LLMGateway

MODEL_REPLY = json.dumps(
    {
        "recommendations": [
            {
                "outfitNumber": 1,
                "outfitItems": [
                    {
                        "category": "dress",
                        "primary": {"isClosetItem": True, "itemId": "PLACEHOLDER", "productName": "Emerald dress"},
                        "alternatives": [{"productName": "Black slip", "estimatedPrice": 150}],
                    },
                    {"category": "shoes", "primary": {"productName": "Gold sandal", "estimatedPrice": 95}},
                ],
                "overallReasoning": {"confidenceScore": 80},
            },
            {
                "dress": {"productName": "Navy wrap", "estimatedPrice": 120},
                "shoes": {"productName": "Nude pump", "estimatedPrice": 80},
                "confidenceScore": 70,
            },
        ]
    }
)


def _generator(repos, store, client):
    return RecommendationGenerator(
        events=repos.events,
        profiles=repos.profiles,
        closet=repos.closet,
        recommendations=repos.recommendations,
        gateway=LLMGateway(client=client),
        usage_ledger=UsageLedger(store),
    )


def test_generate_persists_recommendations_and_marks_event_ready(repos, store, seeded, fake_client) -> None:
    client = fake_client(reply=f"```json\n{MODEL_REPLY}\n```")
    result = _generator(repos, store, client).generate("user-1", seeded.event_id)

    assert len(result.recommendation_ids) == 2
    assert result.tokens_used > 0
    assert result.estimated_cost > 0
    payload = result.to_dict()
    assert payload["success"] is True
    assert payload["count"] == 2

    event = repos.events.get(seeded.event_id)
    assert event.status == "recommendations-ready"
    assert event.recommendations_generated is True
    assert event.recommendation_ids == result.recommendation_ids

    stored = [repos.recommendations.get(rec_id) for rec_id in result.recommendation_ids]
    assert [rec.version for rec in stored] == [2, 1]
    assert all(rec.event_id == seeded.event_id and rec.user_id == "user-1" for rec in stored)


def test_prompt_excludes_refused_closet_items(repos, store, seeded, fake_client) -> None:
    client = fake_client(reply=MODEL_REPLY)
    _generator(repos, store, client).generate("user-1", seeded.event_id)

    prompt = client.messages.calls[0]["messages"][0]["content"][0]["text"]
    assert seeded.kept_id in prompt
    assert seeded.refused_id not in prompt
    assert client.messages.calls[0]["max_tokens"] == 8000


def test_unparseable_reply_rolls_event_back(repos, store, seeded, fake_client) -> None:
    generator = _generator(repos, store, fake_client(reply="not json"))

    with pytest.raises(ResponseParseError):
        generator.generate("user-1", seeded.event_id)

    event = repos.events.get(seeded.event_id)
    assert event.status == "planning"
    assert event.recommendation_ids == []
    assert store.query(RECOMMENDATIONS) == []
    usage = store.query(API_USAGE)
    assert len(usage) == 1 and usage[0]["success"] is False


def test_provider_failure_rolls_event_back(repos, store, seeded, fake_client) -> None:
    import anthropic
    import httpx

    error = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    generator = _generator(repos, store, fake_client(error=error))

    with pytest.raises(LLMRequestError):
        generator.generate("user-1", seeded.event_id)
    assert repos.events.get(seeded.event_id).status == "planning"


def test_missing_or_foreign_event_is_not_found(repos, store, seeded, fake_client) -> None:
    generator = _generator(repos, store, fake_client(reply=MODEL_REPLY))

    with pytest.raises(NotFoundError):
        generator.generate("user-1", "missing-event")
    repos.profiles.create_profile("user-2")
    with pytest.raises(NotFoundError):
        generator.generate("user-2", seeded.event_id)
    assert repos.events.get(seeded.event_id).status == "planning"


def test_missing_profile_is_not_found(repos, store, seeded, fake_client) -> None:
    store.delete("users", "user-1")
    generator = _generator(repos, store, fake_client(reply=MODEL_REPLY))

    with pytest.raises(NotFoundError) as excinfo:
        generator.generate("user-1", seeded.event_id)
    assert excinfo.value.message == "User profile not found"


def test_successful_generation_is_tracked_in_monthly_ledger(repos, store, seeded, fake_client) -> None:
    _generator(repos, store, fake_client(reply=MODEL_REPLY)).generate("user-1", seeded.event_id)

    summary = UsageLedger(store).get_current_month_usage("user-1")
    assert summary["totalRequests"] == 1
    assert summary["successfulRequests"] == 1
    assert summary["operationBreakdown"]["outfit_recommendation"]["count"] == 1
