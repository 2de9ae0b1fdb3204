"""Vision analysis: URL guard, placeholders, normalisation and the timeout race."""

import json
import threading

import pytest

from agents.closet_analyzer import ClosetAnalyzer, normalize_analysis
from memory.usage_ledger import API_USAGE, UsageLedger
from stylist_app.errors import AnalysisTimeoutError, InvalidImageURLError, LLMRequestError
from tools.llm_gateway import SONNET, LLMGateway

IMAGE_URL = "https://firebasestorage.googleapis.com/v0/b/app/o/dress.jpg"
ALLOWED = ["firebasestorage.googleapis.com"]


class FakeVisionGateway:
    is_configured = True
    default_model = SONNET

    def __init__(self, reply: str = "", release: threading.Event | None = None) -> None:
        self.reply = reply
        self.release = release
        self.calls = []

    def send_message_with_images(self, prompt, image_urls, model=None, max_tokens=4096):
        self.calls.append({"image_urls": list(image_urls), "max_tokens": max_tokens})
        if self.release is not None:
            self.release.wait(5)
        return self.reply


def test_rejects_urls_outside_storage() -> None:
    gateway = FakeVisionGateway(reply="{}")
    analyzer = ClosetAnalyzer(gateway, ALLOWED)

    with pytest.raises(InvalidImageURLError):
        analyzer.analyze("user-1", "http://169.254.169.254/latest/meta-data")
    assert gateway.calls == []


def test_unconfigured_gateway_returns_placeholder() -> None:
    result = ClosetAnalyzer(LLMGateway(), ALLOWED).analyze("user-1", IMAGE_URL)

    assert result.analysis["category"] == "dress"
    assert result.analysis["color"] == []
    assert result.note


def test_successful_analysis_is_normalised_and_tracked(store) -> None:
    reply = "```json\n" + json.dumps(
        {
            "category": "Dress",
            "subcategory": "midi dress",
            "color": "emerald",
            "style": ["romantic", "elegant"],
            "pattern": "solid",
            "occasion": ["cocktail"],
            "season": ["spring", "summer"],
            "keyFeatures": ["bias cut"],
            "brandGuess": "ignored",
        }
    ) + "\n```"
    gateway = FakeVisionGateway(reply=reply)
    result = ClosetAnalyzer(gateway, ALLOWED, usage_ledger=UsageLedger(store)).analyze("user-1", IMAGE_URL)

    assert result.note is None
    assert result.analysis == {
        "category": "dress",
        "subcategory": "midi dress",
        "color": ["emerald"],
        "style": ["romantic", "elegant"],
        "pattern": "solid",
        "occasion": ["cocktail"],
        "season": ["spring", "summer"],
        "keyFeatures": ["bias cut"],
    }
    assert gateway.calls[0] == {"image_urls": [IMAGE_URL], "max_tokens": 2000}
    records = store.query(API_USAGE)
    assert [record["operationType"] for record in records] == ["closet_analysis"]
    assert result.to_dict()["success"] is True


def test_unparseable_reply_returns_fallback_placeholder() -> None:
    result = ClosetAnalyzer(FakeVisionGateway(reply="I could not see the image."), ALLOWED).analyze("user-1", IMAGE_URL)

    assert result.analysis["color"] == ["unknown"]
    assert result.analysis["season"] == ["all-season"]
    assert result.note == "AI analysis failed, using placeholder"



class UnpricedGateway(FakeVisionGateway):
    default_model = "claude-sonnet-4-5"

    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        super().__init__(reply=reply)
        self.error = error

    def send_message_with_images(self, prompt, image_urls, model=None, max_tokens=4096):
        if self.error is not None:
            raise self.error
        return super().send_message_with_images(prompt, image_urls, model=model, max_tokens=max_tokens)


def test_unpriced_model_still_returns_analysis(store) -> None:
    gateway = UnpricedGateway(reply=json.dumps({"category": "dress", "color": ["red"]}))
    result = ClosetAnalyzer(gateway, ALLOWED, usage_ledger=UsageLedger(store)).analyze("user-1", IMAGE_URL)

    assert result.analysis["color"] == ["red"]
    assert result.usage["estimatedCost"] == 0.0
    records = store.query(API_USAGE)
    assert [(record["model"], record["estimatedCost"]) for record in records] == [("claude-sonnet-4-5", 0.0)]


def test_unpriced_model_failure_keeps_original_error(store) -> None:
    gateway = UnpricedGateway(error=LLMRequestError())
    analyzer = ClosetAnalyzer(gateway, ALLOWED, usage_ledger=UsageLedger(store))

    with pytest.raises(LLMRequestError):
        analyzer.analyze("user-1", IMAGE_URL)
    assert [record["success"] for record in store.query(API_USAGE)] == [False]

def test_slow_model_call_times_out() -> None:
    release = threading.Event()
    gateway = FakeVisionGateway(reply="{}", release=release)
    analyzer = ClosetAnalyzer(gateway, ALLOWED, timeout_seconds=0.05)
    try:
        with pytest.raises(AnalysisTimeoutError):
            analyzer.analyze("user-1", IMAGE_URL)
    finally:
        release.set()
        analyzer.executor.shutdown(wait=True)


def test_normalize_analysis_defaults_missing_keys() -> None:
    normalized = normalize_analysis({"category": "SHOES"})
    assert normalized["category"] == "shoes"
    assert normalized["keyFeatures"] == []
    assert normalized["pattern"] == ""
    assert normalize_analysis("nonsense")["category"] == "dress"
