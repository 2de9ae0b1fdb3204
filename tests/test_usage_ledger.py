"""Usage records and the monthly cost ledger."""

from datetime import datetime, timezone

from memory.usage_ledger import AIOperationType, UsageLedger, month_key

MARCH = datetime(2030, 3, 15, 9, 0, tzinfo=timezone.utc)


def _ledger(store) -> UsageLedger:
    return UsageLedger(store, clock=lambda: MARCH)


def test_tracking_updates_monthly_summary(store) -> None:
    ledger = _ledger(store)
    ledger.track_api_usage("user-1", AIOperationType.OUTFIT_RECOMMENDATION, 1000, 500, 0.25, "model-a", True)
    ledger.track_api_usage("user-1", AIOperationType.CLOSET_ANALYSIS, 200, 100, 0.05, "model-a", False, "timeout")

    summary = ledger.get_current_month_usage("user-1")
    assert summary["month"] == "2030-03"
    assert summary["totalRequests"] == 2
    assert summary["successfulRequests"] == 1
    assert summary["failedRequests"] == 1
    assert summary["totalTokens"] == 1800
    assert abs(summary["estimatedCost"] - 0.30) < 1e-9
    assert summary["operationBreakdown"]["closet_analysis"] == {"count": 1, "tokens": 300, "cost": 0.05}

    history = ledger.get_usage_history("user-1")
    assert len(history) == 2
    assert {record["operationType"] for record in history} == {"outfit_recommendation", "closet_analysis"}
    assert any(record.get("errorMessage") == "timeout" for record in history)


def test_cost_threshold(store) -> None:
    ledger = _ledger(store)
    assert not ledger.check_cost_threshold("user-1", 10.0).exceeded

    ledger.track_api_usage("user-1", AIOperationType.OUTFIT_RECOMMENDATION, 1, 1, 10.0, "model-a", True)
    check = ledger.check_cost_threshold("user-1", 10.0)
    assert check.exceeded
    assert check.to_dict() == {"exceeded": True, "currentCost": 10.0, "threshold": 10.0}


def test_store_failures_never_raise(store, monkeypatch) -> None:
    def broken(*args, **kwargs):
        raise RuntimeError("store down")

    monkeypatch.setattr(store, "add", broken)
    monkeypatch.setattr(store, "get", broken)
    ledger = _ledger(store)

    ledger.track_api_usage("user-1", AIOperationType.STYLE_ADVICE, 1, 1, 0.01, "model-a", True)
    assert ledger.check_cost_threshold("user-1", 10.0).current_cost == 0.0


def test_month_key() -> None:
    assert month_key(MARCH) == "2030-03"
