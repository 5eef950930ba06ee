import pytest

from llm.schemas import TurnPayload
from rules.validation import MalformedPayload, missing_stat_fields, parse_turn_payload


def _payload() -> dict:
    return {
        "narrative": "Demo day.",
        "feedback": "Keep it short.",
        "eventSummary": "Demo day",
        "choices": [{"id": "1", "text": "Pitch", "type": "safe"}],
        "statChanges": {
            "cash": 0,
            "users": 0,
            "productQuality": 0,
            "marketFit": 0,
            "stress": 0,
            "valuation": 0,
        },
        "isGameOver": False,
    }


def test_parse_returns_payload() -> None:
    payload = parse_turn_payload(_payload())
    assert isinstance(payload, TurnPayload)
    assert parse_turn_payload(payload) is payload


def test_missing_cash_delta_is_malformed() -> None:
    data = _payload()
    del data["statChanges"]["cash"]
    with pytest.raises(MalformedPayload) as excinfo:
        parse_turn_payload(data)
    assert "cash" in str(excinfo.value)
    assert excinfo.value.errors == ["statChanges.cash: missing"]


def test_missing_stat_changes_lists_every_field() -> None:
    data = _payload()
    del data["statChanges"]
    assert missing_stat_fields(data) == [
        "cash",
        "users",
        "productQuality",
        "marketFit",
        "stress",
        "valuation",
    ]


def test_non_mapping_is_malformed() -> None:
    with pytest.raises(MalformedPayload):
        parse_turn_payload(["not", "an", "object"])


def test_schema_errors_are_reported() -> None:
    data = _payload()
    data["isGameOver"] = "no"
    with pytest.raises(MalformedPayload) as excinfo:
        parse_turn_payload(data)
    assert any(error.startswith("isGameOver") for error in excinfo.value.errors)
