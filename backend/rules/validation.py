from __future__ import annotations

from typing import Any, Mapping

from pydantic import ValidationError

from llm.schemas import TurnPayload

REQUIRED_STAT_FIELDS: tuple[str, ...] = (
    "cash",
    "users",
    "productQuality",
    "marketFit",
    "stress",
    "valuation",
)


class MalformedPayload(ValueError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


def parse_turn_payload(data: Any) -> TurnPayload:
    if isinstance(data, TurnPayload):
        return data
    if not isinstance(data, Mapping):
        raise MalformedPayload(
            f"Turn payload must be a JSON object, got {type(data).__name__}."
        )

    missing = missing_stat_fields(data)
    if missing:
        raise MalformedPayload(
            "Turn payload is missing stat deltas: " + ", ".join(missing),
            [f"statChanges.{name}: missing" for name in missing],
        )

    try:
        return TurnPayload.model_validate(dict(data))
    except ValidationError as exc:
        errors = [_format_error(error) for error in exc.errors()]
        raise MalformedPayload("Turn payload failed validation.", errors) from exc


def missing_stat_fields(data: Mapping[str, Any]) -> list[str]:
    changes = data.get("statChanges")
    if changes is None:
        changes = data.get("stat_changes")
    if not isinstance(changes, Mapping):
        return list(REQUIRED_STAT_FIELDS)
    missing = []
    for name in REQUIRED_STAT_FIELDS:
        if name in changes or _snake(name) in changes:
            continue
        if name == "marketFit" and "hype" in changes:
            continue
        missing.append(name)
    return missing


def _snake(name: str) -> str:
    return "".join(f"_{char.lower()}" if char.isupper() else char for char in name)


def _format_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid")
    return f"{location}: {message}" if location else str(message)
