"""Build lifecycle event definitions and serialization."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from site_orchestrator.domain import ids
from site_orchestrator.utils.hashing import canonical_json

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


class EventType(StrEnum):
    """Lifecycle events emitted by the build orchestrator for external reporters."""

    RUN_STARTED = "RunStarted"
    RUN_FINISHED = "RunFinished"
    RUN_FAILED = "RunFailed"

    PHASE_STARTED = "PhaseStarted"
    PHASE_COMPLETED = "PhaseCompleted"
    PHASE_FAILED = "PhaseFailed"

    CACHE_INVALIDATED = "CacheInvalidated"
    HOOK_FAILED = "HookFailed"


@dataclass(slots=True)
class BuildEvent:
    """Serializable event envelope."""

    event_id: str
    event_type: EventType
    timestamp: datetime
    correlation_id: str | None
    payload: dict[str, JSONValue]

    def __post_init__(self) -> None:
        ids.validate_event_id(self.event_id)
        if not isinstance(self.event_type, EventType):
            self.event_type = EventType(self.event_type)
        if self.timestamp.tzinfo is None or self.timestamp.utcoffset() is None:
            raise ValueError("BuildEvent.timestamp must be timezone-aware")
        self.timestamp = self.timestamp.astimezone(UTC)
        self.payload = as_json_object(self.payload, "BuildEvent.payload")

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(timespec="microseconds").replace("+00:00", "Z"),
            "correlation_id": self.correlation_id,
            "payload": self.payload,
        }

    def to_json(self) -> str:
        return canonical_json(self.to_dict())


_MAX_DEPTH = 16


def as_json_object(value: object, path: str) -> dict[str, JSONValue]:
    """Check that ``value`` is a JSON object of plain values and return a detached copy.

    Tuples become lists. Errors name the offending location, e.g.
    ``payload.phases[2]: float value must be finite``.
    """

    if not isinstance(value, dict):
        raise ValueError(f"{path}: expected object, got {type(value).__name__}")
    return {key: _checked(item, f"{path}.{key}", 1) for key, item in _string_items(value, path)}


def _checked(value: object, path: str, depth: int) -> JSONValue:
    if depth > _MAX_DEPTH:
        raise ValueError(f"{path}: JSON nesting too deep")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"{path}: float value must be finite")
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, list | tuple):
        return [_checked(item, f"{path}[{index}]", depth + 1) for index, item in enumerate(value)]
    if isinstance(value, dict):
        return {
            key: _checked(item, f"{path}.{key}", depth + 1)
            for key, item in _string_items(value, path)
        }
    raise ValueError(f"{path}: {type(value).__name__} is not JSON-serializable")


def _string_items(mapping: dict[object, object], path: str) -> list[tuple[str, object]]:
    items: list[tuple[str, object]] = []
    for key, item in mapping.items():
        if not isinstance(key, str):
            raise ValueError(f"{path}: object keys must be strings, got {type(key).__name__}")
        items.append((key, item))
    return items

__all__ = ["BuildEvent", "EventType", "JSONValue", "as_json_object"]
