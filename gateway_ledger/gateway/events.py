"""Ledger event normalization helpers."""

from __future__ import annotations

import json

from gateway_ledger.gateway.models import LedgerEntry
from gateway_ledger.sse import Frame

STEP_EVENT = "step"

# Drop reasons reported through StreamStats.
DROP_NOT_STEP = "not_step"
DROP_EMPTY = "empty_data"
DROP_BAD_JSON = "bad_json"
DROP_BAD_SHAPE = "bad_shape"


def coerce_cursor(value: object) -> int | None:
    """Return `value` as an integer cursor, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def coerce_entry(payload: object) -> LedgerEntry | None:
    if not isinstance(payload, dict):
        return None
    cursor = coerce_cursor(payload.get("cursor"))
    record = payload.get("record")
    if cursor is None or record is None:
        return None
    return LedgerEntry(cursor=cursor, record=record)


def classify_frame(frame: Frame) -> tuple[LedgerEntry | None, str | None]:
    """Turn a frame into a ledger entry, or report why it was rejected."""
    if frame.event != STEP_EVENT:
        return None, DROP_NOT_STEP
    if not frame.data:
        return None, DROP_EMPTY
    try:
        payload = json.loads(frame.data)
    except json.JSONDecodeError:
        return None, DROP_BAD_JSON
    entry = coerce_entry(payload)
    if entry is None:
        return None, DROP_BAD_SHAPE
    return entry, None


def extract_wait(record: object) -> dict | None:
    """The `result.wait` object of a step record waiting on input/events."""
    if not isinstance(record, dict):
        return None
    result = record.get("result")
    if not isinstance(result, dict):
        return None
    wait = result.get("wait")
    return wait if isinstance(wait, dict) else None


def extract_emit_event(record: object) -> tuple[str, object] | None:
    """Return `(name, payload)` for an `emit_event` effect, else None."""
    if not isinstance(record, dict):
        return None
    effect = record.get("effect")
    if not isinstance(effect, dict):
        return None
    if str(effect.get("type") or "") != "emit_event":
        return None
    payload = effect.get("payload")
    if not isinstance(payload, dict):
        return None
    name = str(payload.get("name") or payload.get("event_name") or "").strip()
    if not name:
        return None
    return name, payload.get("payload")


def extract_tool_calls(wait: object) -> list[dict]:
    if not isinstance(wait, dict):
        return []
    details = wait.get("details")
    if not isinstance(details, dict):
        return []
    calls = details.get("tool_calls")
    if not isinstance(calls, list):
        return []
    return [c for c in calls if isinstance(c, dict)]
