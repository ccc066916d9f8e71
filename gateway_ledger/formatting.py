"""Shared helpers for printing ledger entries.

Step records are opaque and may carry credentials in effect payloads, so
anything shown to a human goes through here:
- redaction of sensitive keys
- a one-line summary of the record
- a size-capped JSON preview (GATEWAY_LOG_RECORD_MAX)
"""

from __future__ import annotations

import json
import os

from gateway_ledger.gateway.events import extract_emit_event, extract_tool_calls, extract_wait
from gateway_ledger.gateway.models import LedgerEntry


_REDACT_KEYS = ("key", "token", "secret", "password", "auth", "cookie")


def record_preview_max_len() -> int:
    try:
        return int(os.getenv("GATEWAY_LOG_RECORD_MAX", "2000"))
    except ValueError:
        return 2000


def redact_record(obj: object) -> object:
    if isinstance(obj, dict):
        out: dict[object, object] = {}
        for k, v in obj.items():
            ks = str(k).lower()
            if any(rk in ks for rk in _REDACT_KEYS):
                out[k] = "[REDACTED]"
            else:
                out[k] = redact_record(v)
        return out
    if isinstance(obj, list):
        return [redact_record(x) for x in obj]
    return obj


def summarize_record(record: object) -> str:
    """Short description like `completed node=plan effect=llm_call`."""

    if not isinstance(record, dict):
        return type(record).__name__

    parts: list[str] = []
    status = record.get("status")
    if isinstance(status, str) and status:
        parts.append(status)
    node_id = record.get("node_id")
    if isinstance(node_id, str) and node_id:
        parts.append(f"node={node_id}")
    effect = record.get("effect")
    if isinstance(effect, dict):
        effect_type = effect.get("type")
        if isinstance(effect_type, str) and effect_type:
            parts.append(f"effect={effect_type}")

    emitted = extract_emit_event(record)
    if emitted:
        parts.append(f"emit={emitted[0]}")

    wait = extract_wait(record)
    if wait:
        reason = wait.get("reason")
        parts.append(f"wait={reason}" if isinstance(reason, str) and reason else "wait")
        tool_calls = extract_tool_calls(wait)
        if tool_calls:
            names = [str(c.get("name") or "?") for c in tool_calls]
            parts.append(f"tools={','.join(names)}")

    return " ".join(parts) or "record"


def format_record_preview(record: object, max_len: int | None = None) -> str:
    limit = record_preview_max_len() if max_len is None else max_len
    text = json.dumps(redact_record(record), ensure_ascii=True, sort_keys=True, default=str)
    if limit > 0 and len(text) > limit:
        return text[:limit] + "..."
    return text


def format_entry_line(entry: LedgerEntry, *, preview: bool = True, max_len: int | None = None) -> str:
    line = f"#{entry.cursor} {summarize_record(entry.record)}"
    if preview:
        line += f" {format_record_preview(entry.record, max_len)}"
    return line
