"""Shared ledger streaming pipeline helpers.

This module turns a raw byte source into validated ledger entries:
- one read in flight at a time, raced against an optional cancel event
- incremental UTF-8 decoding, so a character split across reads survives
- SSE framing and step-event validation

Transports supply an async `read_chunk()` that returns b"" at end-of-input.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from typing import AsyncIterator, Awaitable, Callable

from gateway_ledger.gateway.events import classify_frame
from gateway_ledger.gateway.models import LedgerEntry, StreamStats
from gateway_ledger.sse import SseParser

log = logging.getLogger("gateway.pipeline")

ReadChunk = Callable[[], Awaitable[bytes]]


async def read_or_cancel(
    read_chunk: ReadChunk, cancel: asyncio.Event | None = None
) -> bytes | None:
    """Await one read; return None if `cancel` fires first.

    The pending read is cancelled when the event wins, and any data it
    produced in the same tick is discarded.
    """
    if cancel is None:
        return await read_chunk()
    if cancel.is_set():
        return None

    read_task = asyncio.ensure_future(read_chunk())
    cancel_task = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({read_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (read_task, cancel_task):
            if not task.done():
                task.cancel()

    if cancel.is_set():
        if read_task.done() and not read_task.cancelled():
            # Retrieve so a failed read isn't reported as never retrieved.
            read_task.exception()
        return None
    return read_task.result()


async def iter_text_chunks(
    read_chunk: ReadChunk,
    *,
    cancel: asyncio.Event | None = None,
    encoding: str = "utf-8",
) -> AsyncIterator[str]:
    """Read until end-of-input or cancellation, yielding decoded text."""

    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    while True:
        raw = await read_or_cancel(read_chunk, cancel)
        if raw is None:
            return
        if not raw:
            tail = decoder.decode(b"", final=True)
            if tail:
                yield tail
            return
        text = decoder.decode(raw)
        if text:
            yield text


async def iter_ledger_entries(
    read_chunk: ReadChunk,
    *,
    stats: StreamStats,
    cancel: asyncio.Event | None = None,
    parser: SseParser | None = None,
) -> AsyncIterator[LedgerEntry]:
    """Parse an SSE byte stream and yield valid `step` entries in order.

    Frames that are not well-formed step events are dropped and counted in
    `stats`; they never end the stream.
    """

    parser = parser or SseParser()
    async for text in iter_text_chunks(read_chunk, cancel=cancel):
        for frame in parser.feed(text):
            stats.frames += 1
            entry, reason = classify_frame(frame)
            if entry is None:
                stats.record_drop(reason or "unknown")
                log.debug(f"Dropped ledger frame id={frame.id!r} event={frame.event!r}: {reason}")
                continue
            if cancel is not None and cancel.is_set():
                stats.cancelled = True
                return
            yield entry

    if cancel is not None and cancel.is_set():
        stats.cancelled = True
