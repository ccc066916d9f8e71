"""HTTP client for the gateway run ledger."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from typing import AsyncIterator, Sequence
from urllib.parse import quote

import aiohttp
from aiohttp.streams import EmptyStreamReader

from gateway_ledger.gateway.config import (
    GatewayConfig,
    resolve_auth_token,
    resolve_http_timeout,
    resolve_server_url,
    resolve_stream_read_timeout,
)
from gateway_ledger.gateway.errors import (
    GatewayHTTPError,
    StreamConnectError,
    StreamInterruptedError,
)
from gateway_ledger.gateway.events import coerce_cursor, coerce_entry
from gateway_ledger.gateway.models import (
    LedgerCursor,
    LedgerEntry,
    LedgerPage,
    StepCallback,
    StreamStats,
)
from gateway_ledger.pipeline import iter_ledger_entries

log = logging.getLogger("gateway.client")

DEFAULT_PAGE_LIMIT = 200

_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError)


async def deliver(on_step: StepCallback, entry: LedgerEntry) -> None:
    result = on_step(entry)
    if inspect.isawaitable(result):
        await result


def _run_path(run_id: str, suffix: str) -> str:
    rid = (run_id or "").strip()
    if not rid:
        raise ValueError("run_id is required")
    return f"/api/gateway/runs/{quote(rid, safe='')}{suffix}"


def parse_ledger_page(body: object, after: int) -> LedgerPage:
    """Build a page from a `{items, next_after}` response body.

    The gateway returns raw step records positioned right after `after`, so
    item i sits at cursor `after + i + 1`. Items already shaped as
    `{cursor, record}` keep their own cursor; such items with a null record
    or a non-integer cursor are skipped.
    """
    if not isinstance(body, dict):
        return LedgerPage(items=[], next_after=after)

    raw_items = body.get("items")
    if not isinstance(raw_items, list):
        raw_items = []

    items: list[LedgerEntry] = []
    for i, item in enumerate(raw_items):
        if isinstance(item, dict) and "cursor" in item and "record" in item:
            entry = coerce_entry(item)
            if entry is None:
                log.debug(f"Skipping malformed ledger item at position {i} (after={after})")
                continue
        else:
            entry = LedgerEntry(cursor=after + i + 1, record=item)
        if entry.cursor <= after:
            log.debug(f"Skipping ledger item at cursor {entry.cursor} (after={after})")
            continue
        items.append(entry)

    next_after = coerce_cursor(body.get("next_after"))
    return LedgerPage(items=items, next_after=after if next_after is None else next_after)


class GatewayClient:
    """HTTP + SSE transport for a gateway's run ledgers.

    The caller owns the `aiohttp.ClientSession` and every resume cursor; the
    client keeps no per-run state between calls.
    """

    def __init__(self, config: GatewayConfig | None = None):
        config = config or GatewayConfig()
        self.server_url = resolve_server_url(config.server_url)
        self._auth_token = resolve_auth_token(config.auth_token)
        self._http_timeout = aiohttp.ClientTimeout(total=resolve_http_timeout(config.http_timeout_s))
        self._stream_timeout = aiohttp.ClientTimeout(
            total=None, sock_read=resolve_stream_read_timeout(config.stream_read_timeout_s)
        )

    @property
    def auth_token(self) -> str | None:
        return self._auth_token

    def _make_url(self, path: str) -> str:
        return f"{self.server_url}{path}"

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    async def request_json(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        *,
        operation: str,
        **kwargs,
    ) -> object | None:
        headers = self._headers(kwargs.pop("headers", None))
        async with session.request(
            method, url, headers=headers, timeout=self._http_timeout, **kwargs
        ) as resp:
            if resp.status == 204:
                return None
            text = await resp.text(errors="replace")
            if not 200 <= resp.status < 300:
                raise GatewayHTTPError(operation, resp.status, text.strip() or None)
            if not text:
                return None
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return text

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def get_ledger(
        self,
        session: aiohttp.ClientSession,
        run_id: str,
        *,
        after: int = 0,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> LedgerPage:
        """Fetch up to `limit` entries positioned after `after`.

        Resume with the returned `next_after`, even when the page is short.
        """
        url = self._make_url(_run_path(run_id, "/ledger"))
        body = await self.request_json(
            session,
            "GET",
            url,
            operation="get_ledger",
            params={"after": str(int(after)), "limit": str(int(limit))},
        )
        return parse_ledger_page(body, int(after))

    async def get_ledger_batch(
        self,
        session: aiohttp.ClientSession,
        runs: Sequence[LedgerCursor],
        *,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> dict[str, LedgerPage]:
        """Poll several runs in one round trip.

        Every requested run gets a page; runs the gateway left out come back
        empty with `next_after` unchanged.
        """
        if not runs:
            return {}

        requested: dict[str, LedgerCursor] = {}
        for cursor in runs:
            requested.setdefault(cursor.run_id, cursor)

        url = self._make_url("/api/gateway/runs/ledger/batch")
        payload = {"runs": [c.to_payload() for c in requested.values()], "limit": int(limit)}
        body = await self.request_json(
            session, "POST", url, operation="get_ledger_batch", json=payload
        )

        mapping = body.get("runs") if isinstance(body, dict) else None
        if not isinstance(mapping, dict):
            mapping = {}

        unknown = set(mapping) - set(requested)
        if unknown:
            log.debug(f"Ignoring unrequested runs in batch response: {sorted(unknown)}")

        return {
            run_id: parse_ledger_page(mapping.get(run_id), cursor.after)
            for run_id, cursor in requested.items()
        }

    async def replay_ledger(
        self,
        session: aiohttp.ClientSession,
        run_id: str,
        *,
        on_step: StepCallback,
        after: int = 0,
        limit: int = DEFAULT_PAGE_LIMIT,
        cancel: asyncio.Event | None = None,
    ) -> int:
        """Page through the ledger until it is exhausted.

        Returns the cursor to stream from next.
        """
        while True:
            if cancel is not None and cancel.is_set():
                return after
            requested = after
            page = await self.get_ledger(session, run_id, after=requested, limit=limit)
            if page.empty:
                return requested

            for entry in page.items:
                if cancel is not None and cancel.is_set():
                    return after
                await deliver(on_step, entry)
                after = max(after, entry.cursor)

            if page.next_after <= requested:
                log.warning(
                    f"Ledger replay for {run_id} stalled: next_after={page.next_after} after={requested}"
                )
                return after
            after = page.next_after

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream_ledger(
        self,
        session: aiohttp.ClientSession,
        run_id: str,
        *,
        on_step: StepCallback,
        after: int = 0,
        cancel: asyncio.Event | None = None,
    ) -> StreamStats:
        """Follow the live ledger, calling `on_step` for each entry.

        Returns when the gateway ends the stream or `cancel` is set. Raises
        `StreamConnectError` if the stream can't be opened and
        `StreamInterruptedError` if it breaks midway; there is no retry here.
        """
        stats = StreamStats()
        entries = self.iter_ledger(session, run_id, after=after, cancel=cancel, stats=stats)
        async with contextlib.aclosing(entries):
            async for entry in entries:
                await deliver(on_step, entry)
        return stats

    async def iter_ledger(
        self,
        session: aiohttp.ClientSession,
        run_id: str,
        *,
        after: int = 0,
        cancel: asyncio.Event | None = None,
        stats: StreamStats | None = None,
    ) -> AsyncIterator[LedgerEntry]:
        """Async-iterator form of `stream_ledger`."""
        stats = stats if stats is not None else StreamStats()
        url = self._make_url(_run_path(run_id, "/ledger/stream"))
        headers = self._headers({"Accept": "text/event-stream"})

        if cancel is not None and cancel.is_set():
            stats.cancelled = True
            return

        try:
            async with session.get(
                url,
                params={"after": str(int(after))},
                headers=headers,
                timeout=self._stream_timeout,
            ) as resp:
                await self._check_stream_response(resp)
                log.debug(f"Ledger stream open for {run_id} after={after}")
                entries = self.read_ledger_stream(resp, stats=stats, cancel=cancel)
                async with contextlib.aclosing(entries):
                    async for entry in entries:
                        yield entry
        except asyncio.CancelledError:
            raise
        except _TRANSPORT_ERRORS as e:
            raise StreamConnectError(str(e) or type(e).__name__) from e

    async def _check_stream_response(self, resp: aiohttp.ClientResponse) -> None:
        if not 200 <= resp.status < 300:
            try:
                detail = (await resp.text(errors="replace")).strip()
            except _TRANSPORT_ERRORS:
                detail = ""
            raise StreamConnectError(detail or None, status=resp.status)
        if resp.status == 204 or resp.content is None or isinstance(resp.content, EmptyStreamReader):
            raise StreamConnectError("response body is missing", status=resp.status)

    async def read_ledger_stream(
        self,
        resp: aiohttp.ClientResponse,
        *,
        stats: StreamStats,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[LedgerEntry]:
        """Yield ledger entries from an open event-stream response."""
        content = resp.content

        async def read_chunk() -> bytes:
            return await content.readany()

        try:
            async for entry in iter_ledger_entries(read_chunk, stats=stats, cancel=cancel):
                stats.delivered += 1
                stats.last_cursor = entry.cursor
                yield entry
        except asyncio.CancelledError:
            raise
        except _TRANSPORT_ERRORS as e:
            raise StreamInterruptedError(
                f"stream_ledger interrupted: {str(e) or type(e).__name__}",
                last_cursor=stats.last_cursor,
            ) from e
