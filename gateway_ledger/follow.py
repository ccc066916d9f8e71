"""Replay-then-stream ledger follower.

The stream consumer never reconnects on its own. This is the caller-side loop
that does: replay missed entries with bounded polls, open the live stream at
the replayed cursor, and on failure wait with exponential backoff before
reopening at the last delivered cursor.
"""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from gateway_ledger.gateway.client import DEFAULT_PAGE_LIMIT, deliver
from gateway_ledger.gateway.errors import GatewayError
from gateway_ledger.gateway.models import LedgerCursor, LedgerEntry, StepCallback
from gateway_ledger.ports import LedgerSource

log = logging.getLogger("gateway.follow")

_RETRYABLE = (GatewayError, aiohttp.ClientError, asyncio.TimeoutError)


class LedgerFollower:
    """Follows one run's ledger until cancelled.

    Entries at or before the current cursor are skipped, so the overlap
    between replayed and streamed entries is never delivered twice.
    """

    def __init__(
        self,
        source: LedgerSource,
        run_id: str,
        on_step: StepCallback,
        *,
        after: int = 0,
        replay_limit: int = DEFAULT_PAGE_LIMIT,
        reconnect: bool = True,
        initial_backoff_s: float = 0.25,
        max_backoff_s: float = 5.0,
        backoff_factor: float = 1.6,
    ):
        if not isinstance(source, LedgerSource):
            raise TypeError("source does not satisfy the LedgerSource port")
        self.source = source
        self.on_step = on_step
        self.cursor = LedgerCursor(run_id=run_id, after=after)
        self.replay_limit = replay_limit
        self.reconnect = reconnect
        self.initial_backoff_s = initial_backoff_s
        self.max_backoff_s = max_backoff_s
        self.backoff_factor = backoff_factor

        self.delivered = 0
        self.skipped = 0
        self.connections = 0
        self.last_error: BaseException | None = None
        self._cancel = asyncio.Event()

    @property
    def run_id(self) -> str:
        return self.cursor.run_id

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Stop following; no entry is delivered after this returns."""
        self._cancel.set()

    async def _deliver(self, entry: LedgerEntry) -> None:
        if self._cancel.is_set():
            return
        if entry.cursor <= self.cursor.after:
            self.skipped += 1
            return
        await deliver(self.on_step, entry)
        self.cursor = self.cursor.advance(entry)
        self.delivered += 1

    async def _connect_once(self, session: aiohttp.ClientSession) -> None:
        after = await self.source.replay_ledger(
            session,
            self.run_id,
            on_step=self._deliver,
            after=self.cursor.after,
            limit=self.replay_limit,
            cancel=self._cancel,
        )
        if self._cancel.is_set():
            return
        if after > self.cursor.after:
            self.cursor = LedgerCursor(run_id=self.run_id, after=after)

        self.connections += 1
        stats = await self.source.stream_ledger(
            session,
            self.run_id,
            on_step=self._deliver,
            after=self.cursor.after,
            cancel=self._cancel,
        )
        if not stats.cancelled:
            log.info(
                f"Ledger stream for {self.run_id} ended at cursor {self.cursor.after} "
                f"(delivered={stats.delivered} dropped={stats.dropped})"
            )

    async def _wait(self, delay: float) -> bool:
        """Sleep for `delay`; return True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._cancel.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def run(self, session: aiohttp.ClientSession) -> LedgerCursor:
        """Follow the ledger; returns the final cursor.

        With `reconnect=False` this is a single replay + stream pass and
        errors propagate to the caller.
        """
        backoff = self.initial_backoff_s

        while not self._cancel.is_set():
            delivered_before = self.delivered
            try:
                await self._connect_once(session)
            except asyncio.CancelledError:
                raise
            except _RETRYABLE as e:
                if self._cancel.is_set():
                    break
                self.last_error = e
                if not self.reconnect:
                    raise
                log.warning(f"Ledger stream error for {self.run_id} (will retry): {e}")

            if self._cancel.is_set() or not self.reconnect:
                break

            if self.delivered > delivered_before:
                backoff = self.initial_backoff_s
            log.debug(f"Reconnecting to {self.run_id} in {backoff:.2f}s at cursor {self.cursor.after}")
            if await self._wait(backoff):
                break
            backoff = min(self.max_backoff_s, backoff * self.backoff_factor)

        return self.cursor
