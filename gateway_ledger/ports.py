"""Ports (interfaces) for ledger sources.

Followers and scripts depend on this contract rather than on the concrete
HTTP client, so tests and alternative transports can stand in for it.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

import aiohttp

from gateway_ledger.gateway.models import LedgerPage, StepCallback, StreamStats


@runtime_checkable
class LedgerSource(Protocol):
    """Bounded and streaming access to run ledgers."""

    async def get_ledger(
        self, session: aiohttp.ClientSession, run_id: str, *, after: int = 0, limit: int = 200
    ) -> LedgerPage:
        ...

    async def replay_ledger(
        self,
        session: aiohttp.ClientSession,
        run_id: str,
        *,
        on_step: StepCallback,
        after: int = 0,
        limit: int = 200,
        cancel: asyncio.Event | None = None,
    ) -> int:
        ...

    async def stream_ledger(
        self,
        session: aiohttp.ClientSession,
        run_id: str,
        *,
        on_step: StepCallback,
        after: int = 0,
        cancel: asyncio.Event | None = None,
    ) -> StreamStats:
        ...
