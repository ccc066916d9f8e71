"""Resumable client for workflow-gateway run ledgers."""

from gateway_ledger.follow import LedgerFollower
from gateway_ledger.gateway import (
    GatewayClient,
    GatewayConfig,
    GatewayError,
    GatewayHTTPError,
    LedgerCursor,
    LedgerEntry,
    LedgerPage,
    StreamConnectError,
    StreamInterruptedError,
    StreamStats,
)
from gateway_ledger.ports import LedgerSource
from gateway_ledger.sse import Frame, SseParser

__all__ = [
    "Frame",
    "GatewayClient",
    "GatewayConfig",
    "GatewayError",
    "GatewayHTTPError",
    "LedgerCursor",
    "LedgerEntry",
    "LedgerFollower",
    "LedgerPage",
    "LedgerSource",
    "SseParser",
    "StreamConnectError",
    "StreamInterruptedError",
    "StreamStats",
]
