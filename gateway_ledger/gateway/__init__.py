"""Gateway ledger client package."""

from gateway_ledger.gateway.client import GatewayClient
from gateway_ledger.gateway.config import GatewayConfig
from gateway_ledger.gateway.errors import (
    GatewayError,
    GatewayHTTPError,
    StreamConnectError,
    StreamInterruptedError,
)
from gateway_ledger.gateway.models import LedgerCursor, LedgerEntry, LedgerPage, StreamStats

__all__ = [
    "GatewayClient",
    "GatewayConfig",
    "GatewayError",
    "GatewayHTTPError",
    "LedgerCursor",
    "LedgerEntry",
    "LedgerPage",
    "StreamConnectError",
    "StreamInterruptedError",
    "StreamStats",
]
