"""Gateway client configuration.

Configuration lives at the adapter boundary; any field left as None falls
back to the GATEWAY_* environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_HTTP_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class GatewayConfig:
    server_url: str | None = None
    auth_token: str | None = None

    # Optional overrides (otherwise env defaults apply)
    http_timeout_s: float | None = None
    stream_read_timeout_s: float | None = None


def resolve_server_url(server_url: str | None = None) -> str:
    base_url = (server_url or os.getenv("GATEWAY_URL") or "").strip()
    if base_url:
        return base_url.rstrip("/")

    host = os.getenv("GATEWAY_HOST", "127.0.0.1")
    port = os.getenv("GATEWAY_PORT", "8080")
    return f"http://{host}:{port}"


def resolve_auth_token(auth_token: str | None = None) -> str | None:
    token = (auth_token if auth_token is not None else os.getenv("GATEWAY_AUTH_TOKEN", "")).strip()
    return token or None


def _env_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def resolve_http_timeout(http_timeout_s: float | None = None) -> float:
    if http_timeout_s is not None:
        return http_timeout_s
    return _env_float("GATEWAY_HTTP_TIMEOUT_S") or DEFAULT_HTTP_TIMEOUT_S


def resolve_stream_read_timeout(stream_read_timeout_s: float | None = None) -> float | None:
    if stream_read_timeout_s is not None:
        return stream_read_timeout_s
    return _env_float("GATEWAY_STREAM_READ_TIMEOUT_S")
