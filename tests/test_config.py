from __future__ import annotations

import aiohttp
import pytest

from gateway_ledger.gateway import GatewayClient, GatewayConfig
from gateway_ledger.gateway.config import (
    DEFAULT_HTTP_TIMEOUT_S,
    resolve_auth_token,
    resolve_http_timeout,
    resolve_server_url,
    resolve_stream_read_timeout,
)

_ENV = (
    "GATEWAY_URL",
    "GATEWAY_HOST",
    "GATEWAY_PORT",
    "GATEWAY_AUTH_TOKEN",
    "GATEWAY_HTTP_TIMEOUT_S",
    "GATEWAY_STREAM_READ_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_server_url_defaults_to_local_gateway() -> None:
    assert resolve_server_url() == "http://127.0.0.1:8080"


def test_server_url_from_host_and_port(monkeypatch) -> None:
    monkeypatch.setenv("GATEWAY_HOST", "gw.internal")
    monkeypatch.setenv("GATEWAY_PORT", "9000")
    assert resolve_server_url() == "http://gw.internal:9000"


def test_explicit_url_wins_and_trailing_slash_is_stripped(monkeypatch) -> None:
    monkeypatch.setenv("GATEWAY_URL", "http://env:1/")
    assert resolve_server_url() == "http://env:1"
    assert resolve_server_url(" https://gw.example.com/base// ") == "https://gw.example.com/base"


def test_auth_token_resolution(monkeypatch) -> None:
    assert resolve_auth_token() is None
    monkeypatch.setenv("GATEWAY_AUTH_TOKEN", " env-token ")
    assert resolve_auth_token() == "env-token"
    assert resolve_auth_token("explicit") == "explicit"
    # An explicit empty token disables auth even when the env has one.
    assert resolve_auth_token("") is None
    assert resolve_auth_token("   ") is None


def test_timeouts(monkeypatch) -> None:
    assert resolve_http_timeout() == DEFAULT_HTTP_TIMEOUT_S
    assert resolve_stream_read_timeout() is None

    monkeypatch.setenv("GATEWAY_HTTP_TIMEOUT_S", "12.5")
    monkeypatch.setenv("GATEWAY_STREAM_READ_TIMEOUT_S", "90")
    assert resolve_http_timeout() == 12.5
    assert resolve_stream_read_timeout() == 90.0
    assert resolve_http_timeout(3.0) == 3.0

    monkeypatch.setenv("GATEWAY_HTTP_TIMEOUT_S", "-1")
    monkeypatch.setenv("GATEWAY_STREAM_READ_TIMEOUT_S", "soon")
    assert resolve_http_timeout() == DEFAULT_HTTP_TIMEOUT_S
    assert resolve_stream_read_timeout() is None


def test_client_applies_config(monkeypatch) -> None:
    monkeypatch.setenv("GATEWAY_AUTH_TOKEN", "from-env")
    client = GatewayClient(GatewayConfig(server_url="http://gw:1/", http_timeout_s=4.0))

    assert client.server_url == "http://gw:1"
    assert client.auth_token == "from-env"
    assert isinstance(client._http_timeout, aiohttp.ClientTimeout)
    assert client._http_timeout.total == 4.0
