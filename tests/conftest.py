from __future__ import annotations

import contextlib
import sys
from pathlib import Path
from typing import AsyncIterator

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


def pytest_configure() -> None:
    # Keep `import gateway_ledger` working when running `pytest` from the repo root.
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


@pytest.fixture
def serve():
    """Serve an aiohttp app locally; yields its base URL."""

    @contextlib.asynccontextmanager
    async def _serve(app: web.Application) -> AsyncIterator[str]:
        async with TestServer(app) as server:
            yield f"http://{server.host}:{server.port}"

    return _serve
