"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and a scripted HTTP
transport for client tests. Fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import json
import logging
import os
from typing import Any

import httpx
import pytest

TEST_API_KEY = "test-api-key"
TEST_BASE_URL = "http://cursor.test"

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class ScriptedTransport:
    """Records requests and answers them from a route table.

    Routes map ``(method, path)`` to a JSON-able body, an ``httpx.Response``,
    or an exception to raise. Unknown routes answer 404 with an API error body.
    """

    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def add(self, method: str, path: str, response: Any, status: int = 200) -> None:
        if isinstance(response, (httpx.Response, BaseException)):
            self.routes[(method, path)] = response
        else:
            self.routes[(method, path)] = httpx.Response(status, json=response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(
                404,
                json={"error": {"code": "NOT_FOUND", "message": "No route", "details": None}},
            )
        if isinstance(route, BaseException):
            raise route
        return route

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=self.transport)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last_request.content)


@pytest.fixture
def scripted() -> ScriptedTransport:
    """A fresh ScriptedTransport (not autouse)."""
    return ScriptedTransport()


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Config resolution calls ``dotenv.load_dotenv`` lazily, so replacing the
    module attribute covers every load.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_cursor_env(request, monkeypatch, tmp_path):
    """Ensure a clean CURSOR_* environment and an empty working directory.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("CURSOR_"):
            monkeypatch.delenv(key, raising=False)
    # resolve_config() reads ./pyproject.toml; keep the repo's own file out of it.
    monkeypatch.chdir(tmp_path)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
