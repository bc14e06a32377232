"""Shared fixtures: HTTP response builder, fake clock and pipeline stubs."""

from __future__ import annotations

import json
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import requests

from scripts.aliaswatch.config import AnonAddyConfig, AppConfig, HibpConfig, HttpConfig
from scripts.aliaswatch.models import Alias, BreachRecord


def make_response(
    status: int,
    body: Any = None,
    headers: Optional[dict] = None,
    text: Optional[str] = None,
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    if body is not None:
        resp._content = json.dumps(body).encode()
    else:
        resp._content = (text or "").encode()
    resp.encoding = "utf-8"
    resp.headers.update(headers or {})
    return resp


def make_session(*outcomes) -> MagicMock:
    """A Session whose request() yields each outcome in turn (responses or exceptions)."""
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.side_effect = list(outcomes)
    return session


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubSource:
    def __init__(self, aliases: Optional[list[Alias]] = None, error: Optional[Exception] = None) -> None:
        self.aliases = aliases or []
        self.error = error
        self.calls = 0

    def list_active_aliases(self) -> list[Alias]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.aliases)


class StubOracle:
    """Returns queued outcomes per address; an unqueued address is not breached."""

    def __init__(self, clock: FakeClock, outcomes: Optional[dict[str, list]] = None) -> None:
        self.clock = clock
        self.outcomes = {k: list(v) for k, v in (outcomes or {}).items()}
        self.calls: list[tuple[str, float]] = []

    def check(self, address: str) -> list[BreachRecord]:
        self.calls.append((address, self.clock.now))
        queue = self.outcomes.get(address)
        if not queue:
            return []
        outcome = queue.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class StubDeactivator:
    def __init__(self, errors: Optional[dict[str, Exception]] = None) -> None:
        self.errors = errors or {}
        self.calls: list[str] = []

    def deactivate(self, alias: Alias) -> None:
        self.calls.append(alias.id)
        error = self.errors.get(alias.id)
        if error is not None:
            raise error


class ForbiddenDeactivator:
    def deactivate(self, alias: Alias) -> None:
        pytest.fail(f"deactivate called for alias {alias.id}")


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        anonaddy=AnonAddyConfig(token="addy-token", host="https://addy.test", page_size=2),
        hibp=HibpConfig(token="hibp-token", host="https://hibp.test", min_interval=6.0),
        http=HttpConfig(connect_timeout=1.0, read_timeout=2.0),
        deactivate_retry_delay=0.5,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
