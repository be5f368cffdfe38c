from __future__ import annotations

import os
import tempfile
from typing import Any

_TEST_DIR = tempfile.mkdtemp(prefix="rolescout-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DIR}/rolescout-test.db")
os.environ.setdefault("DATA_DIR", _TEST_DIR)
os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402

from rolescout.config import Settings  # noqa: E402
from rolescout.db.base import Base  # noqa: E402
from rolescout.db.session import SessionLocal, engine  # noqa: E402
from rolescout.db import models  # noqa: E402,F401


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else repr(payload))

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeHttp:
    """Stands in for requests.Session. Routes map a URL to one response or a queue of them."""

    def __init__(self, routes: dict[str, Any] | None = None):
        self.routes = dict(routes or {})
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, params: dict[str, Any] | None = None, headers: dict[str, str] | None = None, **kwargs: Any):
        self.calls.append({"url": url, "params": dict(params or {}), "headers": dict(headers or {})})
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, text="not routed")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(params or {})
        if isinstance(route, list):
            return route.pop(0) if route else FakeResponse(200, payload=[])
        return route


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(
        pacing_delay_sec=0,
        brave_subscription_token="brave-test-token",
        serpapi_key="serp-test-key",
        imap_user="",
        imap_password="",
    )
