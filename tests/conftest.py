"""Shared pytest fixtures for zapinbox tests."""
import sys
sys.dont_write_bytecode = True

from typing import Any, Callable  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from zapinbox.api.factory import create_app  # noqa: E402
from zapinbox.config import Settings  # noqa: E402
from zapinbox.inbox.ingest import Ingestor  # noqa: E402
from zapinbox.inbox.store import InboxStore  # noqa: E402
from zapinbox.zapi.client import ZapiClient  # noqa: E402

ZAPI_BASE = "https://zapi.test/instances/INST"
ZAPI_TOKEN = "tok123"

_INVALID_JSON = object()


class FakeResponse:
    """Just enough of requests.Response for ZapiClient."""

    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if self._payload is _INVALID_JSON:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    """Routes GETs by path; unknown paths answer 404.

    A route is a FakeResponse, a plain payload (served with 200), or a
    callable taking the query params and returning either of those.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes = routes or {}
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, params: dict | None = None, timeout: float | None = None) -> FakeResponse:
        path = url[len(ZAPI_BASE):] if url.startswith(ZAPI_BASE) else url
        query = dict(params or {})
        self.calls.append((path, query))

        route = self.routes.get(path)
        if route is None:
            return FakeResponse(404, {"error": "not found"})
        if callable(route):
            route = route(query)
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(200, route)

    def paths(self) -> list[str]:
        return [path for path, _ in self.calls]


@pytest.fixture
def invalid_json() -> object:
    """Sentinel payload making FakeResponse.json() raise."""
    return _INVALID_JSON


@pytest.fixture
def settings() -> Settings:
    return Settings(zapi_base=ZAPI_BASE, zapi_token=ZAPI_TOKEN, http_timeout=5)


@pytest.fixture
def store() -> InboxStore:
    return InboxStore()


@pytest.fixture
def ingestor(store: InboxStore, settings: Settings) -> Ingestor:
    return Ingestor(store, settings)


@pytest.fixture
def make_zapi() -> Callable[..., tuple[ZapiClient, FakeSession]]:
    """Build a ZapiClient backed by a FakeSession with the given routes."""

    def _make(routes: dict[str, Any] | None = None) -> tuple[ZapiClient, FakeSession]:
        session = FakeSession(routes)
        client = ZapiClient(ZAPI_BASE, ZAPI_TOKEN, timeout=5, session=session)  # type: ignore[arg-type]
        return client, session

    return _make


@pytest.fixture
def client(store: InboxStore, settings: Settings) -> TestClient:
    """API client over a fresh store; backfill hits no upstream routes."""
    app = create_app(
        store=store,
        settings=settings,
        zapi_client=ZapiClient(ZAPI_BASE, ZAPI_TOKEN, session=FakeSession()),  # type: ignore[arg-type]
        enable_debug=True,
    )
    return TestClient(app)
