"""Shared fixtures: fake transports, a controllable clock and a signed-in session."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest
import requests

from dac.cache.store import ResourceQueryStore
from dac.config import Config
from dac.models.page import Pagination, ResourcePage, ResourceQuery
from dac.session import SessionState


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_page(query: ResourceQuery, total: int = 45, tag: str = "v1") -> ResourcePage:
    start = query.offset
    count = max(0, min(query.limit, total - start))
    items = [{"id": f"{query.resource_type}-{start + i}", "tag": tag} for i in range(count)]
    return ResourcePage(items=items, pagination=Pagination.build(query.page, query.limit, total))


class FakeFetcher:
    """Page fetcher for the cache store.

    In auto mode every call answers immediately. In manual mode each call parks
    on a future in ``pending`` until the test resolves or fails it.
    """

    def __init__(self) -> None:
        self.auto = True
        self.tag = "v1"
        self.error: Exception | None = None
        self.calls: list[ResourceQuery] = []
        self.pending: list[asyncio.Future[ResourcePage]] = []
        self._pending_by_call: dict[int, asyncio.Future[ResourcePage]] = {}

    async def __call__(self, query: ResourceQuery) -> ResourcePage:
        self.calls.append(query)
        if self.auto:
            if self.error is not None:
                raise self.error
            return build_page(query, tag=self.tag)
        future: asyncio.Future[ResourcePage] = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        self._pending_by_call[len(self.calls) - 1] = future
        return await future

    def resolve(self, index: int, tag: str) -> None:
        self._pending_by_call[index].set_result(build_page(self.calls[index], tag=tag))

    def fail(self, index: int, error: Exception) -> None:
        self._pending_by_call[index].set_exception(error)


class FakeSender:
    """Mutation sender; parks calls on futures when ``auto`` is off."""

    def __init__(self) -> None:
        self.auto = True
        self.error: Exception | None = None
        self.calls: list[tuple[str, Any]] = []
        self.pending: list[asyncio.Future[Any]] = []

    async def __call__(self, resource: Any, intent: Any) -> Any:
        self.calls.append((resource.name, intent))
        if self.auto:
            if self.error is not None:
                raise self.error
            return {"id": intent.entity_id or "new-id"}
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


def make_response(status: int, body: Any = None, text: str | None = None) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    response.encoding = "utf-8"
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = (text or "").encode("utf-8")
    return response


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def store(fetcher: FakeFetcher, clock: FakeClock) -> ResourceQueryStore:
    return ResourceQueryStore(fetcher, max_entries=50, stale_after=30, clock=clock)


@pytest.fixture
def page_factory() -> Callable[..., ResourcePage]:
    return build_page


@pytest.fixture
def response_factory() -> Callable[..., requests.Response]:
    return make_response


@pytest.fixture
def session_state() -> SessionState:
    state = SessionState()
    state.login("token-1", user={"id": "admin-1", "email": "ops@example.com", "name": "Ops"})
    return state


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's DAC_* environment out of the tests."""
    for name in (
        "DAC_API_URL",
        "DAC_API_TOKEN",
        "DAC_TOKEN_EXPIRES_AT",
        "DAC_REQUEST_TIMEOUT",
        "DAC_PAGE_SIZE",
        "DAC_CACHE_MAX_ENTRIES",
        "DAC_STALE_AFTER",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> Config:
    return Config(api_url="https://api.test/api", page_size=20, request_timeout=5)


@pytest.fixture
def settle_tasks() -> Callable[..., Any]:
    return settle
