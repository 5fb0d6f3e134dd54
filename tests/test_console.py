import asyncio
from datetime import date
from typing import Any

import pytest

from dac.api.client import AdminAPIClient
from dac.core.constants import PageWarning
from dac.core.errors import ErrorKind
from dac.exceptions import ServerError, UnsupportedOperationError
from dac.models.cache import CacheStatus
from dac.services.console import AdminConsole

ORDERS = [{"id": f"order-{i}", "orderNumber": f"ORD-{i:04d}", "status": "pending"} for i in range(45)]
CATEGORIES = [{"_id": f"cat-{i}", "name": f"Category {i}"} for i in range(45)]
LOCATIONS = [
    {"city": "Pune", "state": "MH", "activeUsers": 12, "inactiveUsers": 3},
    {"city": "Indore", "state": "MP", "activeUsers": 4, "inactiveUsers": 6},
]


class FakeBackend:
    """Replaces AdminAPIClient.request with canned admin API answers."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any] | None]] = []
        self.bodies: list[Any] = []
        self.fail_next: Exception | None = None

    async def __call__(self, method: str, path: str, params: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        self.calls.append((method, path, params))
        self.bodies.append(kwargs.get("json"))
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

        if method == "GET" and path == "/admin/orders":
            page, limit = params["page"], params["limit"]
            start = (page - 1) * limit
            return {
                "success": True,
                "data": {
                    "items": ORDERS[start : start + limit],
                    "pagination": {"page": page, "limit": limit, "total": len(ORDERS), "totalPages": 3},
                },
            }
        if method == "GET" and path == "/admin/reports/weekly/user-location":
            summary = {"totalActive": 16, "totalInactive": 9, "totalUsers": 25}
            return {"success": True, "data": {"locations": LOCATIONS, "summary": summary}}
        if method == "GET" and path == "/admin/categories":
            return {"success": True, "data": CATEGORIES}
        if method == "GET" and path == "/admin/brands":
            return {"success": True, "data": {"brands": [{"id": "b-1", "company": {"name": "Acme"}}]}}
        if method == "GET" and path.startswith("/admin/orders/"):
            return {"success": True, "data": {"id": path.rsplit("/", 1)[-1]}}
        if method == "DELETE":
            return {"success": True, "message": "deleted"}
        return {"success": True, "data": kwargs.get("json") or {}}


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def admin(monkeypatch, config, session_state, backend) -> AdminConsole:
    client = AdminAPIClient(session_state=session_state, config=config)
    monkeypatch.setattr(client, "request", backend)
    return AdminConsole(client, config)


@pytest.mark.asyncio
async def test_orders_first_page_scenario(admin, backend):
    entry = await admin.list("orders", {"status": "all", "page": 1})

    assert entry.status == CacheStatus.SUCCESS
    assert entry.data.pagination.model_dump(by_alias=True) == {"page": 1, "limit": 20, "total": 45, "totalPages": 3}
    assert len(entry.items) == 20
    assert backend.calls == [("GET", "/admin/orders", {"page": 1, "limit": 20})]


@pytest.mark.asyncio
async def test_repeat_list_is_served_from_cache(admin, backend):
    await admin.list("orders", {"search": "ORD"})
    await admin.list("orders", {"search": " ORD ", "status": "all"})

    assert len(backend.calls) == 1

    await admin.refresh("orders", {"search": "ORD"})
    assert len(backend.calls) == 2


@pytest.mark.asyncio
async def test_unpaginated_resource_is_sliced_client_side(admin):
    entry = await admin.list("categories", {"page": 3})

    assert [item["_id"] for item in entry.items] == [f"cat-{i}" for i in range(40, 45)]
    assert entry.data.pagination.total == 45
    assert PageWarning.CLIENT_PAGINATED in entry.data.warnings


@pytest.mark.asyncio
async def test_iter_pages_walks_every_page(admin, backend):
    pages = [page async for page in admin.iter_pages("orders", {"limit": 20})]

    assert [p.pagination.page for p in pages] == [1, 2, 3]
    assert sum(len(p.items) for p in pages) == 45
    assert len(backend.calls) == 3


@pytest.mark.asyncio
async def test_delete_company_invalidates_cached_brands(admin, backend):
    brands = await admin.list("brands")
    assert brands.items[0]["company"]["name"] == "Acme"

    outcome = await admin.delete("company", "0123456789abcdef0123456789abcdef")

    assert outcome.ok
    assert backend.calls[-1] == ("DELETE", "/admin/companies/01234567-89ab-cdef-0123-456789abcdef", None)
    assert admin.watch("brands").status == CacheStatus.FETCHING
    await admin.store.wait_idle()
    assert [c[1] for c in backend.calls].count("/admin/brands") == 2


@pytest.mark.asyncio
async def test_list_failure_is_classified(admin, backend):
    backend.fail_next = ServerError(500, "database down")

    entry = await admin.list("orders")

    assert entry.is_error
    assert entry.last_error.kind == ErrorKind.SERVER_ERROR
    assert entry.data is None


@pytest.mark.asyncio
async def test_transition_and_detail(admin, backend):
    outcome = await admin.transition("kyc", "k-1", "verify", payload={"note": "ok"})
    detail = await admin.detail("orders", "o-9")

    assert outcome.ok and outcome.invalidated == ["kyc", "users"]
    assert backend.calls[0][:2] == ("PUT", "/admin/kyc/k-1/verify")
    assert detail == {"id": "o-9"}


def test_build_query_is_canonical(admin):
    first = admin.build_query("users", {"status": "active", "search": "a"})
    second = admin.build_query("user", {"search": "a", "status": "active"})

    assert first == second
    assert first.filters == {"isActive": True, "search": "a"}


@pytest.mark.asyncio
async def test_weekly_report_is_cached_per_date_window(admin, backend):
    this_week = await admin.weekly_report(date(2024, 5, 13), date(2024, 5, 15))
    again = await admin.weekly_report(date(2024, 5, 13), date(2024, 5, 15))

    assert backend.calls == [
        ("GET", "/admin/reports/weekly/user-location", {"endDate": "2024-05-15", "startDate": "2024-05-13"})
    ]
    assert again.items == this_week.items == LOCATIONS
    assert this_week.data.summary == {"totalActive": 16, "totalInactive": 9, "totalUsers": 25}

    last_week = await admin.weekly_report(date(2024, 5, 6), date(2024, 5, 12))

    assert len(backend.calls) == 2
    assert backend.calls[-1][2] == {"endDate": "2024-05-12", "startDate": "2024-05-06"}
    assert last_week.data.pagination.total == 2
    assert this_week.key != last_week.key
    assert {key.resource_type for key in (this_week.key, last_week.key)} == {"weekly-reports"}


@pytest.mark.asyncio
async def test_change_password_goes_through_the_coordinator(admin, backend):
    outcome = await admin.change_password("old-secret", "new-secret")

    assert outcome.ok
    assert outcome.invalidated == ["account"]
    assert backend.calls == [("PUT", "/admin/auth/change-password", None)]
    assert backend.bodies == [{"currentPassword": "old-secret", "newPassword": "new-secret"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("current", "new", "field"),
    [("", "new-secret", "currentPassword"), ("old-secret", "", "newPassword"), ("old-secret", "12345", "newPassword")],
)
async def test_invalid_password_change_is_rejected_locally(admin, backend, current, new, field):
    outcome = await admin.change_password(current, new)

    assert not outcome.ok
    assert outcome.error.kind == ErrorKind.VALIDATION
    assert field in outcome.error.fields
    assert backend.calls == []


@pytest.mark.asyncio
async def test_second_password_change_while_pending_is_busy(admin, backend):
    release = asyncio.Event()
    sent = []

    async def slow_sender(resource, intent):
        sent.append(intent)
        await release.wait()
        return {}

    admin.mutations._sender = slow_sender
    first = asyncio.create_task(admin.change_password("old-secret", "new-secret"))
    await asyncio.sleep(0)

    second = await admin.change_password("old-secret", "new-secret")
    release.set()
    outcome = await first

    assert second.busy
    assert outcome.ok
    assert len(sent) == 1


@pytest.mark.asyncio
async def test_account_has_no_list_or_crud(admin, backend):
    with pytest.raises(UnsupportedOperationError):
        await admin.list("account")
    with pytest.raises(UnsupportedOperationError):
        await admin.delete("weekly-reports", "w-1")

    assert backend.calls == []
