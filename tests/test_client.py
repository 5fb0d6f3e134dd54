import asyncio
from typing import Any

import pytest
import requests

from dac.api.client import AdminAPIClient, encode_params
from dac.api.resources import get_resource_config
from dac.exceptions import (
    AuthenticationError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from dac.models.mutation import MutationAction, MutationIntent
from dac.models.page import ResourceQuery
from dac.session import SessionState

from conftest import make_response


class FakeHTTP:
    """Stands in for requests.Session.request; records every call."""

    def __init__(self, responder: Any) -> None:
        self.responder = responder
        self.calls: list[dict[str, Any]] = []

    def __call__(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        outcome = self.responder(method, url, kwargs)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def client(config, session_state):
    api = AdminAPIClient(session_state=session_state, config=config)
    api.open()
    yield api
    api.close()


def install(monkeypatch, client, responder) -> FakeHTTP:
    fake = FakeHTTP(responder)
    monkeypatch.setattr(client.http, "request", fake)
    return fake


def test_base_url_and_timeout_come_from_config(client):
    assert client.base_url == "https://api.test"
    assert client.timeout == 5


def test_headers(client):
    headers = client.headers("tok")
    assert headers["Authorization"] == "Bearer tok"
    assert headers["Content-Type"] == "application/json"

    assert "Content-Type" not in client.headers("tok", multipart=True)
    assert "Authorization" not in client.headers(None)


def test_encode_params():
    assert encode_params({"isActive": True, "is_online": False, "search": None, "page": 2}) == {
        "isActive": "true",
        "is_online": "false",
        "page": 2,
    }
    assert encode_params({}) is None


@pytest.mark.asyncio
async def test_list_sends_filters_pagination_and_bearer_token(monkeypatch, client):
    fake = install(monkeypatch, client, lambda *_: make_response(200, {"success": True, "data": {"items": []}}))
    query = ResourceQuery(resource_type="users", filters={"isActive": True, "search": "ravi"}, page=2, limit=20)

    body = await client.list_resource(get_resource_config("users"), query)

    call = fake.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://api.test/admin/users"
    assert call["params"] == {"isActive": "true", "search": "ravi", "page": 2, "limit": 20}
    assert call["headers"]["Authorization"] == "Bearer token-1"
    assert call["timeout"] == 5
    assert body == {"success": True, "data": {"items": []}}


@pytest.mark.asyncio
async def test_unpaginated_resource_gets_no_page_params(monkeypatch, client):
    fake = install(monkeypatch, client, lambda *_: make_response(200, []))
    query = ResourceQuery(resource_type="companies", filters={"search": "acme"}, page=3, limit=20)

    await client.list_resource(get_resource_config("companies"), query)

    assert fake.calls[0]["params"] == {"search": "acme"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "body", "error_type"),
    [
        (400, {"message": "Bad request"}, ValidationError),
        (403, {"message": "Admins only"}, ForbiddenError),
        (404, None, NotFoundError),
        (409, {"message": "Duplicate"}, ValidationError),
        (408, None, NetworkError),
        (500, {"message": "boom"}, ServerError),
        (502, None, ServerError),
    ],
)
async def test_status_mapping(monkeypatch, client, status, body, error_type):
    install(monkeypatch, client, lambda *_: make_response(status, body, text="" if body is None else None))

    with pytest.raises(error_type):
        await client.request("GET", "/admin/orders")


@pytest.mark.asyncio
async def test_validation_error_carries_fields(monkeypatch, client):
    body = {"success": False, "error": {"message": "Invalid input", "details": {"gstNumber": "bad format"}}}
    install(monkeypatch, client, lambda *_: make_response(422, body))

    with pytest.raises(ValidationError) as exc_info:
        await client.request("POST", "/admin/companies", json={})

    assert exc_info.value.message == "Invalid input"
    assert exc_info.value.fields == {"gstNumber": "bad format"}
    assert exc_info.value.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "timed_out"),
    [(requests.exceptions.ConnectTimeout("slow"), True), (requests.exceptions.ConnectionError("refused"), False)],
)
async def test_transport_failures_become_network_errors(monkeypatch, client, exc, timed_out):
    install(monkeypatch, client, lambda *_: exc)

    with pytest.raises(NetworkError) as exc_info:
        await client.request("GET", "/admin/orders")

    assert exc_info.value.timed_out is timed_out


@pytest.mark.asyncio
async def test_concurrent_401s_clear_the_session_once(monkeypatch, client, session_state):
    install(monkeypatch, client, lambda *_: make_response(401, {"message": "jwt expired"}))
    cleared: list[str] = []
    session_state.on_cleared(cleared.append)

    results = await asyncio.gather(
        *(client.request("GET", f"/admin/orders?page={i}") for i in range(4)),
        return_exceptions=True,
    )

    assert all(isinstance(r, AuthenticationError) for r in results)
    assert cleared == ["unauthorized"]
    assert not session_state.is_authenticated


@pytest.mark.asyncio
async def test_request_without_session_sends_no_authorization(monkeypatch, client, session_state):
    session_state.logout()
    fake = install(monkeypatch, client, lambda *_: make_response(204))

    assert await client.request("POST", "/admin/auth/logout") is None
    assert "Authorization" not in fake.calls[0]["headers"]


@pytest.mark.asyncio
async def test_multipart_mutation_omits_content_type(monkeypatch, client):
    fake = install(monkeypatch, client, lambda *_: make_response(201, {"success": True, "data": {"id": "c-1"}}))
    intent = MutationIntent(
        entity="companies",
        action=MutationAction.CREATE,
        payload={"name": "Acme"},
        files={"logo": ("logo.png", b"\x89PNG")},
    )

    data = await client.send_mutation(get_resource_config("companies"), intent)

    call = fake.calls[0]
    assert data == {"id": "c-1"}
    assert call["method"] == "POST"
    assert call["url"] == "https://api.test/admin/companies"
    assert "Content-Type" not in call["headers"]
    assert call["files"] == {"logo": ("logo.png", b"\x89PNG")}
    assert call["data"] == {"name": "Acme"}
    assert call["json"] is None


@pytest.mark.asyncio
async def test_json_mutation_paths(monkeypatch, client):
    fake = install(monkeypatch, client, lambda *_: make_response(200, {"success": True, "data": {"ok": True}}))
    kyc = get_resource_config("kyc")
    compact = "0123456789abcdef0123456789abcdef"

    await client.send_mutation(
        kyc,
        MutationIntent(
            entity="kyc",
            action=MutationAction.TRANSITION,
            entity_id=compact,
            transition="reject",
            payload={"reason": "blurry"},
        ),
    )
    await client.send_mutation(kyc, MutationIntent(entity="kyc", action=MutationAction.DELETE, entity_id="k-2"))
    await client.send_mutation(
        get_resource_config("categories"),
        MutationIntent(entity="categories", action=MutationAction.TRANSITION, transition="reorder", payload={"ids": []}),
    )

    assert [(c["method"], c["url"]) for c in fake.calls] == [
        ("PUT", "https://api.test/admin/kyc/01234567-89ab-cdef-0123-456789abcdef/reject"),
        ("DELETE", "https://api.test/admin/kyc/k-2"),
        ("PUT", "https://api.test/admin/categories/reorder"),
    ]
    assert fake.calls[0]["json"] == {"reason": "blurry"}
    assert fake.calls[0]["headers"]["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_update_without_id_is_rejected_locally(monkeypatch, client):
    fake = install(monkeypatch, client, lambda *_: make_response(200, {}))

    with pytest.raises(ValidationError):
        await client.send_mutation(
            get_resource_config("offers"), MutationIntent(entity="offers", action=MutationAction.UPDATE, payload={})
        )
    assert fake.calls == []


@pytest.mark.asyncio
async def test_login_stores_token(monkeypatch, config):
    state = SessionState()
    api = AdminAPIClient(session_state=state, config=config)
    api.open()
    install(
        monkeypatch,
        api,
        lambda *_: make_response(200, {"success": True, "data": {"token": "new-token", "admin": {"id": "a1"}}}),
    )

    body = await api.login("ops@example.com", "pw")

    assert body["token"] == "new-token"
    assert state.read_token() == "new-token"
    assert state.user is not None and state.user.id == "a1"
    api.close()


@pytest.mark.asyncio
async def test_logout_clears_session_even_when_server_fails(monkeypatch, client, session_state):
    install(monkeypatch, client, lambda *_: make_response(500, {"message": "down"}))

    with pytest.raises(ServerError):
        await client.logout()

    assert not session_state.is_authenticated


@pytest.mark.asyncio
async def test_download_returns_raw_bytes(monkeypatch, client):
    fake = install(monkeypatch, client, lambda *_: make_response(200, text="%PDF-1.4"))

    content = await client.download_invoice("0123456789abcdef0123456789abcdef")

    assert content == b"%PDF-1.4"
    assert fake.calls[0]["url"].endswith("/admin/orders/01234567-89ab-cdef-0123-456789abcdef/invoice")


@pytest.mark.asyncio
async def test_request_requires_open_client(config, session_state):
    api = AdminAPIClient(session_state=session_state, config=config)

    with pytest.raises(RuntimeError):
        await api.request("GET", "/admin/orders")


def test_send_on_a_closed_client_raises_runtime_error(config, session_state):
    api = AdminAPIClient(session_state=session_state, config=config)
    api.open()
    api.close()

    with pytest.raises(RuntimeError, match="Client not initialized"):
        api._send("GET", "/admin/orders", None, None, None, None, api.headers("token-1"), False)
