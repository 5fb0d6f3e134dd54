"""Admin backend REST client implementation."""

import asyncio
import logging
from typing import Any

import requests

from dac.api.resources import ResourceConfig
from dac.config import Config, load_config
from dac.core.errors import extract_fields, extract_message, parse_body
from dac.core.identity import normalize_id
from dac.core.normalizer import unwrap_envelope
from dac.exceptions import (
    APIError,
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
from dac.session import session as default_session


def encode_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop null parameters and spell booleans the way the backend expects."""
    if not params:
        return None
    encoded: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        encoded[key] = ("true" if value else "false") if isinstance(value, bool) else value
    return encoded


class AdminAPIClient:
    """Client for the delivery platform's admin REST API.

    Blocking ``requests`` calls run on a worker thread; the session token is
    read, and authorization failures handled, on the calling event loop.
    """

    def __init__(
        self,
        base_url: str | None = None,
        session_state: SessionState | None = None,
        timeout: float | None = None,
        config: Config | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            base_url: Backend base URL (defaults to DAC_API_URL)
            session_state: Session holding the bearer token (defaults to the process-wide session)
            timeout: Per-request timeout in seconds (defaults to DAC_REQUEST_TIMEOUT)
            config: Preloaded configuration

        """
        self.logger = logging.getLogger(__name__)
        self.config = config or load_config()

        self.base_url = (base_url or self.config.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else self.config.request_timeout
        self.session_state = session_state or default_session
        self.http: requests.Session | None = None

        self.logger.debug(f"AdminAPIClient for {self.base_url} (timeout {self.timeout}s)")

    async def __aenter__(self) -> "AdminAPIClient":
        """Enter context."""
        self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit context."""
        self.close()

    def open(self) -> None:
        if self.http is None:
            self.logger.info("Opening client session")
            self.http = requests.Session()

    def close(self) -> None:
        if self.http is not None:
            self.logger.info("Closing client session")
            self.http.close()
            self.http = None

    def headers(self, token: str | None, multipart: bool = False) -> dict[str, str]:
        """Get request headers.

        Multipart bodies get no Content-Type so the transport can add the boundary.
        """
        headers = {"Accept": "application/json"}
        if not multipart:
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        raw: bool = False,
    ) -> Any:
        """Send one request and return its parsed JSON body (or bytes when ``raw``).

        Raises:
            ValidationError, AuthenticationError, ForbiddenError, NotFoundError,
            ServerError: on error statuses
            NetworkError: when no response was received

        """
        if self.http is None:
            raise RuntimeError("Client not initialized. Use async context manager.")

        token = self.session_state.read_token()
        multipart = files is not None
        headers = self.headers(token, multipart=multipart)

        try:
            return await asyncio.to_thread(
                self._send, method, path, encode_params(params), json, data, files, headers, raw
            )
        except AuthenticationError:
            if self.session_state.expire(token):
                self.logger.warning(f"Session cleared after 401 from {method} {path}")
            raise

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        json: Any,
        data: dict[str, Any] | None,
        files: dict[str, Any] | None,
        headers: dict[str, str],
        raw: bool,
    ) -> Any:
        """Perform the blocking HTTP call and map the status code."""
        if not self.http:
            raise RuntimeError("Client not initialized. Use async context manager.")
        url = f"{self.base_url}{path}"
        method_name = f"{method} {path}"

        self.logger.debug(f"Making request: {method_name} params={params}")

        try:
            response = self.http.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json if files is None else None,
                data=data if files is not None else None,
                files=files,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise NetworkError(method_name, "timeout", self.timeout) from None
        except requests.exceptions.RequestException as e:
            raise NetworkError(method_name, str(e) or type(e).__name__) from e

        if 200 <= response.status_code < 300:
            if raw:
                return response.content
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                self.logger.warning(f"Non-JSON success body from {method_name}")
                return None

        raise self._error_for(response, method_name)

    def _error_for(self, response: requests.Response, method_name: str) -> APIError | NetworkError:
        response_text = response.text
        body = parse_body(response_text)
        status = response.status_code

        # Map status codes to exceptions
        error_map = {
            401: lambda: AuthenticationError(
                extract_message(body, f"Unauthorized access in {method_name}"), response_text
            ),
            403: lambda: ForbiddenError(extract_message(body, f"Access forbidden in {method_name}"), response_text),
            404: lambda: NotFoundError(extract_message(body, f"Resource not found in {method_name}"), response_text),
            408: lambda: NetworkError(method_name, "request timeout", self.timeout),
        }

        if status in error_map:
            error = error_map[status]()
        elif 400 <= status < 500:
            error = ValidationError(
                extract_message(body, f"Request rejected in {method_name}"),
                response_text,
                fields=extract_fields(body),
                status_code=status,
            )
        else:
            error = ServerError(status, extract_message(body, f"Server error in {method_name}"), response_text)

        self.logger.error(f"{method_name} failed with HTTP {status}: {error}")
        return error

    async def list_resource(self, resource: ResourceConfig, query: ResourceQuery) -> Any:
        """Fetch the raw list body for a query; envelope handling is the normalizer's job."""
        params = query.to_params() if resource.paginated else dict(query.filters)
        self.logger.info(f"Fetching {resource.name} page {query.page}")
        return await self.request("GET", resource.collection_path, params=params)

    async def get_resource(self, resource: ResourceConfig, entity_id: str) -> Any:
        """Fetch one entity's detail record."""
        path = resource.item_path(normalize_id(entity_id))
        self.logger.info(f"Fetching {resource.entity} {entity_id}")
        return unwrap_envelope(await self.request("GET", path))

    async def send_mutation(self, resource: ResourceConfig, intent: MutationIntent) -> Any:
        """Send the HTTP request behind a mutation intent."""
        entity_id = normalize_id(intent.entity_id) if intent.entity_id else None
        multipart = resource.multipart and intent.files is not None

        match intent.action:
            case MutationAction.CREATE:
                method, path = "POST", resource.collection_path
            case MutationAction.UPDATE:
                method, path = "PUT", resource.item_path(self._require_id(resource, intent, entity_id))
            case MutationAction.DELETE:
                method, path = "DELETE", resource.item_path(self._require_id(resource, intent, entity_id))
            case MutationAction.TRANSITION:
                route = resource.transition_route(intent.transition)
                method = route.method
                if entity_id:
                    path = f"{resource.item_path(entity_id)}/{route.suffix}"
                else:
                    path = f"{resource.collection_path}/{route.suffix}"
                multipart = route.multipart and intent.files is not None

        self.logger.info(f"{intent.action.value} {resource.entity} {entity_id or ''}".rstrip())
        if multipart:
            body = await self.request(method, path, data=intent.payload, files=intent.files)
        else:
            body = await self.request(method, path, json=intent.payload)
        return unwrap_envelope(body)

    @staticmethod
    def _require_id(resource: ResourceConfig, intent: MutationIntent, entity_id: str | None) -> str:
        if not entity_id:
            raise ValidationError(
                f"{intent.action.value} on {resource.entity} needs an id",
                fields={"id": "required"},
                status_code=400,
            )
        return entity_id

    async def download(self, path: str, params: dict[str, Any] | None = None) -> bytes:
        """Fetch a binary export (CSV/XLSX/PDF); never cached."""
        self.logger.info(f"Downloading {path}")
        return await self.request("GET", path, params=params, raw=True)

    async def download_invoice(self, order_id: str) -> bytes:
        return await self.download(f"/admin/orders/{normalize_id(order_id)}/invoice")

    async def download_weekly_report(self, start: str, end: str) -> bytes:
        return await self.download("/admin/reports/weekly/user-location/export", {"startDate": start, "endDate": end})

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Sign in and store the returned token in the session."""
        body = unwrap_envelope(await self.request("POST", "/admin/auth/login", json={"email": email, "password": password}))
        if not isinstance(body, dict) or not body.get("token"):
            raise ValidationError("Login response carried no token", fields={"token": "missing"}, status_code=400)

        self.session_state.login(body["token"], user=body.get("admin") or body.get("user"))
        self.logger.info(f"Signed in as {email}")
        return body

    async def logout(self) -> None:
        """Sign out on the server; the local session is cleared either way."""
        try:
            if self.session_state.read_token():
                await self.request("POST", "/admin/auth/logout")
        finally:
            self.session_state.logout()

    async def current_admin(self) -> dict[str, Any]:
        return unwrap_envelope(await self.request("GET", "/admin/auth/me"))
