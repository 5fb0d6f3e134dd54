"""Classification of transport and HTTP outcomes into a closed error taxonomy."""

import json
import logging
from enum import StrEnum
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field

from dac.exceptions import (
    APIError,
    AuthenticationError,
    BusyError,
    DACError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ErrorKind(StrEnum):
    """Closed set of failure kinds the console distinguishes."""

    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    BUSY = "busy"


class Recovery(StrEnum):
    """How a failure of a given kind is handled."""

    LOCAL = "local"  # re-render the form with field messages
    SESSION = "session"  # session cleared, sign in again
    NOTICE = "notice"  # informational no-op notice
    SURFACE = "surface"  # shown to the user


RECOVERY_BY_KIND: dict[ErrorKind, Recovery] = {
    ErrorKind.VALIDATION: Recovery.LOCAL,
    ErrorKind.UNAUTHORIZED: Recovery.SESSION,
    ErrorKind.FORBIDDEN: Recovery.SURFACE,
    ErrorKind.NOT_FOUND: Recovery.SURFACE,
    ErrorKind.SERVER_ERROR: Recovery.SURFACE,
    ErrorKind.NETWORK_ERROR: Recovery.SURFACE,
    ErrorKind.BUSY: Recovery.NOTICE,
}

# Kinds for which offering a manual "try again" makes sense
RETRYABLE_KINDS = frozenset({ErrorKind.SERVER_ERROR, ErrorKind.NETWORK_ERROR})


class ClassifiedError(BaseModel):
    """A failure mapped onto the taxonomy."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    status_code: int | None = None
    fields: dict[str, str] = Field(default_factory=dict)

    @property
    def recovery(self) -> Recovery:
        return RECOVERY_BY_KIND[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def surfaced(self) -> bool:
        return self.recovery == Recovery.SURFACE


def kind_for_status(status_code: int) -> ErrorKind:
    """Map an HTTP error status onto an error kind."""
    if status_code == 401:
        return ErrorKind.UNAUTHORIZED
    if status_code == 403:
        return ErrorKind.FORBIDDEN
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 408:
        return ErrorKind.NETWORK_ERROR
    if 400 <= status_code < 500:
        return ErrorKind.VALIDATION
    return ErrorKind.SERVER_ERROR


def parse_body(response_text: str | None) -> Any:
    """Parse an error body as JSON, returning None when it is not JSON."""
    if not response_text:
        return None
    try:
        return json.loads(response_text)
    except ValueError:
        return None


def extract_message(body: Any, default: str) -> str:
    """Pull the human-readable message out of the usual error bodies."""
    if not isinstance(body, dict):
        return default
    error = body.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    for key in ("message", "detail"):
        if isinstance(body.get(key), str):
            return body[key]
    return default


def extract_fields(body: Any) -> dict[str, str]:
    """Pull field-level validation messages out of the usual error bodies.

    Understands ``{"error": {"details": {...}}}``, ``{"errors": {...}}``,
    ``{"errors": [{"field": ..., "message": ...}]}`` and FastAPI-style
    ``{"detail": [{"loc": [...], "msg": ...}]}``.
    """
    if not isinstance(body, dict):
        return {}

    candidates: list[Any] = []
    error = body.get("error")
    if isinstance(error, dict):
        candidates.append(error.get("details"))
    candidates.extend([body.get("errors"), body.get("details"), body.get("detail")])

    for candidate in candidates:
        fields = _fields_from(candidate)
        if fields:
            return fields
    return {}


def _fields_from(candidate: Any) -> dict[str, str]:
    fields: dict[str, str] = {}
    if isinstance(candidate, dict):
        for name, messages in candidate.items():
            if isinstance(messages, list):
                fields[str(name)] = "; ".join(str(m) for m in messages)
            else:
                fields[str(name)] = str(messages)
    elif isinstance(candidate, list):
        for item in candidate:
            if not isinstance(item, dict):
                continue
            name = item.get("field") or item.get("path") or item.get("param")
            if name is None and isinstance(item.get("loc"), list) and item["loc"]:
                name = item["loc"][-1]
            message = item.get("message") or item.get("msg")
            if name is not None and message is not None:
                fields[str(name)] = str(message)
    return fields


def classify(outcome: Any, body: Any = None) -> ClassifiedError:
    """Map a transport outcome onto the error taxonomy.

    Args:
        outcome: A DACError, a requests exception, or an HTTP status code
        body: Parsed response body, used when ``outcome`` is a status code

    Returns:
        The classified error

    """
    if isinstance(outcome, bool):
        raise TypeError("classify() expects an exception or a status code")

    if isinstance(outcome, int):
        kind = kind_for_status(outcome)
        fields = extract_fields(body) if kind == ErrorKind.VALIDATION else {}
        message = extract_message(body, f"HTTP {outcome}")
        return ClassifiedError(kind=kind, message=message, status_code=outcome, fields=fields)

    if isinstance(outcome, BusyError):
        return ClassifiedError(kind=ErrorKind.BUSY, message=outcome.message)

    if isinstance(outcome, NetworkError):
        return ClassifiedError(kind=ErrorKind.NETWORK_ERROR, message=outcome.message)

    if isinstance(outcome, ValidationError):
        return ClassifiedError(
            kind=ErrorKind.VALIDATION,
            message=outcome.message,
            status_code=outcome.status_code,
            fields=dict(outcome.fields),
        )

    typed: dict[type[APIError], ErrorKind] = {
        AuthenticationError: ErrorKind.UNAUTHORIZED,
        ForbiddenError: ErrorKind.FORBIDDEN,
        NotFoundError: ErrorKind.NOT_FOUND,
        ServerError: ErrorKind.SERVER_ERROR,
    }
    for error_type, kind in typed.items():
        if isinstance(outcome, error_type):
            return ClassifiedError(kind=kind, message=outcome.message, status_code=outcome.status_code)

    if isinstance(outcome, APIError):
        return classify(outcome.status_code, parse_body(outcome.response_text))

    if isinstance(outcome, requests.exceptions.RequestException):
        response = getattr(outcome, "response", None)
        if response is not None:
            return classify(response.status_code, parse_body(response.text))
        return ClassifiedError(kind=ErrorKind.NETWORK_ERROR, message=str(outcome) or "No response from server")

    if isinstance(outcome, DACError):
        logger.debug(f"Unclassified DAC error treated as server error: {outcome!r}")
        return ClassifiedError(kind=ErrorKind.SERVER_ERROR, message=outcome.message)

    raise TypeError(f"Cannot classify outcome of type {type(outcome).__name__}")
