import pytest
import requests

from dac.core.errors import ErrorKind, Recovery, classify, extract_fields, extract_message
from dac.exceptions import (
    APIError,
    AuthenticationError,
    BusyError,
    ConfigurationError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("status", "kind"),
    [
        (400, ErrorKind.VALIDATION),
        (409, ErrorKind.VALIDATION),
        (422, ErrorKind.VALIDATION),
        (401, ErrorKind.UNAUTHORIZED),
        (403, ErrorKind.FORBIDDEN),
        (404, ErrorKind.NOT_FOUND),
        (408, ErrorKind.NETWORK_ERROR),
        (500, ErrorKind.SERVER_ERROR),
        (503, ErrorKind.SERVER_ERROR),
    ],
)
def test_status_codes(status, kind):
    assert classify(status).kind == kind


def test_status_with_body_carries_message_and_fields():
    body = {"success": False, "error": {"message": "Invalid input", "details": {"email": "already taken"}}}

    error = classify(422, body)

    assert error.message == "Invalid input"
    assert error.fields == {"email": "already taken"}
    assert error.recovery == Recovery.LOCAL


@pytest.mark.parametrize(
    ("exc", "kind"),
    [
        (ValidationError("bad", fields={"name": "required"}), ErrorKind.VALIDATION),
        (AuthenticationError(), ErrorKind.UNAUTHORIZED),
        (ForbiddenError(), ErrorKind.FORBIDDEN),
        (NotFoundError(), ErrorKind.NOT_FOUND),
        (ServerError(502), ErrorKind.SERVER_ERROR),
        (NetworkError("GET /admin/orders", "timeout", 30), ErrorKind.NETWORK_ERROR),
        (BusyError(("kyc", "k-1", "transition")), ErrorKind.BUSY),
        (requests.exceptions.ConnectionError("refused"), ErrorKind.NETWORK_ERROR),
        (requests.exceptions.Timeout(), ErrorKind.NETWORK_ERROR),
    ],
)
def test_exceptions(exc, kind):
    assert classify(exc).kind == kind


def test_generic_api_error_uses_its_status_and_body():
    error = classify(APIError(429, "slow down", '{"message": "Too many requests"}'))

    assert error.kind == ErrorKind.VALIDATION
    assert error.message == "Too many requests"
    assert error.status_code == 429


def test_validation_fields_survive_classification():
    error = classify(ValidationError("bad", fields={"name": "required"}, status_code=422))

    assert error.fields == {"name": "required"}
    assert error.status_code == 422


def test_other_dac_errors_surface_as_server_errors():
    assert classify(ConfigurationError("broken")).kind == ErrorKind.SERVER_ERROR


def test_unclassifiable_outcomes_raise():
    with pytest.raises(TypeError):
        classify("boom")
    with pytest.raises(TypeError):
        classify(True)


def test_recovery_policy():
    assert classify(401).recovery == Recovery.SESSION
    assert classify(BusyError(("orders", None, "create"))).recovery == Recovery.NOTICE
    assert classify(500).surfaced and classify(500).retryable
    assert classify(NetworkError("GET /x", "refused")).retryable
    assert not classify(422).retryable
    assert not classify(404).retryable


@pytest.mark.parametrize(
    ("body", "fields"),
    [
        ({"errors": {"email": ["is invalid", "is taken"]}}, {"email": "is invalid; is taken"}),
        ({"errors": [{"field": "gstNumber", "message": "bad format"}]}, {"gstNumber": "bad format"}),
        ({"detail": [{"loc": ["body", "price"], "msg": "must be positive"}]}, {"price": "must be positive"}),
        ({"message": "nope"}, {}),
        ("not json", {}),
    ],
)
def test_extract_fields(body, fields):
    assert extract_fields(body) == fields


def test_extract_message():
    assert extract_message({"error": "flat"}, "x") == "flat"
    assert extract_message({"detail": "fastapi"}, "x") == "fastapi"
    assert extract_message([1, 2], "default") == "default"
