from datetime import UTC, datetime, timedelta

from dac.session import SessionState


def test_login_and_read(session_state):
    assert session_state.read_token() == "token-1"
    assert session_state.is_authenticated
    assert session_state.user is not None and session_state.user.email == "ops@example.com"


def test_expired_token_is_cleared_on_read():
    state = SessionState()
    expires = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    state.login("t", expires_at=expires)

    assert state.read_token(now=expires - timedelta(seconds=1)) == "t"
    assert state.read_token(now=expires) is None
    assert state.snapshot().cleared_reason == "expired"


def test_naive_expiry_is_treated_as_utc():
    state = SessionState()
    state.login("t", expires_at=datetime(2024, 1, 1, 12, 0))

    assert state.read_token(now=datetime(2024, 1, 1, 11, 59, tzinfo=UTC)) == "t"
    assert state.read_token(now=datetime(2024, 1, 1, 12, 1, tzinfo=UTC)) is None


def test_concurrent_authorization_failures_clear_once(session_state):
    reasons: list[str] = []
    session_state.on_cleared(reasons.append)

    results = [session_state.expire("token-1") for _ in range(3)]

    assert results == [True, False, False]
    assert reasons == ["unauthorized"]
    assert not session_state.is_authenticated


def test_failure_for_an_old_token_keeps_the_new_session(session_state):
    session_state.expire("token-1")
    session_state.login("token-2")

    assert session_state.expire("token-1") is False
    assert session_state.read_token() == "token-2"


def test_logout_notifies_and_unsubscribe_works(session_state):
    reasons: list[str] = []
    unsubscribe = session_state.on_cleared(reasons.append)

    session_state.logout()
    session_state.logout()
    assert reasons == ["logout"]

    unsubscribe()
    session_state.login("token-3")
    session_state.logout()
    assert reasons == ["logout"]


def test_generation_moves_on_every_change():
    state = SessionState()
    start = state.generation
    state.login("a")
    state.logout()

    assert state.generation == start + 2
    assert state.snapshot().authenticated is False
