"""Process-wide admin session state (bearer token, expiry, signed-in admin)."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AdminUser(BaseModel):
    """The signed-in administrator."""

    id: str | None = None
    email: str | None = None
    name: str | None = None
    role: str | None = None
    avatar: str | None = None


class SessionSnapshot(BaseModel):
    """Read-only view of the session for display."""

    authenticated: bool = False
    expires_at: datetime | None = None
    user: AdminUser | None = None
    cleared_reason: str | None = None
    generation: int = Field(default=0, description="Incremented on every login and clear")


ClearedListener = Callable[[str], None]


class SessionState:
    """Bearer-token session with an explicit lifecycle.

    The token is set on login, read before each request, and cleared on logout
    or on the first authorization failure for the current token. Listeners
    registered with ``on_cleared`` run once per clear; they stand in for the
    redirect to the sign-in screen.
    """

    def __init__(self) -> None:
        self._token: str | None = None
        self._expires_at: datetime | None = None
        self._user: AdminUser | None = None
        self._generation = 0
        self._cleared_reason: str | None = None
        self._listeners: list[ClearedListener] = []

    def login(self, token: str, expires_at: datetime | None = None, user: dict[str, Any] | AdminUser | None = None) -> None:
        """Store a new token (and optionally its expiry and the admin profile)."""
        self._token = token
        self._expires_at = _as_aware(expires_at)
        self._user = AdminUser.model_validate(user) if isinstance(user, dict) else user
        self._generation += 1
        self._cleared_reason = None
        logger.info("Admin session started")

    def logout(self) -> None:
        self._clear("logout")

    def read_token(self, now: datetime | None = None) -> str | None:
        """Return the current token, clearing the session if it has expired."""
        if self._token is None:
            return None
        if self._expires_at is not None and (now or datetime.now(UTC)) >= self._expires_at:
            logger.info("Admin token expired")
            self._clear("expired")
            return None
        return self._token

    def expire(self, token_used: str | None) -> bool:
        """Handle an authorization failure for a request sent with ``token_used``.

        The session is cleared only if ``token_used`` is still the current token,
        so several requests failing together clear it exactly once.

        Returns:
            True if this call cleared the session

        """
        if token_used is None or token_used != self._token:
            logger.debug("Ignoring authorization failure for a token that is no longer current")
            return False
        self._clear("unauthorized")
        return True

    def on_cleared(self, listener: ClearedListener) -> Callable[[], None]:
        """Register a listener called with the clear reason; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def is_authenticated(self) -> bool:
        return self.read_token() is not None

    @property
    def user(self) -> AdminUser | None:
        return self._user

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            authenticated=self._token is not None,
            expires_at=self._expires_at,
            user=self._user,
            cleared_reason=self._cleared_reason,
            generation=self._generation,
        )

    def _clear(self, reason: str) -> None:
        if self._token is None and self._user is None:
            return
        self._token = None
        self._expires_at = None
        self._user = None
        self._generation += 1
        self._cleared_reason = reason
        logger.warning(f"Admin session cleared ({reason})")
        for listener in list(self._listeners):
            listener(reason)


def _as_aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


# Default process-wide session
session = SessionState()
