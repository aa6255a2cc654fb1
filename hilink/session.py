"""Authenticated session handed to device api consumers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum, auto

from .transport import TOKEN_HEADER


class LoginState(Enum):
    """Enum for the login state of a session manager."""

    IDLE = auto()
    BOOTSTRAPPING = auto()
    CHALLENGED = auto()
    AUTHENTICATING = auto()
    AUTHENTICATED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class Session:
    """A validated login, immutable once created."""

    #: Session cookie in ``SessionID=<id>`` form
    session_id: str
    #: Latest anti-forgery token
    token: str
    is_authenticated: bool = True
    expires_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return True if the session should no longer be used."""
        if self.expires_at is None:
            return False
        if now is None:
            now = datetime.now(UTC)
        return self.expires_at <= now

    def headers(self) -> dict[str, str]:
        """Return the headers device api requests need to carry."""
        return {TOKEN_HEADER: self.token, "Cookie": self.session_id}
