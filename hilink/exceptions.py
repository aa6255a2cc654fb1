"""python-hilink exceptions."""

from __future__ import annotations

from asyncio import TimeoutError as _asyncioTimeoutError
from enum import IntEnum
from functools import cache
from typing import Any


class HilinkException(Exception):
    """Base exception for library errors."""


class NetworkError(HilinkException):
    """Base exception for transient network failures."""


class TimeoutError(NetworkError, _asyncioTimeoutError):
    """Timeout exception for device requests."""

    def __repr__(self) -> str:
        return HilinkException.__repr__(self)

    def __str__(self) -> str:
        return HilinkException.__str__(self)


class _ConnectionError(NetworkError):
    """Connection exception for device requests."""


class HttpError(HilinkException):
    """Exception for non-2xx http responses."""

    def __init__(self, *args: Any, status: int) -> None:
        self.status = status
        super().__init__(*args)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(status={self.status})"


class ProtocolError(HilinkException):
    """Exception for responses missing an expected element."""


class HilinkErrorCode(IntEnum):
    """Enum for error codes reported in ``<error><code>`` responses."""

    def __str__(self) -> str:
        return f"{self.name}({self.value})"

    @staticmethod
    @cache
    def from_int(value: int) -> HilinkErrorCode | None:
        """Convert an integer to a HilinkErrorCode, None if unknown."""
        try:
            return HilinkErrorCode(value)
        except ValueError:
            return None

    # System errors
    SYSTEM_UNKNOWN = 100001
    SYSTEM_NO_SUPPORT = 100002
    SYSTEM_NO_RIGHTS = 100003
    SYSTEM_BUSY = 100004
    FORMAT_ERROR = 100005
    PARAMETER_ERROR = 100006
    SAVE_CONFIG_FILE_ERROR = 100007
    GET_CONFIG_FILE_ERROR = 100008

    # Login errors
    LOGIN_USERNAME_OR_PASSWORD_WRONG = 108001
    LOGIN_ALREADY_LOGGED_IN = 108002
    LOGIN_NO_EXIST_USER = 108003
    LOGIN_MODIFY_PASSWORD_FAILED = 108004
    LOGIN_TOO_MANY_USERS = 108005
    LOGIN_USER_LOCKED = 108006
    LOGIN_TOO_MANY_TIMES = 108007

    # Token and session verification
    WRONG_TOKEN = 125001
    WRONG_SESSION = 125002
    WRONG_SESSION_TOKEN = 125003


class DeviceError(HilinkException):
    """Base exception for errors reported by the device."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.error_code: int | None = kwargs.get("error_code")
        super().__init__(*args)

    @property
    def known_error(self) -> HilinkErrorCode | None:
        """Return the named error code, if the device code is a known one."""
        if self.error_code is None:
            return None
        return HilinkErrorCode.from_int(self.error_code)

    def __repr__(self) -> str:
        err_code = repr(self.error_code) if self.error_code is not None else ""
        return f"{self.__class__.__name__}({err_code})"

    def __str__(self) -> str:
        if self.error_code is None:
            return super().__str__()
        if known := self.known_error:
            return super().__str__() + f" (error_code={known})"
        return super().__str__() + f" (error_code={self.error_code})"


class AuthenticationError(DeviceError):
    """Base exception for device authentication errors."""


class ChallengeError(AuthenticationError):
    """The device rejected the login challenge."""


class AuthError(AuthenticationError):
    """The device rejected the client proof."""


class IntegrityError(AuthenticationError):
    """The device did not prove knowledge of the shared secret."""
