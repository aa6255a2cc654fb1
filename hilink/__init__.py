"""Python interface for authenticating to HiLink cellular routers and modems.

Logging in is done through a :class:`SessionManager` shared by everything
that talks to the device::

>>> from hilink import Credentials, DeviceConfig, SessionManager
>>> manager = SessionManager(DeviceConfig("192.168.8.1"))
>>> session = await manager.login(Credentials("admin", "great_password"))
>>> session.session_id
SessionID=...

Errors are raised as subclasses of `HilinkException` and are expected
to be handled by the user of the library.
"""

from importlib.metadata import version

from hilink.credentials import Credentials
from hilink.deviceconfig import DeviceConfig
from hilink.exceptions import (
    AuthenticationError,
    AuthError,
    ChallengeError,
    DeviceError,
    HilinkErrorCode,
    HilinkException,
    HttpError,
    IntegrityError,
    NetworkError,
    ProtocolError,
    TimeoutError,
)
from hilink.session import LoginState, Session
from hilink.sessionmanager import SessionManager

__version__ = version("python-hilink")


__all__ = [
    "SessionManager",
    "Session",
    "LoginState",
    "Credentials",
    "DeviceConfig",
    "HilinkException",
    "NetworkError",
    "TimeoutError",
    "HttpError",
    "ProtocolError",
    "DeviceError",
    "HilinkErrorCode",
    "AuthenticationError",
    "ChallengeError",
    "AuthError",
    "IntegrityError",
]
