"""Session manager that collapses concurrent logins into one handshake.

>>> from hilink import Credentials, DeviceConfig, SessionManager
>>> async with SessionManager(DeviceConfig("192.168.8.1")) as manager:
>>>     session = await manager.login(Credentials("admin", "great_password"))
>>>     print(session.headers())
{'__RequestVerificationToken': '...', 'Cookie': 'SessionID=...'}

Construct one manager per device and share it between every consumer. While a
login is running further calls to :meth:`SessionManager.login` wait for that
login and receive the same :class:`~hilink.session.Session` or the same
exception. A successful login is reused until it expires.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from types import TracebackType

from .credentials import Credentials
from .deviceconfig import DeviceConfig
from .exceptions import AuthenticationError, DeviceError
from .httpclient import HttpClient
from .scramlogin import LOGOUT_PATH, ScramLogin
from .session import LoginState, Session
from .transport import Transport, TransportState, mask
from .xmlcodec import build_request, error_code, parse

_LOGGER = logging.getLogger(__name__)


def _retrieve_exception(task: asyncio.Task[Session]) -> None:
    # Every waiter may have been cancelled before the login failed
    if not task.cancelled():
        task.exception()


class SessionManager:
    """Own the cached session of one device and the login that produces it."""

    def __init__(self, config: DeviceConfig) -> None:
        self._config = config
        self._host = config.host
        self._http_client = HttpClient(config)

        # Guards the cached session, the running login and the state
        self._lock = asyncio.Lock()
        self._session: Session | None = None
        self._login_task: asyncio.Task[Session] | None = None
        self._state = LoginState.IDLE

    @property
    def config(self) -> DeviceConfig:
        """Return the connection parameters of the device."""
        return self._config

    @property
    def state(self) -> LoginState:
        """Return the current login state."""
        return self._state

    def _set_state(self, state: LoginState) -> None:
        _LOGGER.debug(
            "Login to %s: %s -> %s", self._host, self._state.name, state.name
        )
        self._state = state

    def get_session(self) -> Session | None:
        """Return the cached session, or None if there is none or it expired."""
        session = self._session
        if session is None or session.is_expired():
            return None
        return session

    def clear_session(self) -> None:
        """Forget the cached session."""
        if self._session is not None:
            _LOGGER.debug("Clearing session for %s", self._host)
        self._session = None
        if self._login_task is None:
            self._state = LoginState.IDLE

    async def login(self, credentials: Credentials | None = None) -> Session:
        """Return a valid session, logging in only when needed."""
        async with self._lock:
            if self._login_task is None:
                if session := self.get_session():
                    _LOGGER.debug("Using cached session for %s", self._host)
                    return session
                if self._session is not None:
                    _LOGGER.debug("Session for %s expired", self._host)
                    self._session = None
                    self._set_state(LoginState.IDLE)

                credentials = credentials or self._config.credentials
                if credentials is None:
                    raise AuthenticationError(
                        f"Credentials must be supplied to log in to {self._host}"
                    )
                self._login_task = asyncio.create_task(
                    self._perform_login(credentials)
                )
                self._login_task.add_done_callback(_retrieve_exception)
            else:
                _LOGGER.debug("Login to %s already in progress, waiting", self._host)
            task = self._login_task

        # Cancelling one caller must not abort the login the others wait for
        return await asyncio.shield(task)

    async def _perform_login(self, credentials: Credentials) -> Session:
        _LOGGER.debug("Starting login to %s", self._host)
        transport = Transport(self._http_client, self._config)
        scram_login = ScramLogin(
            transport,
            verify_server_signature=self._config.verify_server_signature,
            on_state=self._set_state,
        )
        try:
            await scram_login.perform_login(credentials)
        except BaseException as ex:
            async with self._lock:
                self._session = None
                self._login_task = None
                self._set_state(LoginState.FAILED)
                _LOGGER.debug("Login to %s failed: %s", self._host, ex)
                self._set_state(LoginState.IDLE)
            raise

        session = Session(
            session_id=transport.state.session_cookie,
            token=transport.state.token,
            is_authenticated=True,
            expires_at=datetime.now(UTC) + timedelta(seconds=self._config.session_ttl),
        )
        async with self._lock:
            self._session = session
            self._login_task = None
            self._set_state(LoginState.AUTHENTICATED)
        _LOGGER.debug(
            "Logged in to %s with session %s",
            self._host,
            mask(session.session_id),
        )
        return session

    async def logout(self) -> None:
        """End the cached session on the device and forget it."""
        async with self._lock:
            session = self.get_session()
            self.clear_session()
        if session is None:
            _LOGGER.debug("No session to log out of on %s", self._host)
            return

        transport = Transport(
            self._http_client,
            self._config,
            TransportState(token=session.token, session_cookie=session.session_id),
        )
        root = parse(await transport.post(LOGOUT_PATH, build_request(Logout=1)))
        if (code := error_code(root)) is not None:
            raise DeviceError(
                f"Device {self._host} refused to log out", error_code=code
            )
        _LOGGER.debug("Logged out of %s", self._host)

    async def close(self) -> None:
        """Close the http client and forget the session."""
        self.clear_session()
        await self._http_client.close()

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
