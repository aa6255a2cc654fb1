"""Implementation of the HiLink SCRAM login handshake.

The handshake runs over a single :class:`~hilink.transport.Transport` so the
token and cookie rotated by each response are sent with the next request:

bootstrap: GET the landing page so the device issues a session cookie, then
GET /api/webserver/SesTokInfo for the initial session id and token.

challenge: POST the username and a random client nonce to
/api/user/challenge_login and receive the salt, server nonce and PBKDF2
iteration count.

authenticate: POST the client proof calculated from the password and the
challenge to /api/user/authentication_login. A device that accepted the
proof answers with a server signature.

refresh: GET /api/webserver/token so the next api call starts with a fresh
token. This step is best effort.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .credentials import Credentials
from .exceptions import (
    AuthError,
    ChallengeError,
    HilinkException,
    HttpError,
    IntegrityError,
    NetworkError,
    ProtocolError,
)
from .scram import calculate_client_proof, calculate_server_signature, generate_nonce
from .session import LoginState
from .transport import Transport, mask, session_cookie
from .xmlcodec import build_request, error_code, find_text, parse

_LOGGER = logging.getLogger(__name__)

LANDING_PATHS = ("/html/index.html", "/")
SES_TOK_INFO_PATH = "/api/webserver/SesTokInfo"
CHALLENGE_PATH = "/api/user/challenge_login"
AUTHENTICATION_PATH = "/api/user/authentication_login"
TOKEN_PATH = "/api/webserver/token"
LOGOUT_PATH = "/api/user/logout"

DEFAULT_ITERATIONS = 100
CHALLENGE_MODE = 1


@dataclass(frozen=True)
class Challenge:
    """Parameters of one login attempt, used exactly once."""

    client_nonce: str
    server_nonce: str
    salt: str
    iterations: int = DEFAULT_ITERATIONS


class ScramLogin:
    """Run the SCRAM login steps against a device."""

    def __init__(
        self,
        transport: Transport,
        *,
        verify_server_signature: bool = False,
        on_state: Callable[[LoginState], None] | None = None,
    ) -> None:
        self._transport = transport
        self._host = transport.host
        self._verify_server_signature = verify_server_signature
        self._on_state = on_state
        self._challenge: Challenge | None = None

    def _set_state(self, state: LoginState) -> None:
        if self._on_state:
            self._on_state(state)

    async def _get_landing_page(self, path: str) -> None:
        try:
            await self._transport.get(path)
        except HttpError as ex:
            # Firmwares redirect to their home page, the cookie is still set
            if not 300 <= ex.status < 400:
                raise
            _LOGGER.debug(
                "Landing page %s of %s redirected with status %s",
                path,
                self._host,
                ex.status,
            )

    async def bootstrap(self) -> None:
        """Open a session on the device and fetch the initial token."""
        _LOGGER.debug("Fetching landing page of %s to open a session", self._host)
        for path in LANDING_PATHS:
            try:
                await self._get_landing_page(path)
            except (HttpError, NetworkError) as ex:
                if path == LANDING_PATHS[-1]:
                    raise
                _LOGGER.debug(
                    "Landing page %s of %s failed, trying next: %s",
                    path,
                    self._host,
                    ex,
                )
            else:
                break

        root = parse(await self._transport.get(SES_TOK_INFO_PATH))
        ses_info = find_text(root, "SesInfo")
        if not ses_info:
            raise ProtocolError(f"Device {self._host} did not return session info")

        state = self._transport.state
        state.session_cookie = session_cookie(ses_info)
        if tok_info := find_text(root, "TokInfo"):
            state.token = tok_info

        _LOGGER.debug(
            "Device %s opened session %s with token %s",
            self._host,
            mask(state.session_cookie),
            mask(state.token),
        )

    async def challenge(self, username: str) -> Challenge:
        """Send the first login message and return the device challenge."""
        client_nonce = generate_nonce()
        _LOGGER.debug(
            "Sending challenge to %s with client nonce %s",
            self._host,
            mask(client_nonce),
        )
        body = build_request(
            username=username, firstnonce=client_nonce, mode=CHALLENGE_MODE
        )
        root = parse(await self._transport.post(CHALLENGE_PATH, body))

        if (code := error_code(root)) is not None:
            raise ChallengeError(
                f"Device {self._host} rejected the login challenge", error_code=code
            )

        salt = find_text(root, "salt")
        server_nonce = find_text(root, "servernonce")
        if not salt or not server_nonce:
            raise ProtocolError(
                f"Device {self._host} sent an incomplete challenge response"
            )
        try:
            bytes.fromhex(salt)
        except ValueError as ex:
            raise ProtocolError(
                f"Device {self._host} sent a salt that is not hex: {salt!r}"
            ) from ex

        raw_iterations = find_text(root, "iterations")
        try:
            iterations = int(raw_iterations) if raw_iterations else DEFAULT_ITERATIONS
        except ValueError as ex:
            raise ProtocolError(
                f"Device {self._host} sent invalid iterations {raw_iterations!r}"
            ) from ex

        self._challenge = Challenge(client_nonce, server_nonce, salt, iterations)
        _LOGGER.debug(
            "Device %s challenged with server nonce %s, iterations %s",
            self._host,
            mask(server_nonce),
            iterations,
        )
        return self._challenge

    async def authenticate(
        self, client_proof: str, server_nonce: str, *, password: str | None = None
    ) -> None:
        """Send the client proof for the outstanding challenge.

        The password is only needed when the server signature is verified.
        """
        challenge = self._challenge
        if challenge is None or challenge.server_nonce != server_nonce:
            raise ProtocolError(
                f"No outstanding challenge for server nonce {mask(server_nonce)}"
            )
        # A challenge is spent as soon as a proof for it is sent
        self._challenge = None

        _LOGGER.debug("Sending client proof to %s", self._host)
        body = build_request(clientproof=client_proof, finalnonce=server_nonce)
        root = parse(await self._transport.post(AUTHENTICATION_PATH, body))

        if (code := error_code(root)) is not None:
            raise AuthError(
                f"Device {self._host} rejected the client proof", error_code=code
            )

        signature = find_text(root, "serversignature")
        if signature is None:
            raise IntegrityError(f"Device {self._host} sent no server signature")

        if self._verify_server_signature:
            if password is None:
                raise IntegrityError("Cannot verify the server signature")
            expected = calculate_server_signature(
                password,
                challenge.client_nonce,
                challenge.server_nonce,
                challenge.salt,
                challenge.iterations,
            )
            if signature.lower() != expected:
                raise IntegrityError(
                    f"Device {self._host} sent a server signature that does not "
                    "match the password"
                )

        _LOGGER.debug("Device %s accepted the client proof", self._host)

    async def refresh_token(self) -> None:
        """Fetch a fresh token for the next api call, ignoring failures."""
        try:
            root = parse(await self._transport.get(TOKEN_PATH))
        except HilinkException as ex:
            _LOGGER.debug("Unable to refresh token from %s: %s", self._host, ex)
            return

        if token := find_text(root, "token"):
            self._transport.state.token = token
            _LOGGER.debug("Refreshed token from %s: %s", self._host, mask(token))
        else:
            _LOGGER.debug("Device %s returned no token to refresh", self._host)

    async def perform_login(self, credentials: Credentials) -> None:
        """Run every login step, raising on the first failure."""
        self._set_state(LoginState.BOOTSTRAPPING)
        await self.bootstrap()

        challenge = await self.challenge(credentials.username)
        self._set_state(LoginState.CHALLENGED)

        client_proof = calculate_client_proof(
            credentials.password,
            challenge.client_nonce,
            challenge.server_nonce,
            challenge.salt,
            challenge.iterations,
        )
        self._set_state(LoginState.AUTHENTICATING)
        await self.authenticate(
            client_proof, challenge.server_nonce, password=credentials.password
        )

        await self.refresh_token()
        _LOGGER.debug("Login to %s complete", self._host)
