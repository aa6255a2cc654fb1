from __future__ import annotations

import asyncio
from xml.etree.ElementTree import fromstring

from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from hilink.scram import calculate_client_proof, calculate_server_signature

MOCK_USER = "admin"
MOCK_PWD = "correct_pwd"  # noqa: S105
MOCK_SALT = "aabbccddeeff00112233445566778899"
MOCK_ITERATIONS = 1000
MOCK_SES_INFO = "SessionID=bootstrap-session"
MOCK_TOK_INFO = "bootstrap-token"
MOCK_CHALLENGE_TOKEN = "challenge-token"
MOCK_AUTH_TOKEN = "auth-token"
MOCK_AUTH_COOKIE = "authenticated-session"
MOCK_REFRESHED_TOKEN = "refreshed-token"

XML = '<?xml version="1.0" encoding="UTF-8"?>'


class MockHilinkDevice:
    """In-memory HiLink device answering the login endpoints."""

    class _mock_response:
        def __init__(
            self, status: int, body: str | bytes, headers: list | None = None
        ):
            self.status = status
            self._body = body
            self.headers = CIMultiDictProxy(CIMultiDict(headers or []))

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_t, exc_v, exc_tb):
            pass

        async def read(self):
            if isinstance(self._body, bytes):
                return self._body
            return self._body.encode()

    def __init__(
        self,
        host,
        *,
        username=MOCK_USER,
        password=MOCK_PWD,
        iterations: int | None = MOCK_ITERATIONS,
        landing_status=200,
        landing_body: str | bytes = "<html></html>",
        root_status=200,
        ses_info: str | None = MOCK_SES_INFO,
        challenge_error_code: int | None = None,
        challenge_body: str | None = None,
        auth_error_code: int | None = None,
        send_server_signature=True,
        bad_server_signature=False,
        token_status=200,
        send_refreshed_token=True,
        logout_error_code: int | None = None,
        handshake_delay: asyncio.Event | None = None,
    ):
        self.host = host
        self.username = username
        self.password = password
        self.iterations = iterations
        self.landing_status = landing_status
        self.landing_body = landing_body
        self.root_status = root_status
        self.ses_info = ses_info
        self.challenge_error_code = challenge_error_code
        self.challenge_body = challenge_body
        self.auth_error_code = auth_error_code
        self.send_server_signature = send_server_signature
        self.bad_server_signature = bad_server_signature
        self.token_status = token_status
        self.send_refreshed_token = send_refreshed_token
        self.logout_error_code = logout_error_code
        self.handshake_delay = handshake_delay

        self.requests: list[tuple[str, str, dict[str, str]]] = []
        self.client_nonce: str | None = None
        self.server_nonce: str | None = None

    def requests_to(self, path: str) -> list[dict[str, str]]:
        """Return the headers of each request sent to path."""
        return [headers for _, req_path, headers in self.requests if req_path == path]

    @property
    def challenge_count(self) -> int:
        return len(self.requests_to("/api/user/challenge_login"))

    async def request(self, method, url, *, data=None, headers=None, **_):
        path = URL(url).path
        self.requests.append((method, path, dict(headers or {})))
        # Yield so concurrent callers interleave like real io
        await asyncio.sleep(0)

        if path == "/html/index.html":
            return self._landing(self.landing_status, "landing-session")
        if path == "/":
            return self._landing(self.root_status, "root-session")
        if path == "/api/webserver/SesTokInfo":
            return self._ses_tok_info()
        if path == "/api/user/challenge_login":
            return self._challenge(data)
        if path == "/api/user/authentication_login":
            if self.handshake_delay:
                await self.handshake_delay.wait()
            return self._authentication(data)
        if path == "/api/webserver/token":
            return self._token()
        if path == "/api/user/logout":
            return self._logout()
        return self._mock_response(404, "")

    def _landing(self, status: int, session_id: str):
        headers = [("Set-Cookie", f"SessionID={session_id}; path=/; HttpOnly")]
        if 300 <= status < 400:
            headers.append(("Location", "/html/home.html"))
        return self._mock_response(status, self.landing_body, headers)

    def _error(self, code: int, headers: list | None = None):
        body = f"{XML}<error><code>{code}</code><message></message></error>"
        return self._mock_response(200, body, headers)

    def _ses_tok_info(self):
        ses_info = (
            f"<SesInfo>{self.ses_info}</SesInfo>" if self.ses_info is not None else ""
        )
        body = f"{XML}<response>{ses_info}<TokInfo>{MOCK_TOK_INFO}</TokInfo></response>"
        return self._mock_response(200, body)

    def _challenge(self, data: bytes):
        headers = [("__RequestVerificationToken", MOCK_CHALLENGE_TOKEN)]
        if self.challenge_error_code is not None:
            return self._error(self.challenge_error_code, headers)
        if self.challenge_body is not None:
            return self._mock_response(200, self.challenge_body, headers)

        request = fromstring(data.decode())
        if request.findtext("username") != self.username:
            return self._error(108001, headers)
        assert request.findtext("mode") == "1"

        self.client_nonce = request.findtext("firstnonce")
        self.server_nonce = f"{self.client_nonce}server"
        iterations = (
            f"<iterations>{self.iterations}</iterations>"
            if self.iterations is not None
            else ""
        )
        body = (
            f"{XML}<response><salt>{MOCK_SALT}</salt>{iterations}"
            f"<servernonce>{self.server_nonce}</servernonce>"
            "<modeselected>1</modeselected></response>"
        )
        return self._mock_response(200, body, headers)

    def _authentication(self, data: bytes):
        headers = [
            ("__RequestVerificationToken", MOCK_AUTH_TOKEN),
            ("Set-Cookie", f"SessionID={MOCK_AUTH_COOKIE}; path=/; HttpOnly"),
        ]
        if self.auth_error_code is not None:
            return self._error(self.auth_error_code)

        request = fromstring(data.decode())
        assert request.findtext("finalnonce") == self.server_nonce
        iterations = self.iterations if self.iterations is not None else 100
        expected_proof = calculate_client_proof(
            self.password, self.client_nonce, self.server_nonce, MOCK_SALT, iterations
        )
        if request.findtext("clientproof") != expected_proof:
            return self._error(108006)

        if not self.send_server_signature:
            return self._mock_response(
                200, f"{XML}<response><rsan>00</rsan></response>", headers
            )

        signature = calculate_server_signature(
            "not the password" if self.bad_server_signature else self.password,
            self.client_nonce,
            self.server_nonce,
            MOCK_SALT,
            iterations,
        )
        body = (
            f"{XML}<response><serversignature>{signature}</serversignature>"
            "<rsan>00</rsan><rsae>010001</rsae></response>"
        )
        return self._mock_response(200, body, headers)

    def _token(self):
        if self.token_status != 200:
            return self._mock_response(self.token_status, "")
        token = (
            f"<token>{MOCK_REFRESHED_TOKEN}</token>" if self.send_refreshed_token else ""
        )
        return self._mock_response(200, f"{XML}<response>{token}</response>")

    def _logout(self):
        if self.logout_error_code is not None:
            return self._error(self.logout_error_code)
        return self._mock_response(200, f"{XML}<response>OK</response>")
