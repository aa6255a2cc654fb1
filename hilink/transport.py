"""Transport that threads the rotating token and session cookie through requests.

Almost every response from a HiLink device may carry a new
``__RequestVerificationToken`` header and a ``Set-Cookie`` header with a new
``SessionID``. The transport records both before handing the body back, so the
next request always echoes the newest values without the caller tracking them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .deviceconfig import DeviceConfig
from .exceptions import HttpError
from .httpclient import HttpClient

if TYPE_CHECKING:
    from multidict import CIMultiDictProxy

_LOGGER = logging.getLogger(__name__)

TOKEN_HEADER = "__RequestVerificationToken"
SESSION_COOKIE_NAME = "SessionID"

_SESSION_COOKIE_RE = re.compile(rf"{SESSION_COOKIE_NAME}=([^;]+)")


def mask(value: str | None) -> str:
    """Return the start of a secret value, safe for debug logging."""
    if not value:
        return "<empty>"
    return value[:8] + "..."


def session_cookie(value: str) -> str:
    """Return value as a cookie, prefixing the session id name if needed."""
    value = value.strip()
    if f"{SESSION_COOKIE_NAME}=" in value:
        return value
    return f"{SESSION_COOKIE_NAME}={value}"


@dataclass
class TransportState:
    """The token and cookie the device expects on the next request."""

    token: str = ""
    session_cookie: str = ""


class Transport:
    """Issue requests against the device web api."""

    COMMON_HEADERS = {
        "Accept": "application/xml, text/xml, */*",
        "Accept-Language": "en-US,en;q=0.9",
    }
    POST_HEADERS = {
        "Content-Type": "application/xml; charset=UTF-8",
    }

    def __init__(
        self,
        http_client: HttpClient,
        config: DeviceConfig,
        state: TransportState | None = None,
    ) -> None:
        self._http_client = http_client
        self._config = config
        self.host = config.host
        self._base_url = config.base_url
        self.state = state if state is not None else TransportState()

    def _headers(self, method: str) -> dict[str, str]:
        headers = dict(self.COMMON_HEADERS)
        if method == "POST":
            headers.update(self.POST_HEADERS)
        if self.state.token:
            headers[TOKEN_HEADER] = self.state.token
        if self.state.session_cookie:
            headers["Cookie"] = self.state.session_cookie
        return headers

    def _update_state(self, headers: CIMultiDictProxy[str]) -> None:
        if token := headers.get(TOKEN_HEADER):
            _LOGGER.debug("Device %s rotated token to %s", self.host, mask(token))
            self.state.token = token

        for set_cookie in headers.getall("Set-Cookie", []):
            if match := _SESSION_COOKIE_RE.search(set_cookie):
                self.state.session_cookie = f"{SESSION_COOKIE_NAME}={match[1]}"
                _LOGGER.debug(
                    "Device %s rotated session cookie to %s",
                    self.host,
                    mask(self.state.session_cookie),
                )

    async def request(self, method: str, path: str, body: str | None = None) -> str:
        """Send a request to path and return the response body."""
        url = self._base_url.with_path(path)
        response = await self._http_client.request(
            method,
            url,
            data=body.encode() if body is not None else None,
            headers=self._headers(method),
        )
        self._update_state(response.headers)

        if not response.ok:
            raise HttpError(
                f"{self.host} responded with an unexpected "
                + f"status code {response.status} to {method} {path}",
                status=response.status,
            )
        return response.text

    async def get(self, path: str) -> str:
        """Send a GET request."""
        return await self.request("GET", path)

    async def post(self, path: str, body: str) -> str:
        """Send a POST request with an xml body."""
        return await self.request("POST", path, body)
