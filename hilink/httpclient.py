"""Thin aiohttp wrapper used for every request to a device."""

from __future__ import annotations

import asyncio
import logging
import ssl
import time
from typing import NamedTuple

import aiohttp
from multidict import CIMultiDictProxy
from yarl import URL

from .deviceconfig import DeviceConfig
from .exceptions import TimeoutError, _ConnectionError

_LOGGER = logging.getLogger(__name__)


class HttpResponse(NamedTuple):
    """Status, decoded body and headers of a device response."""

    status: int
    text: str
    headers: CIMultiDictProxy[str]

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def get_cookie_jar() -> aiohttp.CookieJar:
    """Return a new cookie jar with the correct options for device communication."""
    return aiohttp.CookieJar(unsafe=True, quote_cookie=False)


class HttpClient:
    """Send requests to one device, owning the aiohttp session unless given one."""

    # Some HiLink web servers drop the connection after each response. After
    # the first os error sequential requests are spaced by this many seconds.
    WAIT_BETWEEN_REQUESTS_ON_OSERROR = 0.25

    def __init__(self, config: DeviceConfig) -> None:
        self._config = config
        self._host = config.host
        self._client_session: aiohttp.ClientSession | None = None
        self._ssl_context: ssl.SSLContext | None = None

        self._wait_between_requests = 0.0
        self._last_request_time = 0.0

    @property
    def client(self) -> aiohttp.ClientSession:
        """Return the configured aiohttp session, creating one if needed."""
        if isinstance(self._config.http_client, aiohttp.ClientSession):
            return self._config.http_client

        if not self._client_session:
            self._client_session = aiohttp.ClientSession(cookie_jar=get_cookie_jar())
        return self._client_session

    def _create_ssl_context(self) -> ssl.SSLContext:
        # Devices serve self-signed certificates issued for no known hostname
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    async def _get_ssl(self) -> ssl.SSLContext | bool:
        if not self._config.https:
            return False
        if not self._ssl_context:
            loop = asyncio.get_running_loop()
            self._ssl_context = await loop.run_in_executor(
                None, self._create_ssl_context
            )
        return self._ssl_context

    async def _wait_if_throttled(self) -> None:
        if not self._wait_between_requests:
            return
        gap = time.monotonic() - self._last_request_time
        if gap < self._wait_between_requests:
            delay = self._wait_between_requests - gap
            _LOGGER.debug(
                "Device %s waiting %s seconds to send request", self._host, delay
            )
            await asyncio.sleep(delay)

    def _enable_throttle(self, ex: Exception) -> None:
        if not self._wait_between_requests:
            _LOGGER.debug(
                "Device %s dropped the connection, "
                "spacing sequential requests: %s",
                self._host,
                ex,
            )
            self._wait_between_requests = self.WAIT_BETWEEN_REQUESTS_ON_OSERROR
        self._last_request_time = time.monotonic()

    async def request(
        self,
        method: str,
        url: URL,
        *,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Send a request and return the response, whatever its status.

        Network failures raise :class:`~hilink.exceptions.NetworkError`. Bytes
        that are not utf-8 are replaced, only xml bodies are ever parsed.
        """
        await self._wait_if_throttled()

        _LOGGER.debug("%s %s", method, url)
        # The session cookie travels in an explicit Cookie header
        self.client.cookie_jar.clear()
        ssl_context = await self._get_ssl()

        try:
            resp = await self.client.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._config.timeout),
                allow_redirects=False,
                ssl=ssl_context,
            )
            async with resp:
                body = await resp.read()
        except (aiohttp.ServerDisconnectedError, aiohttp.ClientOSError) as ex:
            self._enable_throttle(ex)
            raise _ConnectionError(
                f"Device connection error: {self._host}: {ex}", ex
            ) from ex
        except (aiohttp.ServerTimeoutError, asyncio.TimeoutError) as ex:
            raise TimeoutError(
                f"Timed out waiting for {method} {url.path} on {self._host}: {ex}", ex
            ) from ex
        except aiohttp.ClientError as ex:
            raise _ConnectionError(
                f"Unable to reach the device: {self._host}: {ex}", ex
            ) from ex

        if self._wait_between_requests:
            self._last_request_time = time.monotonic()

        response = HttpResponse(
            resp.status, body.decode(errors="replace"), resp.headers
        )
        if not response.ok:
            _LOGGER.debug(
                "Device %s answered %s %s with status %s",
                self._host,
                method,
                url.path,
                response.status,
            )
        return response

    async def close(self) -> None:
        """Close the aiohttp session if this client created it."""
        client = self._client_session
        self._client_session = None
        if client:
            await client.close()
