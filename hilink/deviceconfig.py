"""Configuration for connecting to a HiLink device.

>>> from hilink import DeviceConfig
>>> config = DeviceConfig("192.168.8.1", timeout=10)
>>> config.to_dict()
{'host': '192.168.8.1', 'https': False, 'timeout': 10, 'session_ttl': 600, \
'verify_server_signature': False}

Credentials and a custom http client are never serialized, so the
dict can be stored and later passed to :meth:`DeviceConfig.from_dict`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Self

from aiohttp import ClientSession
from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.types import SerializationStrategy
from yarl import URL

from .credentials import Credentials
from .json import DataClassJSONMixin

_LOGGER = logging.getLogger(__name__)


class _DoNotSerialize(SerializationStrategy):
    def serialize(self, value: Any) -> None:
        return None

    def deserialize(self, value: Any) -> None:
        return None


@dataclass
class DeviceConfig(DataClassJSONMixin):
    """Class to represent paramaters that determine how to connect to devices."""

    DEFAULT_TIMEOUT = 30
    DEFAULT_SESSION_TTL = 600

    class Config(BaseConfig):
        """Serialization config."""

        omit_none = True

    #: IP address or hostname
    host: str
    #: Override the default http(s) port
    port_override: int | None = None
    #: True if the device web interface is served over https
    https: bool = False
    #: Timeout in seconds for each request to the device
    timeout: int | None = DEFAULT_TIMEOUT
    #: Seconds a successful login is reused before a new handshake is needed
    session_ttl: int = DEFAULT_SESSION_TTL
    #: Check the value of the server signature rather than just its presence
    verify_server_signature: bool = False

    # compare=False will be excluded from object comparison.
    #: Default credentials used when login() is called without any.
    credentials: Credentials | None = field(
        default=None,
        compare=False,
        repr=False,
        metadata=field_options(serialization_strategy=_DoNotSerialize()),
    )
    #: Set a custom http_client for the device to use.
    http_client: ClientSession | None = field(
        default=None,
        compare=False,
        repr=False,
        metadata=field_options(serialization_strategy=_DoNotSerialize()),
    )

    def __post_init__(self) -> None:
        if not self.timeout:
            _LOGGER.debug(
                "No timeout set for %s, using default of %s seconds",
                self.host,
                self.DEFAULT_TIMEOUT,
            )
            self.timeout = self.DEFAULT_TIMEOUT

    def __pre_serialize__(self) -> Self:
        return replace(self, credentials=None, http_client=None)

    @property
    def base_url(self) -> URL:
        """Return the root url of the device web interface."""
        scheme = "https" if self.https else "http"
        return URL.build(scheme=scheme, host=self.host, port=self.port_override)
