"""Login credentials of the device web interface."""

from __future__ import annotations

from dataclasses import dataclass, field

#: Account name HiLink devices ship with
DEFAULT_USERNAME = "admin"


@dataclass
class Credentials:
    """Username and password, never included in repr or logs.

    An empty username falls back to :data:`DEFAULT_USERNAME`.
    """

    username: str = field(default=DEFAULT_USERNAME, repr=False)
    password: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not self.username:
            self.username = DEFAULT_USERNAME
