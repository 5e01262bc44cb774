"""Parsing of ``[user[:password]@]host[:port]`` connection targets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .errors import AuthorityParseError

DEFAULT_PORT = 22

_PORT_PATTERN = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class Authority:
    """A parsed connection target."""

    host: str
    port: int = DEFAULT_PORT
    user: Optional[str] = None
    password: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"{self.user}@" if self.user else ""
        return f"{prefix}{self.host}:{self.port}"


def _split_once(value: str, separator: str) -> list[str]:
    # Empty pieces are dropped, so "user:" yields just ["user"].
    return [part for part in value.split(separator, 1) if part]


def parse_authority(authority: str) -> Authority:
    """Parse an authority string.

    The string is split once on ``@``; without one, the whole string is the
    host part. The user part is split once on ``:`` into user and password and
    the host part into host and port. A missing port defaults to 22.

    Raises:
        AuthorityParseError: if the port is not an integer or no host is given.
    """
    if "@" in authority:
        user_info, host_info = authority.split("@", 1)
    else:
        user_info, host_info = "", authority

    user_parts = _split_once(user_info, ":")
    user = user_parts[0] if user_parts else None
    password = user_parts[1] if len(user_parts) > 1 else None

    host_parts = _split_once(host_info, ":")
    if not host_parts:
        raise AuthorityParseError(f"no host in authority {authority!r}")
    host = host_parts[0]
    if len(host_parts) == 1:
        return Authority(host=host, user=user, password=password)

    port_text = host_parts[1]
    if not _PORT_PATTERN.fullmatch(port_text):
        raise AuthorityParseError(f"invalid port {port_text!r} in authority {authority!r}")
    return Authority(host=host, port=int(port_text), user=user, password=password)
