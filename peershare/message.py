"""Text messages exchanged between peers over UDP and TCP."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union

from .config import MSG_DISCOVER, MSG_FILE, MSG_GET

_INT_RE = re.compile(r"[+-]?\d+")


class MessageError(ValueError):
    """A message could not be parsed."""


class MalformedMessageError(MessageError):
    """The message is empty or lacks required fields."""


class UnknownMessageError(MessageError):
    """The message type is not recognised."""


class InvalidPortError(MessageError):
    """The port field is not a number."""


class InvalidMethodError(MessageError):
    """The transfer method field is not a number."""


@dataclass
class Discover:
    """Announcement of the addresses a peer knows."""

    addresses: list[str] = field(default_factory=list)

    def marshal(self) -> str:
        return f"{MSG_DISCOVER},{','.join(self.addresses)}\n"


@dataclass
class Get:
    """Request for a file by name."""

    name: str

    def marshal(self) -> str:
        return f"{MSG_GET},{self.name}\n"


@dataclass
class File:
    """Reply saying the file is available on the given TCP port."""

    method: int
    tcp_port: int

    def marshal(self) -> str:
        return f"{MSG_FILE},{self.method},{self.tcp_port}\n"


Message = Union[Discover, Get, File]


def _parse_int(value: str, error: type[MessageError], what: str) -> int:
    if not _INT_RE.fullmatch(value):
        raise error(f"invalid {what}: {value!r}")
    return int(value)


def unmarshal(text: str) -> Message:
    """Parse one message; only its first line is read."""
    text = text.strip()
    if not text:
        raise MalformedMessageError("malformed message")

    parts = text.split("\n")[0].split(",")
    kind = parts[0]

    if kind == MSG_DISCOVER:
        return Discover(parts[1:])

    if kind == MSG_GET:
        if len(parts) < 2:
            raise MalformedMessageError("malformed message: Get message requires file name")
        return Get(parts[1])

    if kind == MSG_FILE:
        if len(parts) < 3:
            raise MalformedMessageError(
                "malformed message: File message requires method and port"
            )
        method = _parse_int(parts[1], InvalidMethodError, "transfer method")
        port = _parse_int(parts[2], InvalidPortError, "port number")
        return File(method, port)

    raise UnknownMessageError(f"unknown message type: {kind}")