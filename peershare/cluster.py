"""Thread-safe list of known peer addresses."""

from __future__ import annotations

import logging
import socket
import threading
from collections.abc import Iterable

logger = logging.getLogger(__name__)


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise OSError(f"invalid address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


class Cluster:
    """Addresses of the peers this node talks to, kept in discovery order."""

    def __init__(self, addresses: Iterable[str] = ()) -> None:
        self._addresses = list(addresses)
        self._lock = threading.Lock()

    def members(self) -> list[str]:
        """Return a copy of the known addresses."""
        with self._lock:
            return list(self._addresses)

    def broadcast(self, sock: socket.socket, message: str) -> None:
        """Send ``message`` to every member over the UDP socket ``sock``.

        Every member is tried; if any send failed, the last failure is raised
        as ``OSError`` afterwards.
        """
        payload = message.encode()
        last_error: OSError | None = None
        for address in self.members():
            try:
                host, port = _split_address(address)
                infos = socket.getaddrinfo(host, port, sock.family, socket.SOCK_DGRAM)
            except (OSError, UnicodeError) as exc:
                last_error = OSError(f"failed to resolve address {address}: {exc}")
                logger.error("Failed to resolve %s: %s", address, exc)
                continue
            try:
                sock.sendto(payload, infos[0][4])
            except OSError as exc:
                last_error = OSError(f"failed to send to {address}: {exc}")
                logger.error("Failed to send to %s: %s", address, exc)
        if last_error is not None:
            raise last_error

    def merge(self, host: str, addresses: Iterable[str]) -> None:
        """Add new addresses, skipping blanks, duplicates and ``host`` itself."""
        with self._lock:
            for address in addresses:
                if not address or address == host:
                    continue
                if address not in self._addresses:
                    self._addresses.append(address)
                    logger.info("Discovered new peer: %s", address)

    def add(self, address: str) -> None:
        """Add one address unless it is blank or already known."""
        with self._lock:
            if address and address not in self._addresses:
                self._addresses.append(address)
                logger.info("Discovered new peer: %s", address)

    def remove(self, address: str) -> None:
        """Forget an address; unknown addresses are ignored."""
        with self._lock:
            if address in self._addresses:
                self._addresses.remove(address)

    def __len__(self) -> int:
        with self._lock:
            return len(self._addresses)