"""TCP side of a peer: serves files from the shared folder on request."""

from __future__ import annotations

import logging
import os
import socket
import threading
from typing import Protocol

from .config import BUFFER_SIZE, FILE_NAME_LENGTH, FILE_SIZE_LENGTH, UDP_BUFFER_SIZE
from .message import Get, MessageError, unmarshal
from .utils import fill_string, safe_path

logger = logging.getLogger(__name__)

_PADDING = ":"
_ACCEPT_POLL = 0.2


class _Sender(Protocol):
    def sendall(self, data: bytes) -> None: ...


def _field(text: str, length: int) -> bytes:
    """Encode ``text`` into a fixed-width, colon-padded header field."""
    raw = text.encode("utf-8").decode("latin-1")
    return fill_string(raw, length, _PADDING).encode("latin-1")


class TCPServer:
    """Listens on an OS-assigned port and streams requested files to peers."""

    def __init__(self, folder: str, host: str) -> None:
        self.folder = folder
        self.host = host
        self.tcp_port = 0
        self._listener: socket.socket | None = None
        self._closed = False

    def bind(self) -> int:
        """Open the listening socket and return the port the OS assigned."""
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        listener = socket.create_server((self.host, 0), family=family)
        self._listener = listener
        self._closed = False
        self.tcp_port = listener.getsockname()[1]
        logger.info("TCP server listening on port %d", self.tcp_port)
        return self.tcp_port

    def serve(self, stop: threading.Event) -> None:
        """Accept connections until ``stop`` is set or the server is closed."""
        if self._listener is None:
            self.bind()
        listener = self._listener
        assert listener is not None
        listener.settimeout(_ACCEPT_POLL)

        while not stop.is_set():
            try:
                conn, addr = listener.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if stop.is_set() or self._closed:
                    return
                logger.error("Failed to accept connection: %s", exc)
                continue
            conn.settimeout(None)
            threading.Thread(
                target=self._handle_connection, args=(conn, addr), daemon=True
            ).start()

    def _handle_connection(self, conn: socket.socket, addr: tuple) -> None:
        remote = f"{addr[0]}:{addr[1]}"
        logger.info("TCP connection from %s", remote)
        with conn:
            try:
                data = conn.recv(UDP_BUFFER_SIZE)
            except OSError as exc:
                logger.error("Failed to read from %s: %s", remote, exc)
                return

            try:
                msg = unmarshal(data.decode("utf-8", errors="replace"))
            except MessageError as exc:
                logger.error("Failed to unmarshal message from %s: %s", remote, exc)
                return

            if not isinstance(msg, Get):
                logger.warning("Expected Get message from %s, got something else", remote)
                return

            logger.info("Peer %s requesting file '%s'", remote, msg.name)
            try:
                self.send(conn, msg.name)
            except OSError as exc:
                logger.error("Failed to send file to %s: %s", remote, exc)

    def send(self, conn: _Sender, name: str) -> None:
        """Write the size and name header, then the contents of ``name``, to ``conn``.

        Only the last path element of ``name`` is used, so the file always
        comes from the shared folder. Raises ``OSError`` if it cannot be read.
        """
        path = safe_path(self.folder, name)
        logger.debug("Resolved file path: %s", path)

        with open(path, "rb") as fh:
            size = os.fstat(fh.fileno()).st_size
            base = os.path.basename(path)
            logger.info("Sending file: %s (%d bytes)", base, size)

            conn.sendall(_field(str(size), FILE_SIZE_LENGTH))
            conn.sendall(_field(base, FILE_NAME_LENGTH))

            while chunk := fh.read(BUFFER_SIZE):
                conn.sendall(chunk)

        logger.info("File sent successfully!")

    def close(self) -> None:
        """Stop listening; connections already accepted finish on their own."""
        self._closed = True
        if self._listener is not None:
            self._listener.close()