"""TCP side of a peer: downloads files offered by other peers."""

from __future__ import annotations

import contextlib
import logging
import os
import queue
import re
import socket
import threading
from typing import BinaryIO

from .config import BUFFER_SIZE, FILE_NAME_LENGTH, FILE_SIZE_LENGTH
from .message import Get
from .utils import safe_path, trim_padding

logger = logging.getLogger(__name__)

# Seconds allowed for establishing a TCP connection.
DIAL_TIMEOUT = 10.0

_PADDING = ":"
_QUEUE_POLL = 0.2
_INT_RE = re.compile(r"[+-]?\d+")


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise OSError(f"invalid address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


def _recv_exactly(conn: socket.socket, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = conn.recv(remaining)
        if not chunk:
            raise ConnectionError("unexpected EOF while reading header")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _decode_field(raw: bytes) -> str:
    return trim_padding(raw.decode("latin-1"), _PADDING)


def _parse_size(raw: bytes) -> int:
    text = _decode_field(raw)
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid file size: {text!r}")
    return int(text)


def _copy_content(conn: socket.socket, size: int, dest: BinaryIO) -> int:
    written = 0
    while written < size:
        chunk = conn.recv(BUFFER_SIZE)
        if not chunk:
            break
        dest.write(chunk)
        written += len(chunk)
    return written


class TCPClient:
    """Fetches files from peers into the shared folder."""

    def __init__(self, folder: str) -> None:
        self.folder = folder

    def connect(
        self, stop: threading.Event, downloads: queue.Queue[tuple[str, str]]
    ) -> None:
        """Download each ``(server_addr, file_name)`` taken from ``downloads`` until ``stop`` is set."""
        logger.debug("TCP client ready and waiting for download requests")
        while not stop.is_set():
            try:
                server_addr, file_name = downloads.get(timeout=_QUEUE_POLL)
            except queue.Empty:
                continue
            logger.info("Starting download: %s from %s", file_name, server_addr)
            try:
                self.download(server_addr, file_name)
            except (OSError, ValueError) as exc:
                logger.error("Failed to download file: %s", exc)
        logger.debug("TCP client shutting down")

    def download(self, server_addr: str, file_name: str) -> str:
        """Request ``file_name`` from ``server_addr`` and save it; return the saved path.

        The data goes to a ``downloading_`` file first, which is renamed once
        the transfer ends. Raises ``OSError`` on network or disk failure and
        ``ValueError`` on a header that cannot be understood.
        """
        host, port = _split_address(server_addr)
        logger.info("Connecting to %s...", server_addr)
        try:
            conn = socket.create_connection((host, port), timeout=DIAL_TIMEOUT)
        except OSError as exc:
            raise OSError(
                f"failed to connect to {server_addr} (timeout: {DIAL_TIMEOUT:g}s): {exc}"
            ) from exc

        with conn:
            conn.settimeout(None)
            logger.info("Connected to %s", server_addr)

            conn.sendall(Get(file_name).marshal().encode("utf-8"))

            size = _parse_size(_recv_exactly(conn, FILE_SIZE_LENGTH))
            received = _decode_field(_recv_exactly(conn, FILE_NAME_LENGTH))
            received = received.encode("latin-1").decode("utf-8", errors="replace")

            name = os.path.basename(received.rstrip("/"))
            if name in ("", ".", ".."):
                raise ValueError(f"invalid file name: {received!r}")

            final_path = safe_path(self.folder, name)
            output_path = os.path.join(
                os.path.dirname(final_path), "downloading_" + name
            )

            try:
                with open(output_path, "wb") as out:
                    written = _copy_content(conn, size, out)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.remove(output_path)
                raise

        if written != size:
            logger.warning("Expected %d bytes, got %d", size, written)

        os.replace(output_path, final_path)
        logger.info("File saved: %s", final_path)
        return final_path