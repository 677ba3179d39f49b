"""UDP side of a peer: discovery gossip and file lookups across the cluster."""

from __future__ import annotations

import logging
import os
import queue
import socket
import threading
import time
from typing import Optional

from .cluster import Cluster
from .config import NON_PRIOR_RESPONSE_DELAY, TRANSFER_METHOD_TCP, UDP_BUFFER_SIZE
from .message import Discover, File, Get, Message, MessageError, unmarshal

logger = logging.getLogger(__name__)

_POLL = 0.2


def _base(path: str) -> str:
    """Last element of ``path``, with the same edge cases as a path base."""
    if path == "":
        return "."
    stripped = path.rstrip("/")
    if stripped == "":
        return "/"
    return os.path.basename(stripped)


def _format_addr(addr: tuple) -> str:
    host, port = addr[0], addr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class UDPServer:
    """Answers discovery and file requests from peers and asks peers for files."""

    def __init__(
        self,
        ip: str,
        port: int,
        cluster: Cluster,
        discovery_period: float,
        waiting_time: float,
        folder: str,
    ) -> None:
        if discovery_period <= 0:
            raise ValueError("discovery period must be positive")
        self.ip = ip
        self.port = port
        self.cluster = cluster
        self.discovery_period = discovery_period
        self.waiting_time = waiting_time
        self.folder = folder
        self.req = ""
        self.response_delay = NON_PRIOR_RESPONSE_DELAY

        self._sock: Optional[socket.socket] = None
        self._closed = threading.Event()

        self._waiting = False
        self._response: Optional[threading.Event] = None
        self._waiting_lock = threading.Lock()

        self._prior: list[str] = []
        self._prior_lock = threading.Lock()

        self._file_index: dict[str, str] = {}
        self._index_lock = threading.Lock()

        self._rebuild_file_index()

    def bind(self) -> int:
        """Open the UDP socket on the configured address and return its port."""
        family = socket.AF_INET6 if ":" in self.ip else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind((self.ip, self.port))
        except OSError as exc:
            sock.close()
            raise OSError(f"failed to start UDP server: {exc}") from exc
        self._sock = sock
        self._closed.clear()
        self.port = sock.getsockname()[1]
        logger.info("UDP server listening on %s:%d", self.ip, self.port)
        return self.port

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise RuntimeError("UDP server is not bound")
        return self._sock

    def up(
        self,
        stop: threading.Event,
        tcp_port: int,
        downloads: queue.Queue[tuple[str, str]],
    ) -> None:
        """Receive and handle messages until ``stop`` is set or the server is closed."""
        if self._sock is None:
            self.bind()
        sock = self._require_socket()
        sock.settimeout(_POLL)

        try:
            while not stop.is_set():
                try:
                    data, remote = sock.recvfrom(UDP_BUFFER_SIZE)
                except TimeoutError:
                    continue
                except OSError as exc:
                    if stop.is_set() or self._closed.is_set():
                        return
                    logger.error("UDP read error: %s", exc)
                    continue

                text = data.decode("utf-8", errors="replace").strip()
                logger.debug("Received: %s", text)
                try:
                    msg = unmarshal(text)
                except MessageError as exc:
                    logger.error("Failed to unmarshal message: %s", exc)
                    continue

                self.handle_message(msg, remote, tcp_port, downloads)
        finally:
            if stop.is_set():
                self.close()

    def handle_message(
        self,
        msg: Message,
        remote_addr: tuple,
        tcp_port: int,
        downloads: queue.Queue[tuple[str, str]],
    ) -> None:
        """Act on one message received from ``remote_addr``."""
        remote = _format_addr(remote_addr)

        if isinstance(msg, Discover):
            host = f"{self.ip}:{self.port}"
            logger.debug(
                "Received discovery from %s with %d peer(s)", remote, len(msg.addresses)
            )
            self.cluster.merge(host, msg.addresses)

        elif isinstance(msg, Get):
            logger.info("Peer %s is requesting file '%s'", remote, msg.name)
            if self.search(msg.name):
                logger.info("File '%s' found locally, responding to %s", msg.name, remote)
                reply = File(TRANSFER_METHOD_TCP, tcp_port).marshal()
                threading.Thread(
                    target=self._transfer, args=(remote_addr, reply), daemon=True
                ).start()
            else:
                logger.debug("File '%s' not found locally", msg.name)

        elif isinstance(msg, File):
            with self._waiting_lock:
                was_waiting = self._waiting
                self._waiting = False
                requested = self.req
                response = self._response

            if not was_waiting:
                logger.debug(
                    "Received late file response from %s (no longer waiting)", remote
                )
                return

            ip = remote_addr[0]
            logger.info(
                "Peer %s has file '%s' (TCP port: %d)", ip, requested, msg.tcp_port
            )
            self._add_to_prior(remote)
            if response is not None:
                response.set()

            server_addr = _format_addr((ip, msg.tcp_port))
            logger.info("Initiating TCP download from %s", server_addr)
            downloads.put((server_addr, requested))

    def _transfer(self, addr: tuple, payload: str) -> None:
        remote = _format_addr(addr)
        if self._is_prior(remote):
            logger.info("Responding immediately (priority peer)")
        else:
            logger.info(
                "Waiting %gs before responding (non-priority peer)...",
                self.response_delay,
            )
            if self._closed.wait(self.response_delay):
                return

        sock = self._sock
        if sock is None:
            return
        logger.info("Sending file response to %s", remote)
        try:
            sock.sendto(payload.encode("utf-8"), addr)
        except OSError as exc:
            logger.error("Failed to send transfer message: %s", exc)
        else:
            logger.info("File response sent to %s", remote)

    def discover(self, stop: threading.Event) -> None:
        """Broadcast the known members every discovery period until ``stop`` is set."""
        while not stop.wait(self.discovery_period):
            if self._closed.is_set():
                return
            self.broadcast_discovery()

    def request_file(self, name: str, stop: Optional[threading.Event] = None) -> bool:
        """Ask the cluster for ``name`` and wait for an answer.

        Returns True if a peer answered before the waiting time ran out.
        """
        sock = self._require_socket()
        response = threading.Event()
        with self._waiting_lock:
            self.req = name
            self._waiting = True
            self._response = response

        logger.info(
            "Broadcasting file request for '%s' to %d peer(s)", name, len(self.cluster)
        )
        try:
            self.cluster.broadcast(sock, Get(name).marshal())
        except OSError as exc:
            logger.error("File request broadcast error: %s", exc)

        deadline = time.monotonic() + self.waiting_time
        while not response.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0 or (stop is not None and stop.is_set()):
                break
            response.wait(min(remaining, _POLL))

        with self._waiting_lock:
            was_waiting = self._waiting
            self._waiting = False
            self._response = None

        if was_waiting:
            logger.warning(
                "No peer responded with file '%s' (timeout after %gs)",
                name,
                self.waiting_time,
            )
        return response.is_set()

    def search(self, filename: str) -> bool:
        """Tell whether a file of this name is in the shared folder."""
        name = _base(filename)
        with self._index_lock:
            if name in self._file_index:
                return True
        self._rebuild_file_index()
        with self._index_lock:
            return name in self._file_index

    def _rebuild_file_index(self) -> None:
        index: dict[str, str] = {}
        if os.path.isfile(self.folder):
            index[os.path.basename(self.folder)] = self.folder
        for root, _dirs, files in os.walk(self.folder):
            for entry in files:
                index[entry] = os.path.join(root, entry)
        with self._index_lock:
            self._file_index = index

    def get_file_path(self, filename: str) -> Optional[str]:
        """Return the indexed path of ``filename``, or None if it is not indexed."""
        with self._index_lock:
            return self._file_index.get(_base(filename))

    def _add_to_prior(self, address: str) -> None:
        with self._prior_lock:
            if address not in self._prior:
                self._prior.append(address)

    def _is_prior(self, address: str) -> bool:
        with self._prior_lock:
            return address in self._prior

    def broadcast_discovery(self) -> None:
        """Send the current member list to every member right away."""
        sock = self._require_socket()
        msg = Discover(self.cluster.members()).marshal()
        try:
            self.cluster.broadcast(sock, msg)
        except OSError as exc:
            logger.error("Discovery broadcast error: %s", exc)

    def close(self) -> None:
        """Stop discovery and close the socket."""
        self._closed.set()
        if self._sock is not None:
            self._sock.close()