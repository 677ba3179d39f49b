"""A peer: runs the transfer services and the interactive menu."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterable
from typing import Any, Optional, TextIO

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .cluster import Cluster
from .config import Config, read_config
from .tcp_client import TCPClient
from .tcp_server import TCPServer
from .udp_server import UDPServer

logger = logging.getLogger(__name__)

MENU_LIST = "List cluster members"
MENU_GET = "Download a file"
MENU_PING = "Ping peers"
MENU_QUIT = "Quit"
MENU_OPTIONS = (MENU_LIST, MENU_GET, MENU_PING, MENU_QUIT)

# Seconds to wait for discovery answers after pinging the peers.
PING_WAIT = 2.0

_STYLES = {
    "info": "bold cyan",
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
}


class Node:
    """One peer of the cluster, tying the UDP and TCP services to a menu."""

    def __init__(
        self,
        folder: str,
        cluster_list: Iterable[str],
        config: Optional[Config] = None,
    ) -> None:
        cfg = config if config is not None else read_config()
        self.config = cfg
        self.folder = folder
        self.cluster = Cluster(cluster_list)
        self.udp_server = UDPServer(
            cfg.host,
            cfg.port,
            self.cluster,
            cfg.discovery_period,
            cfg.waiting_time,
            folder,
        )
        self.tcp_server = TCPServer(folder, cfg.host)
        self.tcp_client = TCPClient(folder)
        self.downloads: queue.Queue[tuple[str, str]] = queue.Queue()
        self.console = Console()
        self.input_stream: Optional[TextIO] = None
        self.ping_wait = PING_WAIT

        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._started = False
        self._shut_down = False

    def run(self) -> None:
        """Start every service and serve the menu until the user quits."""
        with self._lock:
            if self._started or self._shut_down:
                raise RuntimeError("node has already been started")
            self._started = True

        try:
            tcp_port = self.tcp_server.bind()
            self.udp_server.bind()
            self._spawn("TCP server", self.tcp_server.serve, self._stop)
            self._spawn("TCP client", self.tcp_client.connect, self._stop, self.downloads)
            self._spawn(
                "UDP server", self.udp_server.up, self._stop, tcp_port, self.downloads
            )
            self._spawn("Discovery", self.udp_server.discover, self._stop)
            self._handle_user_input()
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Stop every service and wait for them to finish; later calls do nothing."""
        with self._lock:
            if self._shut_down:
                return
            self._shut_down = True

        self.console.print()
        with self.console.status("Shutting down..."):
            self._stop.set()
            self.tcp_server.close()
            self.udp_server.close()
            current = threading.current_thread()
            for thread in self._threads:
                if thread is not current:
                    thread.join()
        self._report("success", "Shutdown complete")

    def _spawn(self, name: str, target: Callable[..., Any], *args: Any) -> None:
        def runner() -> None:
            try:
                target(*args)
            except Exception as exc:  # a failing service is reported, not fatal
                self._report("error", f"{name} error: {exc}")

        thread = threading.Thread(target=runner, name=name, daemon=True)
        thread.start()
        self._threads.append(thread)

    def _report(self, level: str, text: str) -> None:
        style = _STYLES[level]
        self.console.print(f"[{style}]{level.upper():<8}[/] {escape(text)}")

    def _ask(self, prompt: str) -> str:
        text = self.console.input(prompt, markup=False, stream=self.input_stream)
        if self.input_stream is not None and text == "":
            raise EOFError("input exhausted")
        return text.strip()

    def _choose(self) -> Optional[str]:
        self.console.print()
        for number, option in enumerate(MENU_OPTIONS, start=1):
            self.console.print(f"  [cyan]{number}[/]. {option}")
        answer = self._ask("What would you like to do? ")
        if answer.isdigit() and 1 <= int(answer) <= len(MENU_OPTIONS):
            return MENU_OPTIONS[int(answer) - 1]
        for option in MENU_OPTIONS:
            if answer.lower() == option.lower():
                return option
        return None

    def _handle_user_input(self) -> None:
        actions = {
            MENU_LIST: self._show_cluster_members,
            MENU_GET: self._download_file,
            MENU_PING: self._ping_peers,
        }
        while not self._stop.is_set():
            try:
                choice = self._choose()
                if choice is None:
                    self._report("warning", "Unknown choice, please pick one of the options")
                    continue
                if choice == MENU_QUIT:
                    return
                actions[choice]()
            except (EOFError, KeyboardInterrupt):
                return

    def _show_cluster_members(self) -> None:
        members = self.cluster.members()
        self.console.print()
        if not members:
            self._report("warning", "No cluster members found")
            return

        table = Table(box=box.ROUNDED, show_header=True)
        table.add_column("#")
        table.add_column("Address")
        for number, address in enumerate(members, start=1):
            table.add_row(str(number), escape(address))
        self.console.print(table)
        self._report("info", f"Total: {len(members)} member(s)")

    def _download_file(self) -> None:
        name = self._ask("Enter filename to download: ")
        if not name:
            self._report("warning", "No filename provided")
            return

        self._report("info", f"Requesting file: {name}")
        with self.console.status("Searching for file in cluster..."):
            self.udp_server.request_file(name, self._stop)

    def _ping_peers(self) -> None:
        peers = self.cluster.members()
        if not peers:
            self._report("warning", "No peers in cluster to ping")
            return

        self._report("info", f"Pinging {len(peers)} peer(s)...")
        before = len(self.cluster)
        self.udp_server.broadcast_discovery()
        self._stop.wait(self.ping_wait)
        after = len(self.cluster)

        self.console.print()
        self._report("info", f"Discovery broadcast sent to {len(peers)} peer(s)")
        if after > before:
            self._report("success", f"Discovered {after - before} new peer(s)")

        self._show_cluster_members()