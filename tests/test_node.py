import io
import queue
import socket
import threading
import time

import pytest
from rich.console import Console

from peershare.config import Config
from peershare.node import Node


def _config(waiting_time=5):
    return Config(host="127.0.0.1", port=0, discovery_period=60, waiting_time=waiting_time)


class _Lines:
    """Line source that blocks until a line is fed."""

    def __init__(self):
        self._queue = queue.Queue()

    def feed(self, *lines):
        for line in lines:
            self._queue.put(line + "\n")

    def readline(self):
        return self._queue.get()


def _wait_for(condition, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.05)
    return condition()


def _make_node(folder, cluster=(), script=None):
    node = Node(str(folder), list(cluster), _config())
    output = io.StringIO()
    node.console = Console(file=output, width=120)
    if script is not None:
        node.input_stream = io.StringIO(script)
    return node, output


def test_quit_stops_services(tmp_path):
    node, output = _make_node(tmp_path, script="4\n")
    node.run()
    port = node.tcp_server.tcp_port
    assert port > 0
    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", port), timeout=1).close()
    assert "Shutdown complete" in output.getvalue()


def test_end_of_input_shuts_down(tmp_path):
    node, output = _make_node(tmp_path, script="")
    node.run()
    assert "Shutdown complete" in output.getvalue()


def test_quit_by_name(tmp_path):
    node, output = _make_node(tmp_path, script="Quit\n")
    node.run()
    assert "Shutdown complete" in output.getvalue()


def test_run_twice_is_refused(tmp_path):
    node, _ = _make_node(tmp_path, script="4\n")
    node.run()
    with pytest.raises(RuntimeError):
        node.run()


def test_shutdown_is_idempotent(tmp_path):
    node, output = _make_node(tmp_path, script="4\n")
    node.run()
    node.shutdown()
    assert output.getvalue().count("Shutdown complete") == 1


def test_list_members(tmp_path):
    members = ["127.0.0.1:1378", "192.168.1.1:1379"]
    node, output = _make_node(tmp_path, members, script="1\n4\n")
    node.run()
    text = output.getvalue()
    for address in members:
        assert address in text
    assert node.cluster.members() == members


def test_list_empty_cluster(tmp_path):
    node, output = _make_node(tmp_path, script="1\n4\n")
    node.run()
    assert "No cluster members found" in output.getvalue()


def test_ping_without_peers(tmp_path):
    node, output = _make_node(tmp_path, script="3\n4\n")
    node.run()
    assert "No peers in cluster to ping" in output.getvalue()


def test_download_without_name(tmp_path):
    node, output = _make_node(tmp_path, script="2\n\n4\n")
    node.run()
    assert "No filename provided" in output.getvalue()


def test_unknown_choice_keeps_menu_running(tmp_path):
    node, output = _make_node(tmp_path, script="9\n1\n4\n")
    node.run()
    text = output.getvalue()
    assert "No cluster members found" in text
    assert "Shutdown complete" in text


def _start(node):
    lines = _Lines()
    node.input_stream = lines
    thread = threading.Thread(target=node.run, daemon=True)
    thread.start()
    return lines, thread


def test_download_between_two_nodes(tmp_path):
    shared_a = tmp_path / "a"
    shared_b = tmp_path / "b"
    shared_a.mkdir()
    shared_b.mkdir()
    content = b"hello peers\n" * 300
    (shared_a / "note.txt").write_bytes(content)

    node_a, _ = _make_node(shared_a)
    node_a.udp_server.response_delay = 0
    lines_a, thread_a = _start(node_a)
    lines_b = thread_b = None
    try:
        assert _wait_for(lambda: node_a.udp_server.port != 0)
        node_b, _ = _make_node(shared_b, [f"127.0.0.1:{node_a.udp_server.port}"])
        lines_b, thread_b = _start(node_b)
        lines_b.feed("2", "note.txt")
        target = shared_b / "note.txt"
        assert _wait_for(target.exists)
        assert target.read_bytes() == content
        assert not (shared_b / "downloading_note.txt").exists()
    finally:
        lines_a.feed("4")
        thread_a.join(timeout=10)
        if lines_b is not None:
            lines_b.feed("4")
            thread_b.join(timeout=10)
    assert not thread_a.is_alive()


def test_ping_spreads_members(tmp_path):
    folder_a = tmp_path / "a"
    folder_b = tmp_path / "b"
    folder_a.mkdir()
    folder_b.mkdir()
    extra = "127.0.0.1:9"

    node_a, _ = _make_node(folder_a)
    lines_a, thread_a = _start(node_a)
    lines_b = thread_b = None
    try:
        assert _wait_for(lambda: node_a.udp_server.port != 0)
        own = f"127.0.0.1:{node_a.udp_server.port}"
        node_b, output_b = _make_node(folder_b, [own, extra])
        node_b.ping_wait = 0.2
        lines_b, thread_b = _start(node_b)
        lines_b.feed("3")
        assert _wait_for(lambda: extra in node_a.cluster.members())
        assert own not in node_a.cluster.members()
    finally:
        lines_a.feed("4")
        thread_a.join(timeout=10)
        if lines_b is not None:
            lines_b.feed("4")
            thread_b.join(timeout=10)
    assert own in output_b.getvalue()