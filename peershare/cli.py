"""Command-line entry point: gathers the settings and starts a node."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from .node import Node

console = Console()

DEFAULT_FOLDER = "./shared"


def _say(level: str, text: str) -> None:
    styles = {
        "info": "bold cyan",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
    }
    console.print(f"[{styles[level]}]{level.upper():<8}[/] {escape(text)}")


def _ask(prompt: str) -> str:
    return console.input(prompt, markup=False).strip()


def parse_cluster(text: str) -> list[str]:
    """Split a comma-separated address list, dropping blanks."""
    return [address for address in (part.strip() for part in text.split(",")) if address]


def prompt_folder() -> str:
    """Ask for the folder to share until an existing directory is given."""
    while True:
        folder = _ask(f"Enter the folder you want to share [{DEFAULT_FOLDER}]: ")
        if not folder:
            folder = DEFAULT_FOLDER

        if not os.path.exists(folder):
            _say("warning", "Couldn't find the folder, please try again")
            continue
        if not os.path.isdir(folder):
            _say("warning", "Path is not a directory, please try again")
            continue

        _say("success", f"Using folder: {folder}")
        return folder


def prompt_cluster_members() -> list[str]:
    """Ask for peer addresses one by one until an empty line."""
    cluster: list[str] = []
    _say("info", "Add cluster members (IP:Port format)")
    console.print("Press Enter with empty input when done", style="grey50")
    console.print()

    while True:
        text = _ask("Add peer address (or press Enter to finish): ")
        if not text:
            break
        if ":" not in text:
            _say("warning", "Invalid format. Use IP:Port (e.g., 127.0.0.1:1378)")
            continue
        cluster.append(text)
        _say("success", f"Added: {text}")

    if cluster:
        console.print()
        _say("info", f"Added {len(cluster)} cluster member(s)")
    else:
        _say("info", "No cluster members added (standalone mode)")
    return cluster


def _print_header() -> None:
    console.print(Panel(Text("P2P", style="bold cyan", justify="center")))
    console.rule("[bright_cyan]Peer-to-Peer File Sharing[/]")
    console.print()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run a node; settings come from P2P_FOLDER and P2P_CLUSTER or from prompts."""
    parser = argparse.ArgumentParser(
        prog="peershare", description="Share a folder with a cluster of peers."
    )
    parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    _print_header()

    folder = os.environ.get("P2P_FOLDER", "")
    cluster_env = os.environ.get("P2P_CLUSTER", "")

    if folder and cluster_env:
        _say("info", "Using environment configuration")
        console.print(f"  • Folder: [bright_cyan]{escape(folder)}[/]")
        console.print(f"  • Cluster: [bright_cyan]{escape(cluster_env)}[/]")
        cluster = parse_cluster(cluster_env)
    else:
        try:
            folder = prompt_folder()
        except (EOFError, KeyboardInterrupt) as exc:
            _say("error", f"Error getting folder: {exc}")
            return 1
        try:
            cluster = prompt_cluster_members()
        except (EOFError, KeyboardInterrupt) as exc:
            _say("error", f"Error getting cluster members: {exc}")
            return 1

    console.print()
    _say("success", "Configuration complete!")
    console.print()

    try:
        node = Node(folder, cluster)
    except (OSError, ValueError) as exc:
        _say("error", f"Failed to create node: {exc}")
        return 1

    try:
        node.run()
    except (OSError, RuntimeError) as exc:
        _say("error", f"Node error: {exc}")
        return 1
    return 0