"""Small helpers shared by the transfer code."""

from __future__ import annotations

import os
from collections.abc import Iterable


def contains(items: Iterable[str], item: str) -> bool:
    """Tell whether ``item`` is among ``items``."""
    return item in items


def _base(path: str) -> str:
    if path == "":
        return "."
    stripped = path.rstrip("/" + (os.sep if os.sep != "/" else ""))
    if stripped == "":
        return os.sep
    return os.path.basename(stripped)


def safe_path(folder: str, filename: str) -> str:
    """Join the last element of ``filename`` onto ``folder``, dropping any directories."""
    return os.path.normpath(os.path.join(folder, _base(filename)))


def fill_string(s: str, length: int, padding: str) -> str:
    """Cut ``s`` to ``length`` characters, or pad it on the right with ``padding``."""
    if len(s) >= length:
        return s[:length]
    return s + padding * (length - len(s))


def trim_padding(s: str, padding: str) -> str:
    """Strip every trailing character found in ``padding``."""
    return s.rstrip(padding)