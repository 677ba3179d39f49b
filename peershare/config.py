"""Runtime configuration and protocol constants."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Size of the chunks used when streaming file contents over TCP.
BUFFER_SIZE = 1024
# Size of the buffer used to read a single UDP datagram or TCP request.
UDP_BUFFER_SIZE = 2048
# Fixed width of the file name field in the transfer header.
FILE_NAME_LENGTH = 64
# Fixed width of the file size field in the transfer header.
FILE_SIZE_LENGTH = 10

# Transfer method announced in File messages.
TRANSFER_METHOD_TCP = 1

# Seconds a responder that is not a priority peer waits before answering.
NON_PRIOR_RESPONSE_DELAY = 10.0

MSG_DISCOVER = "DISCOVER"
MSG_GET = "Get"
MSG_FILE = "File"

DEFAULT = """
host: 127.0.0.1
port: 1378
period: 20
waiting: 100
"""

ENV_PREFIX = "P2P"
CONFIG_NAME = "config"
CONFIG_EXTENSIONS = (".yml", ".yaml")
DEFAULT_SEARCH_DIRS = (".", "./configs")

_INT_RE = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class Config:
    """Settings of one node."""

    host: str
    port: int
    discovery_period: int
    waiting_time: int


def _find_config_file(search_dirs: Iterable[str | os.PathLike[str]]) -> Path | None:
    for directory in search_dirs:
        for extension in CONFIG_EXTENSIONS:
            candidate = Path(directory) / f"{CONFIG_NAME}{extension}"
            if candidate.is_file():
                return candidate
    return None


def _load_mapping(text: str, origin: str) -> dict[str, Any]:
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{origin}: configuration must be a mapping")
    return {str(key).lower(): value for key, value in data.items()}


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    raise ValueError(f"invalid integer for {key!r}: {value!r}")


def read_config(
    search_dirs: Iterable[str | os.PathLike[str]] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Build the configuration from defaults, an optional config file and the environment.

    The file ``config.yml`` (or ``config.yaml``) is looked up in each of
    ``search_dirs`` in order; its values override the defaults. Variables named
    ``P2P_<KEY>`` override both.
    """
    if search_dirs is None:
        search_dirs = DEFAULT_SEARCH_DIRS
    if environ is None:
        environ = os.environ

    values = _load_mapping(DEFAULT, "defaults")

    path = _find_config_file(search_dirs)
    if path is None:
        logger.info("No config file found")
    else:
        values.update(_load_mapping(path.read_text(encoding="utf-8"), str(path)))

    for key in list(values):
        env_key = f"{ENV_PREFIX}_{key.replace('.', '_').replace('-', '_')}".upper()
        if env_key in environ:
            values[key] = environ[env_key]

    return Config(
        host=str(values["host"]),
        port=_as_int("port", values["port"]),
        discovery_period=_as_int("period", values["period"]),
        waiting_time=_as_int("waiting", values["waiting"]),
    )