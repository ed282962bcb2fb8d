"""
goal: configuration loader for the agent. settings come from (highest first) command line flags,
      CONNTRACK_* environment variables, a JSON config file, and built-in defaults. returns a frozen
      Config dataclass. also owns the two startup helpers the tracker needs: turning the comma
      separated port list into a PortSet and resolving the host identifier.
"""

from __future__ import annotations

import json
import os
import socket
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agent.proc_tcp import TCP4_PATH, TCP6_PATH

ENV_PREFIX = "CONNTRACK_"


# figure out where the app is running from (handles PyInstaller bundles)
def _resolve_base_dir() -> Path:
    import sys

    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    # app/config.py -> project root
    return Path(__file__).resolve().parents[1]


# frozen dataclass to hold all config values (immutable once created)
@dataclass(frozen=True)
class Config:
    ports: frozenset[int]  # local ports to watch
    ports_given: bool  # whether any port list was supplied at all
    output: str | None  # JSON output file path
    broker: str | None  # kafka bootstrap address
    topic: str | None  # kafka topic
    interval: float  # seconds between cycle starts
    tcp4_path: str
    tcp6_path: str
    host: str  # host identifier stamped on snapshots
    serve_host: str  # status server bind address
    serve_port: int  # status server port, 0 disables it
    log_level: str
    once: bool = False  # single capture then exit


def parse_ports(value: str | Iterable[Any] | None) -> frozenset[int]:
    """comma separated list (or JSON list) to a PortSet, bad tokens are dropped"""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        tokens: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        tokens = list(value)
    else:
        tokens = [value]  # a lone number from a JSON file
    ports: set[int] = set()
    for tok in tokens:
        text = str(tok).strip().lstrip("+")
        # plain ASCII digits only, int() would also take "1_000" and other scripts
        if not (text.isascii() and text.isdigit()):
            continue
        port = int(text)
        if 0 <= port <= 0xFFFF:
            ports.add(port)
    return frozenset(ports)


def resolve_host() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return ""


# get a config value with priority: environment variable > JSON file > default
def _get(obj: Mapping[str, Any], key: str, default):
    env = os.getenv(f"{ENV_PREFIX}{key.upper()}")
    if env is not None:
        # bool before int, bool is an int subclass
        if isinstance(default, bool):
            return env.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(default, int):
            try:
                return int(env)
            except ValueError:
                return default
        if isinstance(default, float):
            try:
                return float(env)
            except ValueError:
                return default
        return env
    return obj.get(key, default)


def _load_file(path: Path | None) -> dict[str, Any]:
    if path is None or not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8") or "{}")
    except (OSError, ValueError):
        # broken file means all defaults
        return {}
    return data if isinstance(data, dict) else {}


def _config_path(explicit: str | None) -> Path | None:
    if explicit:
        return Path(explicit)
    env = os.getenv(f"{ENV_PREFIX}CONFIG")
    if env:
        return Path(env)
    return _resolve_base_dir() / "data" / "config.json"


def _number(key: str, value: Any, kind: type) -> Any:
    # bool is an int subclass but never a sensible number here
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return kind(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def load_config(overrides: Mapping[str, Any] | None = None, config_file: str | None = None) -> Config:
    """
    build the Config. overrides holds values from the command line, a None value means
    "not given" and falls through to env / file / default.
    """
    given = {k: v for k, v in (overrides or {}).items() if v is not None}
    obj = _load_file(_config_path(config_file))

    def pick(key: str, default):
        if key in given:
            return given[key]
        return _get(obj, key, default)

    raw_ports = pick("ports", None)
    host = pick("host", None)
    return Config(
        ports=parse_ports(raw_ports),
        ports_given=raw_ports is not None,
        output=pick("output", None) or None,
        broker=pick("broker", None) or None,
        topic=pick("topic", None) or None,
        interval=_number("interval", pick("interval", 10.0), float),
        tcp4_path=str(pick("tcp4_path", TCP4_PATH)),
        tcp6_path=str(pick("tcp6_path", TCP6_PATH)),
        host=resolve_host() if host is None else str(host),
        serve_host=str(pick("serve_host", "127.0.0.1")),
        serve_port=_number("serve_port", pick("serve_port", 0), int),
        log_level=str(pick("log_level", "WARNING")).upper(),
        once=bool(pick("once", False)),
    )
