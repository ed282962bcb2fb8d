"""
goal: merges the per-port results of the IPv4 and IPv6 table scans into one Snapshot for a capture cycle.
every port entry in a snapshot shares the single timestamp taken when the cycle was aggregated, so the
entries can be compared as "as of the same instant". snapshots are built fresh each cycle and never
look at an earlier one.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import ipaddress  # for a numeric sort order of the remote IPs
from collections.abc import Mapping, Set
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_timestamp() -> str:
    # RFC3339 in UTC, microseconds keep back-to-back cycles distinct
    return datetime.now(timezone.utc).isoformat()


def _ip_sort_key(ip: str) -> tuple[int, int, str]:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return (99, 0, ip)  # unknown text sorts last, still deterministic
    return (addr.version, int(addr), ip)


@dataclass(frozen=True)
class PortObservation:
    """distinct remote IPs seen on one local port during one cycle"""

    port: int
    unique_ips: tuple[str, ...]
    timestamp: str

    @property
    def count(self) -> int:
        return len(self.unique_ips)

    def to_entry(self) -> dict[str, Any]:
        return {
            "port": self.port,
            "unique_ips": list(self.unique_ips),
            "count": self.count,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Snapshot:
    host: str
    timestamp: str
    observations: tuple[PortObservation, ...] = field(default_factory=tuple)

    @property
    def ports(self) -> list[int]:
        return [obs.port for obs in self.observations]

    def get(self, port: int) -> PortObservation | None:
        for obs in self.observations:
            if obs.port == port:
                return obs
        return None

    def to_document(self) -> dict[str, Any]:
        """canonical file shape: {host, connections: [...]}"""
        return {
            "host": self.host,
            "connections": [obs.to_entry() for obs in self.observations],
        }

    def to_records(self) -> list[dict[str, Any]]:
        """flat per-entry shape used for message-bus payloads"""
        return [{"host": self.host, **obs.to_entry()} for obs in self.observations]


def aggregate(
    tcp4: Mapping[int, Set[str]],
    tcp6: Mapping[int, Set[str]],
    host: str,
    timestamp: str | None = None,
) -> Snapshot:
    """union both scans per port and stamp every entry with one timestamp."""
    stamp = timestamp if timestamp is not None else utc_timestamp()  # taken once for the cycle

    merged: dict[int, set[str]] = {}
    for result in (tcp4, tcp6):
        for port, ips in result.items():
            merged.setdefault(port, set()).update(ips)  # a port seen in both families stays one entry

    observations = tuple(
        PortObservation(
            port=port,
            unique_ips=tuple(sorted(ips, key=_ip_sort_key)),
            timestamp=stamp,
        )
        for port, ips in sorted(merged.items())
    )
    return Snapshot(host=host, timestamp=stamp, observations=observations)
