"""
goal: reads the kernel's textual TCP tables (/proc/net/tcp and /proc/net/tcp6) and groups the remote
peers of established connections by local port. only ports the caller cares about are kept. a bad row
is dropped and the scan keeps going, and a table that cannot be read at all counts as empty so one
missing family never costs us the other.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import logging
import os
import re
from collections.abc import Iterable, Set
from typing import IO, Union

from agent.addr_codec import DecodeError, decode_address

log = logging.getLogger(__name__)

TCP4_PATH = "/proc/net/tcp"  # IPv4 table
TCP6_PATH = "/proc/net/tcp6"  # IPv6 table
TCP_ESTABLISHED = "01"  # kernel state code for ESTABLISHED

_PORT_HEX = re.compile(r"[0-9A-Fa-f]{1,4}")  # a 16-bit port never needs more than 4 digits

# anything we know how to read lines from
Source = Union[str, "os.PathLike[str]", IO[str], Iterable[str]]
PortMap = dict[int, set[str]]


def parse_line(line: str, ports: Set[int], is_ipv6: bool) -> tuple[int, str] | None:
    """
    parse one data row of a TCP table.
    returns (local_port, remote_ip) for an established connection on a watched port, None otherwise.
    """
    fields = line.split()
    if len(fields) < 4:  # header fragments, blank lines, truncated rows
        return None

    local_field, remote_field, state = fields[1], fields[2], fields[3]
    if state != TCP_ESTABLISHED:
        return None

    _, sep, port_hex = local_field.partition(":")
    if not sep or not _PORT_HEX.fullmatch(port_hex):
        return None
    local_port = int(port_hex, 16)
    if local_port not in ports:
        return None

    remote_hex, sep, _ = remote_field.partition(":")
    if not sep:
        return None
    try:
        remote_ip = decode_address(remote_hex, is_ipv6)
    except DecodeError:
        return None
    return local_port, remote_ip


def scan_lines(lines: Iterable[str], ports: Set[int], is_ipv6: bool) -> PortMap:
    """apply parse_line to every row after the header and collect remote IPs per local port."""
    port_map: PortMap = {}
    it = iter(lines)
    next(it, None)  # first line is always the column header
    for line in it:
        hit = parse_line(line, ports, is_ipv6)
        if hit is None:
            continue
        port, ip = hit
        port_map.setdefault(port, set()).add(ip)
    return port_map


def scan(source: Source, ports: Set[int], is_ipv6: bool) -> PortMap:
    """
    scan one table source. a path is opened here; a stream or list of lines is read as-is.
    a str holding a newline is an in-memory table, any other str is a path.
    an unreadable path yields an empty mapping.
    """
    if isinstance(source, str) and "\n" in source:
        return scan_lines(source.splitlines(), ports, is_ipv6)
    if not isinstance(source, (str, os.PathLike)):
        return scan_lines(source, ports, is_ipv6)
    try:
        with open(source, encoding="ascii", errors="replace") as f:
            return scan_lines(f, ports, is_ipv6)
    except (OSError, ValueError) as exc:  # ValueError: embedded NUL in the path
        log.debug("tcp table %s unavailable: %s", os.fspath(source), exc)
        return {}
