"""
goal: turns the fixed-width hex addresses found in the kernel TCP tables into printable IP strings.
IPv4 values are stored as a host-order (little-endian) 32-bit word, IPv6 values are read back as a
big-endian 128-bit integer. anything that is not exactly the right number of hex digits is rejected.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import ipaddress  # for canonical IPv4/IPv6 text forms
import re  # for strict hex validation
import struct  # for re-packing the IPv4 word in little-endian order

_HEX8 = re.compile(r"[0-9A-Fa-f]{8}")  # exactly 32 bits worth of hex digits
_HEX32 = re.compile(r"[0-9A-Fa-f]{32}")  # exactly 128 bits worth of hex digits


class DecodeError(ValueError):
    """raised when a hex address field cannot be decoded"""


def decode_ipv4(hex_str: str) -> ipaddress.IPv4Address:
    # int(x, 16) would also take "0x", "_" and padding, so validate the shape first
    if not isinstance(hex_str, str) or not _HEX8.fullmatch(hex_str):
        raise DecodeError(f"not an 8-digit hex IPv4 value: {hex_str!r}")
    value = int(hex_str, 16)
    # the table keeps the address in host byte order, not network order
    return ipaddress.IPv4Address(struct.pack("<I", value))


def decode_ipv6(hex_str: str) -> ipaddress.IPv6Address:
    if not isinstance(hex_str, str) or not _HEX32.fullmatch(hex_str):
        raise DecodeError(f"not a 32-digit hex IPv6 value: {hex_str!r}")
    return ipaddress.IPv6Address(int(hex_str, 16).to_bytes(16, "big"))


def decode_address(hex_str: str, is_ipv6: bool) -> str:
    """decode with the family chosen by the caller and return the canonical text form."""
    addr = decode_ipv6(hex_str) if is_ipv6 else decode_ipv4(hex_str)
    return str(addr)
