"""IPv4 and MAC address conversions for payload fields."""

from __future__ import annotations

import ipaddress


def ip_to_bytes(ip: str) -> bytes:
    """Convert a dotted-quad string to its 4-byte network-order form.

    Raises:
        ValueError: If ``ip`` is not a valid IPv4 address.
    """
    return ipaddress.IPv4Address(ip).packed


def bytes_to_ip(data: bytes) -> str:
    """Convert 4 bytes to a dotted-quad string."""
    if len(data) < 4:
        raise ValueError(f"IPv4 address needs 4 bytes, got {len(data)}")
    return str(ipaddress.IPv4Address(bytes(data[:4])))


def format_mac(data: bytes) -> str:
    return ":".join(f"{b:02X}" for b in data[:6])
