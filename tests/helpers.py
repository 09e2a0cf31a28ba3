"""Shared test doubles and reply builders."""

from __future__ import annotations

import queue

from wgctl.protocol.framing import build_frame
from wgctl.transport.base import Transport
from wgctl.utils.ipaddr import ip_to_bytes


class FakeUDPConnection(Transport):
    """Local transport that records sends and serves queued replies."""

    is_local = True

    def __init__(self) -> None:
        self.sent: list[tuple[bytes, str | None, int]] = []
        self.replies: queue.Queue[bytes] = queue.Queue()
        self.closed = False

    def send(self, frame, address) -> None:
        self.sent.append((frame, address.ip, address.port))

    def read(self, timeout_ms=None):
        timeout = None if timeout_ms is None else timeout_ms / 1000
        try:
            return self.replies.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self.closed = True

    def functions(self) -> list[int]:
        return [frame[1] for frame, _, _ in self.sent]


def search_reply(
    serial: int,
    ip: str,
    subnet: str = "255.255.255.0",
    gateway: str = "192.168.1.1",
    mac: bytes = b"\x00\x57\x19\x01\x02\x03",
    version: bytes = b"\x06\x62",
    release: bytes = b"\x20\x19\x08\x15",
) -> bytes:
    """Build a Search (0x94) reply as a controller sends it."""
    payload = (
        ip_to_bytes(ip) + ip_to_bytes(subnet) + ip_to_bytes(gateway)
        + mac + version + release
    )
    return build_frame(0x94, serial, payload)
