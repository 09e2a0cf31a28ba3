"""UDP connection to controllers on the local network.

Frames go unicast to a known controller IP, or to the limited broadcast
address while the IP is unknown. The same socket receives replies, which
discovery and scanning read through :meth:`UDPConnection.read`.
"""

from __future__ import annotations

import logging
import select
import socket
import time

from ..errors import FrameDecodeError
from ..models.device import DEFAULT_PORT, DeviceAddress, DeviceInfo
from ..protocol.commands import build_search
from ..protocol.framing import FRAME_SIZE
from ..protocol.parser import parse_device_info
from .base import Transport

_LOGGER = logging.getLogger(__name__)

RECV_BUFFER_SIZE = 1024
SCAN_TIMEOUT_MS = 2000


class UDPConnection(Transport):
    """Local transport over a datagram socket.

    Usage::

        conn = UDPConnection.open(bind_port=9000)
        conn.send(frame, DeviceAddress(ip="192.168.1.150"))
        reply = conn.read(timeout_ms=1000)
        conn.close()
    """

    is_local = True

    def __init__(
        self,
        sock: socket.socket,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sock = sock
        self._logger = logger if logger is not None else _LOGGER

    @classmethod
    def open(
        cls,
        bind_ip: str = "0.0.0.0",
        bind_port: int = 0,
        logger: logging.Logger | None = None,
    ) -> UDPConnection:
        """Create a UDP socket bound to ``bind_ip:bind_port``.

        Controllers report back to the server address they were given, so
        bind to that port when callbacks should arrive on this socket.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((bind_ip, bind_port))
        except OSError:
            sock.close()
            raise
        return cls(sock, logger=logger)

    @property
    def sock(self) -> socket.socket:
        return self._sock

    def send(self, frame: bytes, address: DeviceAddress) -> None:
        """Send a frame, broadcasting when the controller IP is unknown."""
        broadcast = address.broadcast
        target = address.target
        self._logger.info("Sending local data to %s.", target[0])
        try:
            if broadcast:
                self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            self._sock.sendto(frame, target)
        except OSError as e:
            self._logger.error("UDP send to %s:%d failed: %s", target[0], target[1], e)
            if broadcast:
                try:
                    self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 0)
                except OSError as cleanup_error:
                    self._logger.debug("Could not disable broadcast: %s", cleanup_error)

    def read(self, timeout_ms: int | None = None) -> bytes | None:
        """Wait for one datagram.

        Args:
            timeout_ms: Wait limit in milliseconds, ``None`` waits indefinitely.

        Returns:
            The datagram, or None on timeout or socket error.
        """
        timeout = None if timeout_ms is None else max(timeout_ms, 0) / 1000
        try:
            ready, _, _ = select.select([self._sock], [], [], timeout)
            if not ready:
                return None
            data, addr = self._sock.recvfrom(RECV_BUFFER_SIZE)
        except (OSError, ValueError) as e:
            self._logger.debug("UDP read error: %s", e)
            return None

        self._logger.debug("Received %d bytes from %s:%d", len(data), addr[0], addr[1])
        return data

    def scan(
        self,
        serial: int | None = None,
        timeout_ms: int = SCAN_TIMEOUT_MS,
        port: int = DEFAULT_PORT,
    ) -> list[DeviceInfo]:
        """Broadcast a search and collect every controller that answers.

        Args:
            serial: Only keep replies from this serial. ``None`` keeps all.
            timeout_ms: How long to listen for replies.
            port: Controller UDP port.

        Returns:
            One DeviceInfo per distinct serial, in arrival order.
        """
        self.send(build_search(serial), DeviceAddress(ip=None, port=port))

        found: dict[int, DeviceInfo] = {}
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            remaining_ms = int((deadline - time.monotonic()) * 1000)
            if remaining_ms <= 0:
                break
            data = self.read(remaining_ms)
            if data is None or len(data) < FRAME_SIZE:
                continue
            try:
                info = parse_device_info(data)
            except FrameDecodeError as e:
                self._logger.debug("Ignoring non-search reply: %s", e)
                continue
            if serial and info.serial != serial:
                continue
            if info.serial not in found:
                self._logger.info(
                    "Controller %d found at %s (firmware %s)",
                    info.serial, info.ip, info.version,
                )
                found[info.serial] = info

        return list(found.values())

    def close(self) -> None:
        try:
            self._sock.close()
        except OSError as e:
            self._logger.warning("Error closing UDP socket: %s", e)
