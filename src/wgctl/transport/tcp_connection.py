"""TCP connection to a controller reached through a relay.

The stream is owned by the caller and is expected to be connected already.
No replies are read on this transport.
"""

from __future__ import annotations

import logging
import socket

from ..models.device import DeviceAddress
from .base import Transport

_LOGGER = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5.0


class TCPConnection(Transport):
    """Remote transport over a connected stream socket."""

    is_local = False

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
        host: str,
        port: int,
        timeout: float = CONNECT_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> TCPConnection:
        """Connect to a relay at ``host:port``.

        Raises:
            ConnectionError: If the relay cannot be reached.
        """
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise ConnectionError(f"Could not connect to relay {host}:{port}: {e}") from e
        return cls(sock, logger=logger)

    @property
    def sock(self) -> socket.socket:
        return self._sock

    def send(self, frame: bytes, address: DeviceAddress) -> None:
        """Write a frame to the stream. The address is not used."""
        try:
            self._sock.sendall(frame)
        except OSError as e:
            self._logger.error("TCP send failed: %s", e)

    def close(self) -> None:
        try:
            self._sock.close()
        except OSError as e:
            self._logger.warning("Error closing TCP socket: %s", e)
