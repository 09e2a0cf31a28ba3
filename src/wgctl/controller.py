"""Command API for one door-access controller.

Usage::

    conn = UDPConnection.open(bind_port=9000)
    ctl = DoorController(conn, serial=223000123, server=CallbackTarget("192.168.1.10", 9000))
    ctl.open_door(1)

Commands are fire-and-forget: each builds a fresh frame and hands it to the
transport, whether or not discovery has finished. Until the controller IP
is known, local frames are broadcast.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from datetime import datetime

from .discovery import DEFAULT_DISCOVERY_TIMEOUT, DiscoverySession, DiscoveryState
from .errors import ConfigurationError
from .models.device import DEFAULT_PORT, CallbackTarget, DeviceAddress
from .protocol.commands import (
    Command,
    build_clear_auth,
    build_command,
    build_get_auth,
    build_get_date,
    build_get_server_address,
    build_open_door,
    build_remove_auth,
    build_search,
    build_set_address,
    build_set_auth,
    build_set_date,
    build_set_server_address,
    check_width,
    function_name,
    server_address_payload,
)
from .protocol.framing import OFF_FUNCTION, OFF_PAYLOAD, Frame, parse_frame
from .transport.base import Transport

_LOGGER = logging.getLogger(__name__)

REPLY_TIMEOUT_MS = 2000


class DoorController:
    """One controller reached through one transport.

    Args:
        transport: ``UDPConnection`` (local) or ``TCPConnection`` (relay).
        serial: Controller serial number, written into every frame.
        server: Callback endpoint registered after discovery. Local only.
        ip: Known controller IP. When omitted on a local transport with a
            serial, discovery starts immediately.
        port: Controller UDP port.
        discovery_timeout: Seconds to wait for a search reply, ``None`` for
            no limit.
        logger: Diagnostics sink; defaults to this module's logger.
        auto_discover: Start discovery from the constructor.

    Raises:
        ConfigurationError: ``server`` given for a relay transport, or
            discovery required but no ``server`` given, or ``server`` has a
            malformed IP, port or interval.
        ValueError: ``serial`` or ``port`` outside their field widths.
    """

    def __init__(
        self,
        transport: Transport,
        serial: int | None = None,
        server: CallbackTarget | None = None,
        ip: str | None = None,
        port: int = DEFAULT_PORT,
        discovery_timeout: float | None = DEFAULT_DISCOVERY_TIMEOUT,
        logger: logging.Logger | None = None,
        auto_discover: bool = True,
    ) -> None:
        if not transport.is_local and server is not None:
            raise ConfigurationError("Server ip and port only available for local mode.")
        if serial is not None:
            check_width("Serial", serial, 32)
        check_width("Port", port, 16)
        if server is not None:
            try:
                server_address_payload(server.ip, server.port, server.interval)
            except ValueError as e:
                raise ConfigurationError(f"Invalid server address: {e}") from e

        self.transport = transport
        self.serial = serial
        self.server = server
        self.address = DeviceAddress(ip=ip or None, port=port)
        self._logger = logger if logger is not None else _LOGGER
        self.discovery: DiscoverySession | None = None

        if transport.is_local and not ip and serial:
            if server is None:
                raise ConfigurationError(
                    "Detect is not available when server ip and port undefined."
                )
            self.discovery = DiscoverySession(
                self, transport, server, timeout=discovery_timeout, logger=self._logger
            )
            if auto_discover:
                self.discover()

    @property
    def ip(self) -> str | None:
        return self.address.ip

    @property
    def port(self) -> int:
        return self.address.port

    @property
    def detected(self) -> Future[bool]:
        """Resolves when the controller IP is settled."""
        if self.discovery is not None:
            return self.discovery.detected
        future: Future[bool] = Future()
        future.set_result(bool(self.address.ip))
        return future

    def discover(self) -> DiscoverySession:
        """Start discovery if it has not run yet."""
        if self.discovery is None:
            raise ConfigurationError(
                "Discovery needs a local transport, a serial and an unknown ip."
            )
        if self.discovery.state is DiscoveryState.IDLE and not self.discovery.running:
            self._logger.info("Controller IP not defined, detecting...")
            self.discovery.start()
        return self.discovery

    def close(self) -> None:
        if self.discovery is not None:
            self.discovery.cancel()
        self.transport.close()

    # ─── SENDING ──────────────────────────────────────────────────────

    def _send(self, frame: bytes) -> bytes:
        payload = frame[OFF_PAYLOAD:].rstrip(b"\x00")
        self._logger.info(
            "Func %s, payload to send: %s",
            function_name(frame[OFF_FUNCTION]),
            payload.hex(" ") if payload else "(empty)",
        )
        self.transport.send(frame, self.address)
        return frame

    def send_command(
        self, command: Command, payload: bytes | int | str | None = None
    ) -> bytes:
        """Send an arbitrary command with a raw payload. Returns the frame sent."""
        return self._send(build_command(command, self.serial, payload))

    def receive(self, timeout_ms: int | None = REPLY_TIMEOUT_MS) -> Frame | None:
        """Wait for one reply on the local socket.

        Returns:
            The reply frame, or None on timeout or if the datagram is not a
            controller frame.

        Raises:
            ConfigurationError: On a relay transport, which carries no replies.
            RuntimeError: While discovery is still listening on the socket.
        """
        if not self.transport.is_local:
            raise ConfigurationError("Replies are only read in local mode.")
        if self.discovery is not None and self.discovery.running:
            raise RuntimeError("Discovery is still reading replies.")

        data = self.transport.read(timeout_ms)
        if data is None:
            return None
        frame = parse_frame(data)
        if frame is None:
            self._logger.debug("Ignoring %d-byte datagram, not a controller frame", len(data))
        return frame

    # ─── COMMANDS ─────────────────────────────────────────────────────

    def search(self) -> bytes:
        return self._send(build_search(self.serial))

    def open_door(self, door: int) -> bytes:
        """Pulse the lock relay of ``door``."""
        return self._send(build_open_door(self.serial, door))

    def get_date(self) -> bytes:
        return self._send(build_get_date(self.serial))

    def set_date(self, dt: datetime | None = None) -> bytes:
        """Set the controller clock (defaults to the local time now)."""
        return self._send(build_set_date(self.serial, dt))

    def set_auth(self, card_no: int, door: int) -> bytes:
        """Authorize ``card_no`` on one door, valid 2019-01-01 to 2029-12-31."""
        return self._send(build_set_auth(self.serial, card_no, door))

    def get_auth(self, card_no: int) -> bytes:
        return self._send(build_get_auth(self.serial, card_no))

    def remove_auth(self, card_no: int) -> bytes:
        return self._send(build_remove_auth(self.serial, card_no))

    def clear_auth(self) -> bytes:
        """Remove every card authorization from the controller."""
        return self._send(build_clear_auth(self.serial))

    def set_server_address(self, ip: str, port: int, interval: int = 0) -> bytes:
        """Tell the controller where to report events.

        Args:
            ip: Server IPv4 address.
            port: Server UDP port.
            interval: Periodic report interval in seconds, 0 to disable.
        """
        return self._send(build_set_server_address(self.serial, ip, port, interval))

    def get_server_address(self) -> bytes:
        return self._send(build_get_server_address(self.serial))

    def set_address(self, ip: str, subnet: str, gateway: str) -> bytes:
        """Change the controller's network settings.

        The cached IP is dropped; the controller must be discovered again.
        """
        frame = self._send(build_set_address(self.serial, ip, subnet, gateway))
        self.address.ip = None
        return frame

    def __repr__(self) -> str:
        mode = "local" if self.transport.is_local else "remote"
        return (
            f"DoorController(serial={self.serial}, ip={self.address.ip or 'unknown'}, "
            f"port={self.address.port}, {mode})"
        )
