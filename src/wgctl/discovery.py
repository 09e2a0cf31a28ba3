"""Broadcast discovery of a controller's IP address.

A controller on DHCP is known only by its serial number. Discovery
broadcasts a Search frame, waits for the reply carrying that serial, caches
the reported IP, and then registers this host as the controller's callback
server::

    IDLE -> SEARCHING -> RESOLVED | INVALID -> SERVER_CONFIGURED

A controller that has not obtained an address yet reports ``192.168.0.0``;
that reply resolves the session as INVALID and leaves the IP unknown. The
callback server is configured in every case, including a timed-out wait,
so the controller knows where to report once it does get an address.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from enum import Enum
from typing import TYPE_CHECKING

from .errors import DiscoveryTimeout, FrameDecodeError
from .models.device import CallbackTarget
from .protocol.parser import parse_device_info
from .transport.udp_connection import UDPConnection

if TYPE_CHECKING:
    from .controller import DoorController

_LOGGER = logging.getLogger(__name__)

INVALID_IP = "192.168.0.0"
DEFAULT_DISCOVERY_TIMEOUT = 10.0
POLL_INTERVAL_MS = 500


class DiscoveryState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    RESOLVED = "resolved"
    INVALID = "invalid"
    SERVER_CONFIGURED = "server_configured"


class DiscoverySession:
    """One discovery run for one controller.

    ``detected`` resolves exactly once: ``True`` when a usable IP was
    found, ``False`` when the controller reported the unassigned sentinel,
    or with :class:`DiscoveryTimeout` when nothing matched in time. It is
    cancelled if the session is cancelled.
    """

    def __init__(
        self,
        controller: DoorController,
        connection: UDPConnection,
        server: CallbackTarget,
        timeout: float | None = DEFAULT_DISCOVERY_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> None:
        self._controller = controller
        self._connection = connection
        self._server = server
        self._timeout = timeout
        self._logger = logger if logger is not None else _LOGGER
        self._cancelled = threading.Event()
        self._thread: threading.Thread | None = None
        self.state = DiscoveryState.IDLE
        self.detected: Future[bool] = Future()

    @property
    def serial(self) -> int:
        return self._controller.serial

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run discovery on a background thread."""
        if self.state is not DiscoveryState.IDLE:
            raise RuntimeError(f"Discovery already started ({self.state.value})")
        self._thread = threading.Thread(
            target=self.run,
            name=f"wgctl-discovery-{self.serial}",
            daemon=True,
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the background run to finish. Returns True if it did."""
        if self._thread is None:
            return self.state is DiscoveryState.SERVER_CONFIGURED
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def cancel(self) -> None:
        """Stop waiting for a reply. The callback server is not configured."""
        self._cancelled.set()
        self.detected.cancel()

    def run(self) -> None:
        """Drive the whole flow on the calling thread."""
        self.state = DiscoveryState.SEARCHING
        self._controller.search()

        try:
            self._wait_for_reply()
        except DiscoveryTimeout as e:
            self._logger.warning("%s", e)
            if not self.detected.done():
                self.detected.set_exception(e)
        except Exception as e:
            self._logger.warning("Controller %d discovery failed: %s", self.serial, e)
            if not self.detected.done():
                self.detected.set_exception(e)

        if self._cancelled.is_set():
            self._logger.info("Controller %d discovery cancelled", self.serial)
            return

        try:
            self._controller.set_server_address(
                self._server.ip, self._server.port, self._server.interval
            )
        except ValueError as e:
            self._logger.error(
                "Controller %d server address not configured: %s", self.serial, e
            )
            return
        self.state = DiscoveryState.SERVER_CONFIGURED

    def handle_reply(self, data: bytes) -> bool:
        """Process one incoming datagram.

        Returns:
            True if the reply matched this controller and resolved the session.
        """
        try:
            info = parse_device_info(data)
        except FrameDecodeError as e:
            self._logger.warning("Ignoring undecodable reply: %s", e)
            return False

        if info.serial != self.serial:
            self._logger.debug(
                "Ignoring search reply from controller %d (want %d)",
                info.serial, self.serial,
            )
            return False

        if info.ip == INVALID_IP:
            self._logger.warning(
                "Controller %d has invalid ip: %s, ignored.", self.serial, info.ip
            )
            self._controller.address.ip = None
            self.state = DiscoveryState.INVALID
            resolved = False
        else:
            self._logger.info("Controller %d detected, ip: %s.", self.serial, info.ip)
            self._controller.address.ip = info.ip
            self.state = DiscoveryState.RESOLVED
            resolved = True

        if not self.detected.done():
            self.detected.set_result(resolved)
        return True

    def _wait_for_reply(self) -> None:
        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        while not self._cancelled.is_set():
            if deadline is None:
                wait_ms = POLL_INTERVAL_MS
            else:
                wait_ms = int((deadline - time.monotonic()) * 1000)
                if wait_ms <= 0:
                    raise DiscoveryTimeout(
                        f"Controller {self.serial} did not answer within {self._timeout}s"
                    )
                wait_ms = min(wait_ms, POLL_INTERVAL_MS)

            data = self._connection.read(wait_ms)
            if data is not None and self.handle_reply(data):
                return
