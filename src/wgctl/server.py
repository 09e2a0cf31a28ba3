"""MCP server entry point for door-access controllers.

Exposes the controller command set as tools via the Model Context Protocol
using the official Python MCP SDK with stdio transport. Commands are
fire-and-forget: tools report what was sent. ``read_reply`` decodes the
controller's answer on the local socket.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any

from mcp.server.fastmcp import FastMCP

from .controller import REPLY_TIMEOUT_MS, DoorController
from .discovery import DEFAULT_DISCOVERY_TIMEOUT
from .errors import ConfigurationError
from .models.device import DEFAULT_PORT, AuthRecord, CallbackTarget, DeviceInfo
from .protocol.commands import FUNCTION_NAMES, function_name
from .protocol.framing import Frame
from .protocol.parser import parse_response
from .transport.tcp_connection import TCPConnection
from .transport.udp_connection import SCAN_TIMEOUT_MS, UDPConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "wgctl",
    instructions="MCP server for networked door-access controllers",
)

# Global connection state
_controller: DoorController | None = None


def _bind_address() -> tuple[str, int]:
    """Local UDP bind address from WGCTL_BIND_IP / WGCTL_BIND_PORT."""
    return (
        os.environ.get("WGCTL_BIND_IP", "0.0.0.0"),
        int(os.environ.get("WGCTL_BIND_PORT", "0")),
    )


def _get_controller() -> DoorController:
    """Get the active controller, raising if not connected."""
    if _controller is None:
        raise RuntimeError(
            "Not connected to a controller. Use 'connect_local' or 'connect_remote' first."
        )
    return _controller


def _sent(frame: bytes, **extra: Any) -> dict[str, Any]:
    ctl = _get_controller()
    result: dict[str, Any] = {
        "sent": True,
        "function": f"0x{frame[1]:02X}",
        "target": ctl.ip or "broadcast",
    }
    result.update(extra)
    return result


def _close_current() -> None:
    global _controller
    if _controller is not None:
        logger.info("Closing %r", _controller)
        _controller.close()
        _controller = None


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect_local(
    serial: int | None = None,
    ip: str | None = None,
    port: int = DEFAULT_PORT,
    server_ip: str | None = None,
    server_port: int | None = None,
    interval: int = 0,
    discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
) -> dict[str, Any]:
    """Address a controller on the local network over UDP.

    If ``ip`` is omitted and ``serial`` is given, the controller is found by
    broadcast and then told to report to ``server_ip:server_port``.

    Args:
        serial: Controller serial number (printed on the board).
        ip: Controller IP, if known.
        port: Controller UDP port (default 60000).
        server_ip: This host's IP as seen by the controller.
        server_port: UDP port the controller should report to.
        interval: Periodic report interval in seconds, 0 to disable.
        discovery_timeout: Seconds to wait for the search reply.
    """
    global _controller
    if (server_ip is None) != (server_port is None):
        return {"error": "server_ip and server_port must be given together"}

    _close_current()
    server = None
    if server_ip is not None and server_port is not None:
        server = CallbackTarget(server_ip, server_port, interval)

    try:
        bind_ip, bind_port = _bind_address()
        connection = UDPConnection.open(bind_ip, bind_port)
    except (OSError, ValueError) as e:
        return {"error": f"Could not open local socket: {e}"}
    try:
        _controller = DoorController(
            connection,
            serial=serial,
            server=server,
            ip=ip,
            port=port,
            discovery_timeout=discovery_timeout,
        )
    except (ConfigurationError, ValueError) as e:
        connection.close()
        return {"error": str(e)}

    return {
        "connected": True,
        "mode": "local",
        "serial": serial,
        "ip": _controller.ip,
        "discovering": _controller.discovery is not None,
    }


@mcp.tool()
def connect_remote(host: str, port: int, serial: int | None = None) -> dict[str, Any]:
    """Reach a controller through a TCP relay.

    Args:
        host: Relay host name or IP.
        port: Relay TCP port.
        serial: Controller serial number.
    """
    global _controller
    _close_current()
    try:
        connection = TCPConnection.open(host, port)
    except ConnectionError as e:
        return {"error": str(e)}
    try:
        _controller = DoorController(connection, serial=serial)
    except ValueError as e:
        connection.close()
        return {"error": str(e)}
    return {"connected": True, "mode": "remote", "relay": f"{host}:{port}", "serial": serial}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the controller connection."""
    _close_current()
    return {"disconnected": True}


@mcp.tool()
def scan_controllers(timeout_ms: int = SCAN_TIMEOUT_MS, port: int = DEFAULT_PORT) -> dict[str, Any]:
    """Broadcast a search and list every controller on the local network.

    Args:
        timeout_ms: How long to collect replies.
        port: Controller UDP port.
    """
    try:
        bind_ip, bind_port = _bind_address()
        connection = UDPConnection.open(bind_ip, bind_port)
    except (OSError, ValueError) as e:
        return {"error": f"Could not open local socket: {e}"}
    try:
        found = connection.scan(timeout_ms=timeout_ms, port=port)
    finally:
        connection.close()
    return {"controllers": [info.to_dict() for info in found]}


@mcp.tool()
def discovery_status() -> dict[str, Any]:
    """Report the state of the current controller's IP discovery."""
    ctl = _get_controller()
    if ctl.discovery is None:
        return {"discovery": None, "ip": ctl.ip}

    result: dict[str, Any] = {"discovery": ctl.discovery.state.value, "ip": ctl.ip}
    detected = ctl.discovery.detected
    if detected.done() and not detected.cancelled() and detected.exception() is not None:
        result["error"] = str(detected.exception())
    return result


# ─── DOOR AND CLOCK TOOLS ─────────────────────────────────────────────

@mcp.tool()
def open_door(door: int) -> dict[str, Any]:
    """Open a door remotely.

    Args:
        door: Door number (1-4).
    """
    try:
        frame = _get_controller().open_door(door)
    except ValueError as e:
        return {"error": str(e)}
    return _sent(frame, door=door)


@mcp.tool()
def sync_time() -> dict[str, Any]:
    """Set the controller clock to this host's local time."""
    now = datetime.now().replace(microsecond=0)
    frame = _get_controller().set_date(now)
    return _sent(frame, date=now.isoformat())


@mcp.tool()
def get_date() -> dict[str, Any]:
    """Ask the controller for its clock. Read the answer with read_reply."""
    return _sent(_get_controller().get_date())


# ─── CARD AUTHORIZATION TOOLS ─────────────────────────────────────────

@mcp.tool()
def set_auth(card_no: int, door: int) -> dict[str, Any]:
    """Authorize a card on one door.

    Args:
        card_no: Card number as read by the reader.
        door: Door number (1-4).
    """
    try:
        frame = _get_controller().set_auth(card_no, door)
    except ValueError as e:
        return {"error": str(e)}
    return _sent(frame, card_no=card_no, door=door)


@mcp.tool()
def get_auth(card_no: int) -> dict[str, Any]:
    """Query a card's authorization. Read the answer with read_reply."""
    try:
        frame = _get_controller().get_auth(card_no)
    except ValueError as e:
        return {"error": str(e)}
    return _sent(frame, card_no=card_no)


@mcp.tool()
def remove_auth(card_no: int) -> dict[str, Any]:
    """Remove a card's authorization.

    Args:
        card_no: Card number to remove.
    """
    try:
        frame = _get_controller().remove_auth(card_no)
    except ValueError as e:
        return {"error": str(e)}
    return _sent(frame, card_no=card_no)


@mcp.tool()
def clear_auth(confirm: bool = False) -> dict[str, Any]:
    """Remove every card authorization from the controller.

    Args:
        confirm: Must be true; the controller keeps no backup.
    """
    if not confirm:
        return {"error": "Refusing to clear all cards without confirm=true"}
    return _sent(_get_controller().clear_auth())


# ─── NETWORK TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def set_server_address(ip: str, port: int, interval: int = 0) -> dict[str, Any]:
    """Tell the controller where to send event reports.

    Args:
        ip: Server IPv4 address.
        port: Server UDP port.
        interval: Periodic report interval in seconds, 0 to disable.
    """
    try:
        frame = _get_controller().set_server_address(ip, port, interval)
    except ValueError as e:
        return {"error": str(e)}
    return _sent(frame, server={"ip": ip, "port": port, "interval": interval})


@mcp.tool()
def get_server_address() -> dict[str, Any]:
    """Ask the controller for its callback server address."""
    return _sent(_get_controller().get_server_address())


@mcp.tool()
def set_address(ip: str, subnet: str, gateway: str) -> dict[str, Any]:
    """Change the controller's IP, subnet mask and gateway.

    The cached controller IP is dropped afterwards; later commands are
    broadcast until the controller is found again.
    """
    try:
        frame = _get_controller().set_address(ip, subnet, gateway)
    except ValueError as e:
        return {"error": str(e)}
    return _sent(frame, new_ip=ip, subnet=subnet, gateway=gateway)


# ─── REPLY TOOLS ─────────────────────────────────────────────────────

def _decode_reply(frame: Frame) -> dict[str, Any]:
    result: dict[str, Any] = {
        "function": f"0x{frame.function:02X}",
        "name": function_name(frame.function),
        "serial": frame.serial,
    }
    value = parse_response(frame)
    if isinstance(value, (DeviceInfo, CallbackTarget, AuthRecord)):
        result["reply"] = value.to_dict()
    elif isinstance(value, datetime):
        result["reply"] = value.isoformat()
    elif isinstance(value, bool):
        result["reply"] = {"success": value}
    elif isinstance(value, Frame):
        result["reply"] = {"payload": value.payload.rstrip(b"\x00").hex()}
    else:
        # GetAuth for a card the controller does not know
        result["reply"] = None
    return result


@mcp.tool()
def read_reply(timeout_ms: int = REPLY_TIMEOUT_MS) -> dict[str, Any]:
    """Wait for the next reply from the controller and decode it.

    Local mode only. Call after get_date, get_auth or get_server_address to
    see the answer, or after a set-style command to see whether it succeeded.

    Args:
        timeout_ms: How long to wait for a reply.
    """
    ctl = _get_controller()
    try:
        frame = ctl.receive(timeout_ms)
    except (ConfigurationError, RuntimeError) as e:
        return {"error": str(e)}
    if frame is None:
        return {"reply": None, "timeout": True}
    try:
        return _decode_reply(frame)
    except ValueError as e:
        return {"error": f"Malformed reply: {e}"}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("wgctl://controller/status")
def resource_controller_status() -> str:
    """Connection mode, serial, and known IP."""
    if _controller is None:
        return json.dumps({"connected": False})
    return json.dumps({
        "connected": True,
        "mode": "local" if _controller.transport.is_local else "remote",
        "serial": _controller.serial,
        "ip": _controller.ip,
        "port": _controller.port,
        "server": _controller.server.to_dict() if _controller.server else None,
    })


@mcp.resource("wgctl://protocol/function-codes")
def resource_function_codes() -> str:
    """Function codes and their names."""
    codes = [
        {"code": f"0x{int(code):02X}", "name": name}
        for code, name in sorted(FUNCTION_NAMES.items())
    ]
    return json.dumps({"functions": codes})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def enroll_card(card_no: int, door: int) -> str:
    """Walk through granting a card access to a door.

    Args:
        card_no: Card number to enroll.
        door: Door number (1-4).
    """
    return f"""Grant card {card_no} access to door {door}.

Make sure a controller is connected first (connect_local or connect_remote),
then call set_auth. The authorization is valid from 2019-01-01 to 2029-12-31
and replaces any earlier authorization for the same card.
If the controller IP is still being discovered, check discovery_status;
commands sent before discovery finishes are broadcast and still arrive."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
