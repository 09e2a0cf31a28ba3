"""Function code constants and per-command payload builders.

Each command is identified by a single-byte function code used for both
host-to-controller requests and controller-to-host replies. Multi-byte
integers inside payloads are little-endian; IP addresses are network order.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import IntEnum

from ..utils.bcd import build_bcd_date, build_bcd_day
from ..utils.ipaddr import ip_to_bytes
from .framing import build_frame

# Guards destructive commands (clear all cards, change network settings)
MAGIC_TOKEN = b"\x55\xAA\xAA\x55"

AUTH_PAYLOAD_SIZE = 16
CARD_QUERY_PAYLOAD_SIZE = 56
DEFAULT_VALID_FROM = date(2019, 1, 1)
DEFAULT_VALID_TO = date(2029, 12, 31)
DOOR_COUNT = 4


class Command(IntEnum):
    """Function codes."""

    SET_DATE = 0x30
    GET_DATE = 0x32
    OPEN_DOOR = 0x40
    SET_AUTH = 0x50
    REMOVE_AUTH = 0x52
    CLEAR_AUTH = 0x54
    GET_AUTH = 0x5A
    SET_SERVER_ADDRESS = 0x90
    GET_SERVER_ADDRESS = 0x92
    SEARCH = 0x94
    SET_ADDRESS = 0x96


# Human-readable names, diagnostics only
FUNCTION_NAMES: dict[int, str] = {
    Command.SET_DATE: "Set Date",
    Command.GET_DATE: "Get Date",
    Command.OPEN_DOOR: "Open Door",
    Command.SET_AUTH: "Set Authorization",
    Command.REMOVE_AUTH: "Remove Authorization",
    Command.CLEAR_AUTH: "Clear Authorizations",
    Command.GET_AUTH: "Get Authorization",
    Command.SET_SERVER_ADDRESS: "Set Server Address",
    Command.GET_SERVER_ADDRESS: "Get Server Address",
    Command.SEARCH: "Search",
    Command.SET_ADDRESS: "Set Address",
}


def function_name(function: int) -> str:
    """Return a display name for a function code, never failing."""
    return FUNCTION_NAMES.get(function, f"0x{function:02X}")


def check_width(name: str, value: int, bits: int) -> int:
    """Ensure ``value`` fits an unsigned field of ``bits`` bits."""
    limit = (1 << bits) - 1
    if not 0 <= value <= limit:
        raise ValueError(f"{name} must be 0-{limit}, got {value}")
    return value


def build_command(
    command: Command, serial: int | None = None, payload: bytes | int | str | None = None
) -> bytes:
    """Build a single 64-byte frame for a command."""
    if serial is not None:
        check_width("Serial", serial, 32)
    return build_frame(int(command), serial, payload)


def build_search(serial: int | None = None) -> bytes:
    """Build a Search (0x94) broadcast probe."""
    return build_command(Command.SEARCH, serial)


def build_open_door(serial: int | None, door: int) -> bytes:
    """Build an OpenDoor command.

    Args:
        door: Door number, one byte. Controllers have doors 1-4.
    """
    return build_command(Command.OPEN_DOOR, serial, check_width("Door", door, 8))


def build_get_date(serial: int | None = None) -> bytes:
    return build_command(Command.GET_DATE, serial)


def build_set_date(serial: int | None, dt: datetime | None = None) -> bytes:
    """Build a SetDate command carrying a 7-byte BCD timestamp (defaults to now)."""
    return build_command(Command.SET_DATE, serial, build_bcd_date(dt))


def auth_payload(
    card_no: int,
    door: int,
    valid_from: date = DEFAULT_VALID_FROM,
    valid_to: date = DEFAULT_VALID_TO,
) -> bytes:
    """Build the 16-byte SetAuth payload.

    Layout: card uint32-LE @0, BCD valid-from @4, BCD valid-to @8, one flag
    byte per door @12-15. Only the flag matching ``door`` is set; a door
    outside 1-4 sets none.
    """
    check_width("Card number", card_no, 32)
    check_width("Door", door, 8)
    buf = bytearray(AUTH_PAYLOAD_SIZE)
    buf[0:4] = card_no.to_bytes(4, "little")
    buf[4:8] = build_bcd_day(valid_from)
    buf[8:12] = build_bcd_day(valid_to)
    for i in range(DOOR_COUNT):
        buf[12 + i] = 1 if door == i + 1 else 0
    return bytes(buf)


def build_set_auth(serial: int | None, card_no: int, door: int) -> bytes:
    """Build a SetAuth command granting ``card_no`` access to one door."""
    return build_command(Command.SET_AUTH, serial, auth_payload(card_no, door))


def _card_query_payload(card_no: int) -> bytes:
    check_width("Card number", card_no, 32)
    return card_no.to_bytes(4, "little").ljust(CARD_QUERY_PAYLOAD_SIZE, b"\x00")


def build_get_auth(serial: int | None, card_no: int) -> bytes:
    """Build a GetAuth query for one card."""
    return build_command(Command.GET_AUTH, serial, _card_query_payload(card_no))


def build_remove_auth(serial: int | None, card_no: int) -> bytes:
    """Build a RemoveAuth command for one card."""
    return build_command(Command.REMOVE_AUTH, serial, _card_query_payload(card_no))


def build_clear_auth(serial: int | None = None) -> bytes:
    """Build a ClearAuth command removing every card from the controller."""
    return build_command(Command.CLEAR_AUTH, serial, MAGIC_TOKEN)


def server_address_payload(ip: str, port: int, interval: int = 0) -> bytes:
    """Build the 7-byte SetServerAddress payload.

    Layout: IPv4 @0, port uint16-LE @4, report interval in seconds @6
    (0 disables periodic reports).
    """
    check_width("Port", port, 16)
    check_width("Interval", interval, 8)
    return ip_to_bytes(ip) + port.to_bytes(2, "little") + bytes([interval])


def build_set_server_address(
    serial: int | None, ip: str, port: int, interval: int = 0
) -> bytes:
    """Build a SetServerAddress command registering the report-back endpoint."""
    return build_command(
        Command.SET_SERVER_ADDRESS, serial, server_address_payload(ip, port, interval)
    )


def build_get_server_address(serial: int | None = None) -> bytes:
    return build_command(Command.GET_SERVER_ADDRESS, serial)


def build_set_address(serial: int | None, ip: str, subnet: str, gateway: str) -> bytes:
    """Build a SetAddress command changing the controller's network settings.

    Layout: IPv4 @0, subnet @4, gateway @8, magic token @12-15.
    """
    payload = ip_to_bytes(ip) + ip_to_bytes(subnet) + ip_to_bytes(gateway) + MAGIC_TOKEN
    return build_command(Command.SET_ADDRESS, serial, payload)
