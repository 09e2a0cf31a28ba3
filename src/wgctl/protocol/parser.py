"""Reply parsing for controller messages.

Replies use the same 64-byte frame as requests; offsets below are frame
offsets (payload starts at 8).
"""

from __future__ import annotations

from datetime import datetime

from ..errors import FrameDecodeError
from ..models.device import AuthRecord, CallbackTarget, DeviceInfo
from ..utils.bcd import from_bcd, parse_bcd_date, parse_bcd_day
from ..utils.ipaddr import bytes_to_ip, format_mac
from .commands import DOOR_COUNT, Command
from .framing import OFF_PAYLOAD, Frame, parse_frame


def _require_frame(data: bytes | Frame, command: Command) -> Frame:
    frame = data if isinstance(data, Frame) else parse_frame(data)
    if frame is None:
        raise FrameDecodeError(f"Not a controller frame ({len(data)} bytes)")
    if frame.function != command:
        raise FrameDecodeError(
            f"Expected function 0x{command.value:02X}, got 0x{frame.function:02X}"
        )
    return frame


def _payload(frame: Frame, offset: int, size: int) -> bytes:
    start = offset - OFF_PAYLOAD
    return frame.payload[start : start + size]


def parse_device_info(data: bytes | Frame) -> DeviceInfo:
    """Parse a Search (0x94) reply.

    Layout::

        @8  IP (4)        @12 subnet (4)    @16 gateway (4)
        @20 MAC (6)       @26 version (2, BCD)
        @28 release date (4, BCD CCYYMMDD)

    Version and release are left empty when they are not valid BCD; some
    firmware leaves them zeroed.

    Raises:
        FrameDecodeError: If the buffer is not a search reply.
    """
    frame = _require_frame(data, Command.SEARCH)

    try:
        major, minor = (from_bcd(b) for b in _payload(frame, 26, 2))
        version = f"{major}.{minor:02d}"
    except ValueError:
        version = ""
    try:
        release = parse_bcd_day(_payload(frame, 28, 4)).isoformat()
    except ValueError:
        release = ""

    return DeviceInfo(
        serial=frame.serial,
        ip=bytes_to_ip(_payload(frame, 8, 4)),
        subnet=bytes_to_ip(_payload(frame, 12, 4)),
        gateway=bytes_to_ip(_payload(frame, 16, 4)),
        mac=format_mac(_payload(frame, 20, 6)),
        version=version,
        release=release,
    )


def parse_date(data: bytes | Frame) -> datetime:
    """Parse a GetDate (0x32) reply: 7 BCD bytes at offset 8."""
    frame = _require_frame(data, Command.GET_DATE)
    try:
        return parse_bcd_date(_payload(frame, 8, 7))
    except ValueError as e:
        raise FrameDecodeError(f"Malformed date reply: {e}") from e


def parse_server_address(data: bytes | Frame) -> CallbackTarget:
    """Parse a GetServerAddress (0x92) reply."""
    frame = _require_frame(data, Command.GET_SERVER_ADDRESS)
    return CallbackTarget(
        ip=bytes_to_ip(_payload(frame, 8, 4)),
        port=int.from_bytes(_payload(frame, 12, 2), "little"),
        interval=_payload(frame, 14, 1)[0],
    )


def parse_auth(data: bytes | Frame) -> AuthRecord | None:
    """Parse a GetAuth (0x5A) reply.

    Returns ``None`` when the controller reports card number 0, meaning the
    card has no authorization.
    """
    frame = _require_frame(data, Command.GET_AUTH)
    card_no = int.from_bytes(_payload(frame, 8, 4), "little")
    if card_no == 0:
        return None
    try:
        valid_from = parse_bcd_day(_payload(frame, 12, 4))
        valid_to = parse_bcd_day(_payload(frame, 16, 4))
    except ValueError as e:
        raise FrameDecodeError(f"Malformed authorization reply: {e}") from e
    doors = [b == 1 for b in _payload(frame, 20, DOOR_COUNT)]
    return AuthRecord(card_no=card_no, doors=doors, valid_from=valid_from, valid_to=valid_to)


def parse_ack(data: bytes | Frame) -> bool:
    """Return the success flag (offset 8) of a set-style reply."""
    frame = data if isinstance(data, Frame) else parse_frame(data)
    if frame is None:
        raise FrameDecodeError(f"Not a controller frame ({len(data)} bytes)")
    return frame.payload[0] == 1


def parse_response(frame: Frame):
    """Auto-dispatch a frame to the appropriate reply parser.

    Returns the parsed value, or the raw Frame if no specific parser matches.
    """
    parsers = {
        Command.SEARCH: parse_device_info,
        Command.GET_DATE: parse_date,
        Command.GET_SERVER_ADDRESS: parse_server_address,
        Command.GET_AUTH: parse_auth,
        Command.OPEN_DOOR: parse_ack,
        Command.SET_DATE: parse_ack,
        Command.SET_AUTH: parse_ack,
        Command.REMOVE_AUTH: parse_ack,
        Command.CLEAR_AUTH: parse_ack,
        Command.SET_SERVER_ADDRESS: parse_ack,
        Command.SET_ADDRESS: parse_ack,
    }
    parser = parsers.get(frame.function)
    if parser:
        return parser(frame)
    return frame
