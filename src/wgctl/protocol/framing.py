"""Frame builder and parser for the fixed 64-byte controller frame.

Frame layout::

    +--------+----------+----------+-----------------+-----------------------+
    | Marker | Function | Reserved | Serial          | Payload               |
    | 1 byte | 1 byte   | 2 bytes  | 4 bytes (LE)    | 56 bytes, zero-filled |
    +--------+----------+----------+-----------------+-----------------------+

- Marker: always 0x17
- Function: command/reply code, see :class:`~wgctl.protocol.commands.Command`
- Serial: target controller serial, little-endian, zero when unaddressed
- Payload: function-specific, starts at offset 8

The same layout is used in both directions.
"""

from __future__ import annotations

from dataclasses import dataclass

MARKER = 0x17
FRAME_SIZE = 64
OFF_FUNCTION = 1
OFF_SERIAL = 4
OFF_PAYLOAD = 8
MAX_PAYLOAD = FRAME_SIZE - OFF_PAYLOAD  # 56

Payload = bytes | bytearray | int | str | None


@dataclass(frozen=True)
class Frame:
    """A parsed protocol frame."""

    function: int
    serial: int
    payload: bytes

    def __repr__(self) -> str:
        data = self.payload.rstrip(b"\x00")
        return (
            f"Frame(function=0x{self.function:02X}, serial={self.serial}, "
            f"payload={data.hex(' ') if data else '(empty)'})"
        )


def encode_payload(payload: Payload) -> bytes:
    """Normalize a caller payload to raw bytes.

    - ``bytes``/``bytearray``: used verbatim
    - ``int``: a single unsigned byte
    - ``str``: hex digits, whitespace ignored
    - ``None``: empty

    Raises:
        TypeError: For any other payload type.
        ValueError: For an int outside 0-255 or malformed hex.
    """
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if isinstance(payload, int):
        if not 0 <= payload <= 0xFF:
            raise ValueError(f"Single-byte payload must be 0-255, got {payload}")
        return bytes([payload])
    if isinstance(payload, str):
        return bytes.fromhex("".join(payload.split()))
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


def build_frame(
    function: int,
    serial: int | None = None,
    payload: Payload = None,
) -> bytes:
    """Build a 64-byte frame.

    Args:
        function: Single-byte function code.
        serial: Controller serial number. ``None`` or 0 leaves offsets 4-7 zero.
        payload: Function-specific payload, see :func:`encode_payload`.
            Bytes past the end of the frame are dropped.

    Returns:
        An immutable 64-byte ``bytes`` object ready to send.
    """
    if not 0 <= function <= 0xFF:
        raise ValueError(f"Function code must be 0-255, got {function}")

    buf = bytearray(FRAME_SIZE)
    buf[0] = MARKER
    buf[OFF_FUNCTION] = function
    if serial:
        buf[OFF_SERIAL : OFF_SERIAL + 4] = serial.to_bytes(4, "little")

    data = encode_payload(payload)[:MAX_PAYLOAD]
    buf[OFF_PAYLOAD : OFF_PAYLOAD + len(data)] = data
    return bytes(buf)


def parse_frame(data: bytes) -> Frame | None:
    """Parse a received buffer into a Frame.

    Returns:
        A ``Frame``, or ``None`` if the buffer is short or the marker is wrong.
    """
    if len(data) < FRAME_SIZE:
        return None
    if data[0] != MARKER:
        return None

    return Frame(
        function=data[OFF_FUNCTION],
        serial=int.from_bytes(data[OFF_SERIAL : OFF_SERIAL + 4], "little"),
        payload=bytes(data[OFF_PAYLOAD:FRAME_SIZE]),
    )
