"""Binary-coded decimal helpers for controller date and version fields.

The controller stores a full timestamp as seven BCD bytes::

    +---------+---------+-------+-----+------+--------+--------+
    | Century | Year    | Month | Day | Hour | Minute | Second |
    +---------+---------+-------+-----+------+--------+--------+

e.g. 2019-01-01 12:30:00 -> ``20 19 01 01 12 30 00``.
"""

from __future__ import annotations

from datetime import date, datetime


def to_bcd(value: int) -> int:
    """Encode a value 0-99 as a single BCD byte."""
    if not 0 <= value <= 99:
        raise ValueError(f"BCD value must be 0-99, got {value}")
    return ((value // 10) << 4) | (value % 10)


def from_bcd(byte: int) -> int:
    """Decode a single BCD byte."""
    high, low = byte >> 4, byte & 0x0F
    if high > 9 or low > 9:
        raise ValueError(f"Invalid BCD byte 0x{byte:02X}")
    return high * 10 + low


def build_bcd_date(dt: datetime | None = None) -> bytes:
    """Encode a timestamp as the 7-byte BCD payload used by SET_DATE.

    Args:
        dt: Timestamp to encode. Defaults to the current local time.
    """
    if dt is None:
        dt = datetime.now()
    return bytes([
        to_bcd(dt.year // 100),
        to_bcd(dt.year % 100),
        to_bcd(dt.month),
        to_bcd(dt.day),
        to_bcd(dt.hour),
        to_bcd(dt.minute),
        to_bcd(dt.second),
    ])


def build_bcd_day(day: date) -> bytes:
    """Encode a calendar day as 4 BCD bytes (``CC YY MM DD``)."""
    return bytes([
        to_bcd(day.year // 100),
        to_bcd(day.year % 100),
        to_bcd(day.month),
        to_bcd(day.day),
    ])


def parse_bcd_date(data: bytes) -> datetime:
    """Decode a 7-byte BCD timestamp."""
    if len(data) < 7:
        raise ValueError(f"BCD timestamp needs 7 bytes, got {len(data)}")
    c, y, mo, d, h, mi, s = (from_bcd(b) for b in data[:7])
    return datetime(c * 100 + y, mo, d, h, mi, s)


def parse_bcd_day(data: bytes) -> date:
    """Decode a 4-byte BCD calendar day."""
    if len(data) < 4:
        raise ValueError(f"BCD day needs 4 bytes, got {len(data)}")
    c, y, mo, d = (from_bcd(b) for b in data[:4])
    return date(c * 100 + y, mo, d)
