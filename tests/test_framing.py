"""Tests for frame building and parsing."""

import pytest

from wgctl.protocol.framing import (
    FRAME_SIZE,
    MARKER,
    Frame,
    build_frame,
    encode_payload,
    parse_frame,
)


def test_build_frame_size():
    """Every built frame must be exactly 64 bytes."""
    assert len(build_frame(0x40, 1001, 1)) == FRAME_SIZE
    assert len(build_frame(0x94)) == FRAME_SIZE
    assert len(build_frame(0x50, 1001, bytes(100))) == FRAME_SIZE


def test_build_frame_header():
    """Marker at byte 0, function code at byte 1, reserved bytes zero."""
    frame = build_frame(0x40, 1001, 2)
    assert frame[0] == MARKER == 0x17
    assert frame[1] == 0x40
    assert frame[2:4] == b"\x00\x00"


def test_build_frame_serial_little_endian():
    """Serial is written little-endian at offset 4."""
    frame = build_frame(0x94, 0x0D4A_B123)
    assert frame[4:8] == bytes([0x23, 0xB1, 0x4A, 0x0D])


def test_build_frame_without_serial():
    """No serial (or 0) leaves offsets 4-7 zero."""
    assert build_frame(0x94)[4:8] == b"\x00\x00\x00\x00"
    assert build_frame(0x94, 0)[4:8] == b"\x00\x00\x00\x00"


def test_build_frame_empty_payload_is_zero():
    frame = build_frame(0x32, 1001)
    assert frame[8:] == bytes(56)


def test_byte_payload_at_offset_8():
    frame = build_frame(0x40, 1001, 3)
    assert frame[8] == 3
    assert frame[9:] == bytes(55)


def test_bytes_payload_copied_verbatim():
    frame = build_frame(0x54, None, b"\x55\xAA\xAA\x55")
    assert frame[8:12] == b"\x55\xAA\xAA\x55"
    assert frame[12:] == bytes(52)


def test_bytes_payload_truncated_at_frame_end():
    """Bytes past offset 63 are dropped."""
    frame = build_frame(0x50, None, bytes(range(1, 61)))
    assert len(frame) == FRAME_SIZE
    assert frame[8:] == bytes(range(1, 57))


def test_hex_payload_ignores_whitespace():
    """Hex strings may contain spaces, tabs and newlines."""
    frame = build_frame(0x30, None, "20 19 01\t01\n12")
    assert frame[8:13] == bytes([0x20, 0x19, 0x01, 0x01, 0x12])


def test_encode_payload_rejects_unknown_types():
    """Payloads other than bytes, int or str are an error, not hex."""
    with pytest.raises(TypeError):
        encode_payload(3.5)
    with pytest.raises(TypeError):
        encode_payload([1, 2, 3])


def test_encode_payload_byte_bounds():
    with pytest.raises(ValueError):
        encode_payload(256)
    with pytest.raises(ValueError):
        encode_payload(-1)


def test_encode_payload_bad_hex():
    with pytest.raises(ValueError):
        encode_payload("zz")


def test_function_code_bounds():
    with pytest.raises(ValueError):
        build_frame(0x100)


def test_parse_frame():
    """A built frame parses back to its parts."""
    frame = build_frame(0x40, 1001, 4)
    parsed = parse_frame(frame)
    assert parsed is not None
    assert parsed.function == 0x40
    assert parsed.serial == 1001
    assert parsed.payload[0] == 4
    assert len(parsed.payload) == 56


def test_parse_short_buffer():
    assert parse_frame(b"\x17\x94") is None


def test_parse_invalid_marker():
    bad = bytearray(build_frame(0x94, 1001))
    bad[0] = 0x18
    assert parse_frame(bytes(bad)) is None


def test_frame_repr():
    """Frame repr should be readable."""
    f = Frame(function=0x40, serial=1001, payload=bytes([1]) + bytes(55))
    r = repr(f)
    assert "0x40" in r
    assert "1001" in r
    assert "01" in r
