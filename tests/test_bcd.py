"""Tests for BCD and address encoders."""

from datetime import date, datetime

import pytest

from wgctl.utils.bcd import (
    build_bcd_date,
    build_bcd_day,
    from_bcd,
    parse_bcd_date,
    parse_bcd_day,
    to_bcd,
)
from wgctl.utils.ipaddr import bytes_to_ip, format_mac, ip_to_bytes


def test_to_bcd():
    assert to_bcd(0) == 0x00
    assert to_bcd(9) == 0x09
    assert to_bcd(59) == 0x59
    assert to_bcd(99) == 0x99


def test_to_bcd_bounds():
    with pytest.raises(ValueError):
        to_bcd(100)
    with pytest.raises(ValueError):
        to_bcd(-1)


def test_from_bcd_rejects_hex_digits():
    assert from_bcd(0x31) == 31
    with pytest.raises(ValueError):
        from_bcd(0x1A)


def test_build_bcd_date():
    """Dates encode as CC YY MM DD hh mm ss."""
    data = build_bcd_date(datetime(2019, 12, 31, 23, 59, 58))
    assert data == bytes.fromhex("20191231235958")


def test_build_bcd_date_defaults_to_now():
    data = build_bcd_date()
    assert len(data) == 7
    assert parse_bcd_date(data).year == datetime.now().year


def test_bcd_day():
    assert build_bcd_day(date(2029, 12, 31)) == bytes.fromhex("20291231")
    assert parse_bcd_day(bytes.fromhex("20190101")) == date(2019, 1, 1)


def test_parse_bcd_date_short():
    with pytest.raises(ValueError):
        parse_bcd_date(b"\x20\x19")


def test_ip_to_bytes():
    assert ip_to_bytes("192.168.1.150") == bytes([192, 168, 1, 150])
    with pytest.raises(ValueError):
        ip_to_bytes("300.1.1.1")


def test_bytes_to_ip():
    assert bytes_to_ip(bytes([10, 0, 0, 42])) == "10.0.0.42"


def test_format_mac():
    assert format_mac(b"\x00\x57\x19\x0a\x0b\x0c") == "00:57:19:0A:0B:0C"
