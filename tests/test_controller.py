"""Tests for the DoorController command API."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from helpers import FakeUDPConnection
from wgctl.controller import DoorController
from wgctl.errors import ConfigurationError
from wgctl.models.device import CallbackTarget
from wgctl.protocol.framing import build_frame
from wgctl.transport.tcp_connection import TCPConnection

SERIAL = 223000123


def _local(ip: str | None = "10.0.0.42", **kwargs) -> tuple[DoorController, FakeUDPConnection]:
    conn = FakeUDPConnection()
    return DoorController(conn, serial=SERIAL, ip=ip, **kwargs), conn


def test_remote_with_server_is_configuration_error():
    """Callback targets only make sense on the local network."""
    sock = MagicMock()
    with pytest.raises(ConfigurationError):
        DoorController(TCPConnection(sock), serial=SERIAL, server=CallbackTarget("10.0.0.5", 9000))
    sock.sendall.assert_not_called()


def test_discovery_without_server_is_configuration_error():
    conn = FakeUDPConnection()
    with pytest.raises(ConfigurationError):
        DoorController(conn, serial=SERIAL)
    assert conn.sent == []


@pytest.mark.parametrize(
    "server",
    [
        CallbackTarget("10.0.0.5", 70000),
        CallbackTarget("not-an-ip", 9000),
        CallbackTarget("10.0.0.5", 9000, 300),
    ],
)
def test_malformed_server_is_configuration_error(server):
    """A callback target that cannot be encoded is rejected before discovery."""
    conn = FakeUDPConnection()
    with pytest.raises(ConfigurationError):
        DoorController(conn, serial=SERIAL, server=server)
    assert conn.sent == []


def test_remote_never_discovers():
    sock = MagicMock()
    ctl = DoorController(TCPConnection(sock), serial=SERIAL)
    assert ctl.discovery is None
    sock.sendall.assert_not_called()
    with pytest.raises(ConfigurationError):
        ctl.discover()


def test_known_ip_skips_discovery():
    ctl, conn = _local()
    assert ctl.discovery is None
    assert ctl.detected.result(timeout=0) is True
    assert conn.sent == []


def test_no_serial_skips_discovery():
    conn = FakeUDPConnection()
    ctl = DoorController(conn)
    assert ctl.discovery is None
    assert ctl.detected.result(timeout=0) is False


def test_serial_and_port_widths():
    with pytest.raises(ValueError):
        DoorController(FakeUDPConnection(), serial=1 << 32, ip="10.0.0.42")
    with pytest.raises(ValueError):
        DoorController(FakeUDPConnection(), serial=SERIAL, ip="10.0.0.42", port=70000)


def test_commands_unicast_to_known_ip():
    ctl, conn = _local()
    ctl.open_door(1)
    frame, ip, port = conn.sent[-1]
    assert frame[1] == 0x40
    assert frame[8] == 1
    assert int.from_bytes(frame[4:8], "little") == SERIAL
    assert (ip, port) == ("10.0.0.42", 60000)


def test_every_command_method():
    ctl, conn = _local()
    ctl.search()
    ctl.open_door(2)
    ctl.get_date()
    ctl.set_date(datetime(2024, 1, 2, 3, 4, 5))
    ctl.set_auth(123456, 3)
    ctl.get_auth(123456)
    ctl.remove_auth(123456)
    ctl.clear_auth()
    ctl.set_server_address("10.0.0.5", 9000, 10)
    ctl.get_server_address()
    ctl.set_address("10.0.0.50", "255.255.255.0", "10.0.0.1")
    assert conn.functions() == [
        0x94, 0x40, 0x32, 0x30, 0x50, 0x5A, 0x52, 0x54, 0x90, 0x92, 0x96,
    ]
    for frame, _, _ in conn.sent:
        assert len(frame) == 64
        assert frame[0] == 0x17


def test_set_address_clears_cached_ip():
    """Changing the controller's IP invalidates the cached one."""
    ctl, conn = _local()
    ctl.set_address("10.0.0.50", "255.255.255.0", "10.0.0.1")
    assert conn.sent[-1][1] == "10.0.0.42"
    assert ctl.ip is None

    ctl.open_door(1)
    assert conn.sent[-1][1] is None


def test_set_address_clears_ip_on_remote():
    ctl = DoorController(TCPConnection(MagicMock()), serial=SERIAL, ip="10.0.0.42")
    ctl.set_address("10.0.0.50", "255.255.255.0", "10.0.0.1")
    assert ctl.ip is None


def test_set_auth_unknown_door_sends_no_flags():
    ctl, conn = _local()
    frame = ctl.set_auth(123456, 7)
    assert frame[20:24] == bytes(4)
    assert conn.sent[-1][0] == frame


def test_width_errors_send_nothing():
    ctl, conn = _local()
    with pytest.raises(ValueError):
        ctl.open_door(256)
    with pytest.raises(ValueError):
        ctl.set_server_address("10.0.0.5", 65536)
    assert conn.sent == []


def test_send_command_raw_payload():
    ctl, conn = _local()
    frame = ctl.send_command(0x40, "03")
    assert frame[8] == 3
    assert conn.sent[-1][0] == frame


def test_remote_commands_use_stream():
    sock = MagicMock()
    ctl = DoorController(TCPConnection(sock), serial=SERIAL)
    frame = ctl.clear_auth()
    sock.sendall.assert_called_once_with(frame)


def test_diagnostics_go_to_injected_logger():
    sink = MagicMock()
    ctl, _ = _local(logger=sink)
    ctl.clear_auth()
    args = sink.info.call_args.args
    assert args[0] == "Func %s, payload to send: %s"
    assert args[1] == "Clear Authorizations"
    assert args[2] == "55 aa aa 55"


def test_repr():
    ctl, _ = _local()
    assert "10.0.0.42" in repr(ctl)
    assert "local" in repr(ctl)


def test_receive_returns_reply_frame():
    ctl, conn = _local()
    conn.replies.put(b"\x00" * 8)
    assert ctl.receive(timeout_ms=50) is None

    conn.replies.put(build_frame(0x40, SERIAL, 1))
    frame = ctl.receive(timeout_ms=50)
    assert (frame.function, frame.serial, frame.payload[0]) == (0x40, SERIAL, 1)


def test_receive_on_remote_is_configuration_error():
    ctl = DoorController(TCPConnection(MagicMock()), serial=SERIAL)
    with pytest.raises(ConfigurationError):
        ctl.receive(timeout_ms=10)
