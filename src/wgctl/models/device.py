"""Controller addressing and record models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

DEFAULT_PORT = 60000
BROADCAST_IP = "255.255.255.255"


@dataclass
class DeviceAddress:
    """Where frames for a controller are sent.

    ``ip`` of ``None`` means the address is unknown and frames are broadcast.
    Discovery fills it in; changing the controller's network settings clears it.
    """

    ip: str | None = None
    port: int = DEFAULT_PORT

    @property
    def broadcast(self) -> bool:
        return not self.ip

    @property
    def target(self) -> tuple[str, int]:
        return (self.ip or BROADCAST_IP, self.port)


@dataclass(frozen=True)
class CallbackTarget:
    """Server endpoint the controller reports events back to."""

    ip: str
    port: int
    interval: int = 0  # seconds, 0 disables periodic reports

    def to_dict(self) -> dict:
        return {"ip": self.ip, "port": self.port, "interval": self.interval}


@dataclass
class AuthRecord:
    """A card authorization as stored on the controller."""

    card_no: int
    doors: list[bool] = field(default_factory=lambda: [False] * 4)
    valid_from: date = date(2019, 1, 1)
    valid_to: date = date(2029, 12, 31)

    def to_dict(self) -> dict:
        return {
            "card_no": self.card_no,
            "doors": [i + 1 for i, allowed in enumerate(self.doors) if allowed],
            "valid_from": self.valid_from.isoformat(),
            "valid_to": self.valid_to.isoformat(),
        }


@dataclass
class DeviceInfo:
    """Controller identification from a search reply."""

    serial: int
    ip: str
    subnet: str = ""
    gateway: str = ""
    mac: str = ""
    version: str = ""
    release: str = ""

    def to_dict(self) -> dict:
        return {
            "serial": self.serial,
            "ip": self.ip,
            "subnet": self.subnet,
            "gateway": self.gateway,
            "mac": self.mac,
            "version": self.version,
            "release": self.release,
        }
