"""Common interface of the local and remote transports."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models.device import DeviceAddress


class Transport(ABC):
    """Fire-and-forget frame delivery.

    Exactly one concrete transport backs a controller for its lifetime.
    ``send`` never raises for network failures; they are logged.
    """

    #: Local transports can broadcast and receive replies.
    is_local: bool = False

    @abstractmethod
    def send(self, frame: bytes, address: DeviceAddress) -> None:
        """Deliver one frame."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying socket."""
