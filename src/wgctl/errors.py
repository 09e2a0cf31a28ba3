"""Exception types raised by the controller client."""

from __future__ import annotations


class WgctlError(Exception):
    """Base class for controller client errors."""


class ConfigurationError(WgctlError):
    """Invalid combination of constructor arguments."""


class DiscoveryTimeout(WgctlError):
    """No matching search reply arrived before the discovery timeout."""


class FrameDecodeError(WgctlError, ValueError):
    """An incoming buffer could not be decoded as a reply frame."""
