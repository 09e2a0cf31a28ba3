"""Client for networked door-access controllers speaking the 64-byte 0x17 protocol."""

from .controller import DoorController
from .errors import ConfigurationError, DiscoveryTimeout, FrameDecodeError, WgctlError

__version__ = "0.1.0"
