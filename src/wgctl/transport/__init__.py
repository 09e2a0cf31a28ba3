"""Delivery of frames to a controller over UDP (local) or TCP (relay)."""

from .base import Transport
from .tcp_connection import TCPConnection
from .udp_connection import UDPConnection
