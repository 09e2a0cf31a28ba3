"""Protocol layer: 64-byte framing, command builders, and reply parsing."""

from .framing import build_frame, parse_frame, Frame
from .commands import Command, build_command, function_name
