"""Protocol module for respkv."""

from .commands import Command, CommandType, Reply, ReplyKind
from .parser import ProtocolParser, RequestDecoder
from .processor import CommandProcessor

__all__ = [
    "Command",
    "CommandType",
    "Reply",
    "ReplyKind",
    "ProtocolParser",
    "RequestDecoder",
    "CommandProcessor",
]
