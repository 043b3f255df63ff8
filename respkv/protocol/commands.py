"""
Protocol Command and Reply Definitions

This module defines the data structures for decoded commands and the
typed replies produced by the command processor.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from ..errors import KVError, UnknownCommand


class CommandType(Enum):
    """Enumeration of supported command types, keyed by lowercase name."""
    PING = "ping"
    ECHO = "echo"
    SET = "set"
    GET = "get"
    DEL = "del"
    EXISTS = "exists"
    INCR = "incr"
    DECR = "decr"
    EXPIRE = "expire"
    TTL = "ttl"
    MSET = "mset"
    QUIT = "quit"
    UNKNOWN = ""

    @classmethod
    def from_name(cls, name: str) -> "CommandType":
        """Look up a command type by name (case-insensitive)."""
        if not name:
            return cls.UNKNOWN
        try:
            return cls(name.lower())
        except ValueError:
            return cls.UNKNOWN


class ReplyKind(Enum):
    """Enumeration of reply kinds."""
    SIMPLE = "+"
    ERROR = "-"
    INTEGER = ":"
    BULK = "$"
    NULL = "null"


@dataclass
class Command:
    """
    Represents a decoded protocol command.

    Attributes:
        name: The command name, normalized to lowercase
        args: Ordered list of string arguments (command name excluded)
    """
    name: str
    args: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.name = self.name.lower()

    @classmethod
    def from_parts(cls, parts: List[str]) -> "Command":
        """Build a command from a decoded request (command name first)."""
        return cls(name=parts[0], args=list(parts[1:]))

    @property
    def type(self) -> CommandType:
        return CommandType.from_name(self.name)


@dataclass
class Reply:
    """
    Represents a protocol reply.

    Attributes:
        kind: Which RESP reply type to encode
        value: Text for SIMPLE/BULK, number for INTEGER, message for ERROR,
            None for NULL
        error_kind: Error prefix for ERROR replies (e.g. "NotAnInteger")
    """
    kind: ReplyKind
    value: Optional[Union[str, int]] = None
    error_kind: str = ""

    @classmethod
    def simple(cls, text: str) -> "Reply":
        """Create a simple string reply."""
        return cls(kind=ReplyKind.SIMPLE, value=text)

    @classmethod
    def ok(cls) -> "Reply":
        return cls.simple("OK")

    @classmethod
    def pong(cls) -> "Reply":
        return cls.simple("PONG")

    @classmethod
    def bulk(cls, value: str) -> "Reply":
        """Create a bulk string reply."""
        return cls(kind=ReplyKind.BULK, value=value)

    @classmethod
    def null(cls) -> "Reply":
        """Create a null bulk string reply."""
        return cls(kind=ReplyKind.NULL)

    @classmethod
    def bulk_or_null(cls, value: Optional[str]) -> "Reply":
        """Bulk reply for a present value, null reply for an absent one."""
        return cls.null() if value is None else cls.bulk(value)

    @classmethod
    def integer(cls, value: int) -> "Reply":
        """Create an integer reply. Booleans become 1 or 0."""
        return cls(kind=ReplyKind.INTEGER, value=int(value))

    @classmethod
    def error(cls, error_kind: str, message: str) -> "Reply":
        """Create an error reply."""
        return cls(kind=ReplyKind.ERROR, value=message, error_kind=error_kind)

    @classmethod
    def unknown_command(cls) -> "Reply":
        return cls.from_exception(UnknownCommand())

    @classmethod
    def from_exception(cls, exc: KVError) -> "Reply":
        """Create an error reply from a respkv error."""
        return cls.error(exc.kind, exc.message)

    @property
    def is_error(self) -> bool:
        return self.kind == ReplyKind.ERROR
