"""
Error types raised by the store, the protocol parser and the command processor.

Every error carries a ``kind`` which is used as the prefix of the
protocol error reply (``-<kind>: <message>``).
"""


class KVError(Exception):
    """Base class for all respkv errors."""

    kind = "ERR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class MalformedCommand(KVError):
    """A command was sent with the wrong number of arguments."""

    kind = "MalformedCommand"

    @classmethod
    def wrong_arity(cls, name: str) -> "MalformedCommand":
        return cls(f"wrong number of arguments for '{name}' command")


class NotAnInteger(KVError, ValueError):
    """A stored value or an argument is not a base-10 64-bit integer."""

    kind = "NotAnInteger"

    def __init__(self, message: str = "value is not an integer or out of range"):
        super().__init__(message)


class UnknownCommand(KVError):
    """The command name is not recognised."""

    kind = "ERR"

    def __init__(self, name: str = ""):
        super().__init__("unknown command")
        self.name = name


class ProtocolError(KVError):
    """The request bytes do not form a valid RESP request."""

    kind = "ERR"
