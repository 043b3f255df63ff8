"""
Protocol Parser Module

This module handles decoding of RESP requests and encoding of replies.

- RequestDecoder: Per-connection incremental request decoder
- parse_request(): Decode one request from the front of a byte buffer
- format_response(): Encode a Reply into RESP bytes
"""

from typing import List, Optional, Tuple

from .commands import Command, Reply, ReplyKind
from ..cache.store import parse_integer
from ..config.settings import settings
from ..errors import NotAnInteger, ProtocolError

CRLF = b"\r\n"


class ProtocolParser:
    """
    Parser for the RESP wire protocol.

    Request Formats:
        Multibulk: *<count>\\r\\n then <count> x $<len>\\r\\n<bytes>\\r\\n
        Inline:    <COMMAND> [ARGS...]\\r\\n  (whitespace separated)

    Reply Formats:
        Simple string: +<text>\\r\\n
        Error:         -<Kind>: <message>\\r\\n  or  -ERR <message>\\r\\n
        Integer:       :<n>\\r\\n
        Bulk string:   $<byte-length>\\r\\n<bytes>\\r\\n
        Null bulk:     $-1\\r\\n

    The parser itself holds only limits. Connections decode through a
    RequestDecoder, which keeps the partial request between reads.
    """

    def __init__(self):
        """Initialize the parser with limits from settings."""
        self.max_inline_length = settings.MAX_INLINE_LENGTH
        self.max_bulk_length = settings.MAX_BULK_LENGTH

    def decoder(self) -> "RequestDecoder":
        """Create an incremental decoder for one connection."""
        return RequestDecoder(self)

    def parse_request(self, data: bytes) -> Tuple[Optional[Command], int]:
        """
        Decode one request from the front of a buffer.

        Args:
            data: Bytes received so far

        Returns:
            (command, bytes_consumed). command is None when the buffer holds
            no complete request yet; bytes_consumed may still be non-zero
            when blank inline lines were skipped.

        Raises:
            ProtocolError: If the bytes cannot be a valid request

        Examples:
            >>> parser = ProtocolParser()
            >>> cmd, used = parser.parse_request(b"*2\\r\\n$3\\r\\nGET\\r\\n$3\\r\\nfoo\\r\\n")
            >>> cmd.name, cmd.args, used
            ('get', ['foo'], 22)
        """
        decoder = self.decoder()
        decoder.feed(data)
        command = decoder.next_command()
        return command, decoder.consumed

    def parse_length(self, line: bytes, what: str) -> int:
        """Parse a framing length strictly (optional '-' then ASCII digits)."""
        try:
            return parse_integer(line.decode("ascii"))
        except (UnicodeDecodeError, NotAnInteger):
            raise ProtocolError(f"Protocol error: invalid {what} length") from None

    def format_response(self, reply: Reply) -> bytes:
        """
        Encode a Reply into RESP bytes.

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_response(Reply.ok())
            b'+OK\\r\\n'
            >>> parser.format_response(Reply.bulk("bar"))
            b'$3\\r\\nbar\\r\\n'
            >>> parser.format_response(Reply.null())
            b'$-1\\r\\n'
        """
        if reply.kind == ReplyKind.SIMPLE:
            return f"+{reply.value}\r\n".encode()

        if reply.kind == ReplyKind.INTEGER:
            return f":{reply.value}\r\n".encode()

        if reply.kind == ReplyKind.BULK:
            payload = reply.value.encode()
            return f"${len(payload)}\r\n".encode() + payload + CRLF

        if reply.kind == ReplyKind.NULL:
            return b"$-1\r\n"

        if reply.error_kind == "ERR":
            return f"-ERR {reply.value}\r\n".encode()
        return f"-{reply.error_kind}: {reply.value}\r\n".encode()


class RequestDecoder:
    """
    Incremental request decoder for a single connection.

    Bytes are appended with feed(); next_command() returns each complete
    request in order. A multibulk request is decoded element by element as
    its bytes arrive, and each element is decoded exactly once, so the
    work done is linear in the request size however it is split into reads.

    Attributes:
        buffer: Received bytes not yet consumed
        consumed: Total bytes belonging to completed requests and skipped
            blank lines
    """

    def __init__(self, parser: ProtocolParser = None):
        self.parser = parser if parser is not None else ProtocolParser()
        self.buffer = bytearray()
        self.consumed = 0

        self._pos = 0
        self._dropped = 0
        self._parts: Optional[List[str]] = None
        self._remaining = 0
        self._bulk_length = -1

    def feed(self, data: bytes) -> None:
        """Append received bytes, dropping what has already been decoded."""
        if self._pos:
            del self.buffer[:self._pos]
            self._dropped += self._pos
            self._pos = 0
        self.buffer += data

    def _commit(self) -> None:
        self.consumed = self._dropped + self._pos

    def _available(self) -> int:
        return len(self.buffer) - self._pos

    def next_command(self) -> Optional[Command]:
        """
        Decode the next complete request.

        Returns:
            The command, or None if more bytes are needed

        Raises:
            ProtocolError: If the bytes cannot be a valid request
        """
        while True:
            if self._parts is None:
                self._skip_blank_lines()
                if not self._available():
                    return None

                if self.buffer[self._pos:self._pos + 1] != b"*":
                    parts = self._read_inline()
                    if parts is None:
                        return None
                    self._commit()
                    if not parts:
                        # Whitespace-only inline line
                        continue
                    return Command.from_parts(parts)

                line = self._read_line()
                if line is None:
                    return None
                count = self.parser.parse_length(line[1:], "multibulk")
                if count <= 0:
                    raise ProtocolError("Protocol error: invalid multibulk length")
                self._parts = []
                self._remaining = count

            while self._remaining:
                value = self._read_bulk()
                if value is None:
                    return None
                self._parts.append(value)
                self._remaining -= 1

            parts, self._parts = self._parts, None
            self._commit()
            return Command.from_parts(parts)

    def _skip_blank_lines(self) -> None:
        while self.buffer[self._pos:self._pos + 1] in (b"\r", b"\n"):
            self._pos += 1
        self._commit()

    def _read_line(self) -> Optional[bytes]:
        """Return the next CRLF-terminated line (without CRLF) and move past it."""
        end = self.buffer.find(CRLF, self._pos)
        if end == -1:
            if self._available() > self.parser.max_inline_length:
                raise ProtocolError("Protocol error: too big request line")
            return None
        line = bytes(self.buffer[self._pos:end])
        self._pos = end + 2
        return line

    def _read_bulk(self) -> Optional[str]:
        """
        Read one bulk string of a multibulk request.

        Format: $<len>\\r\\n<bytes>\\r\\n
        """
        if self._bulk_length < 0:
            if not self._available():
                return None

            marker = self.buffer[self._pos:self._pos + 1]
            if marker != b"$":
                got = bytes(marker).decode("latin-1")
                raise ProtocolError(f"Protocol error: expected '$', got '{got}'")

            line = self._read_line()
            if line is None:
                return None

            length = self.parser.parse_length(line[1:], "bulk")
            if length < 0 or length > self.parser.max_bulk_length:
                raise ProtocolError("Protocol error: invalid bulk length")
            self._bulk_length = length

        end = self._pos + self._bulk_length
        if end + 2 > len(self.buffer):
            return None
        if self.buffer[end:end + 2] != CRLF:
            raise ProtocolError("Protocol error: bulk string not terminated by CRLF")

        value = self._decode(self.buffer[self._pos:end])
        self._pos = end + 2
        self._bulk_length = -1
        return value

    def _read_inline(self) -> Optional[List[str]]:
        """
        Read an inline request.

        Format: <COMMAND> [ARGS...]\\n (a trailing \\r is optional)
        """
        end = self.buffer.find(b"\n", self._pos)
        if end == -1:
            if self._available() > self.parser.max_inline_length:
                raise ProtocolError("Protocol error: too big inline request")
            return None

        line = self._decode(bytes(self.buffer[self._pos:end]).rstrip(b"\r"))
        self._pos = end + 1
        return line.split()

    def _decode(self, raw) -> str:
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            raise ProtocolError("Protocol error: invalid encoding") from None
