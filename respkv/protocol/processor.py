"""
Command Processor Module

Maps a decoded Command to a store operation and a typed Reply.

The dispatch table is built once per processor from CommandType to a
bound handler method. Each handler receives the argument list (command
name excluded) and returns a Reply; store and argument errors are raised
as KVError subclasses and converted to error replies in dispatch().
"""

import logging
from typing import Callable, Dict, List

from ..cache.store import KVStore, parse_integer
from ..errors import KVError, MalformedCommand
from .commands import Command, CommandType, Reply

logger = logging.getLogger(__name__)

Handler = Callable[[List[str]], Reply]


class CommandProcessor:
    """
    Executes commands against a shared KVStore.

    The processor holds no state between commands other than its
    reference to the store.

    Usage:
        processor = CommandProcessor(store)
        reply = processor.dispatch(Command("set", ["foo", "bar"]))
    """

    def __init__(self, store: KVStore):
        self.store = store
        self._handlers: Dict[CommandType, Handler] = {
            CommandType.PING: self._ping,
            CommandType.ECHO: self._echo,
            CommandType.SET: self._set,
            CommandType.GET: self._get,
            CommandType.DEL: self._del,
            CommandType.EXISTS: self._exists,
            CommandType.INCR: self._incr,
            CommandType.DECR: self._decr,
            CommandType.EXPIRE: self._expire,
            CommandType.TTL: self._ttl,
            CommandType.MSET: self._mset,
            CommandType.QUIT: self._quit,
        }

        missing = [t.name for t in CommandType if t is not CommandType.UNKNOWN and t not in self._handlers]
        if missing:
            raise RuntimeError(f"No handler registered for: {', '.join(missing)}")

    @property
    def commands(self) -> List[str]:
        """Names of all commands this processor handles."""
        return [t.value for t in self._handlers]

    def dispatch(self, command: Command) -> Reply:
        """
        Execute a command and return its reply.

        Never raises for command-level errors: wrong arity, non-integer
        values and unknown commands all become error replies.
        """
        handler = self._handlers.get(command.type)
        if handler is None:
            logger.debug(f"Unknown command: {command.name!r}")
            return Reply.unknown_command()

        try:
            return handler(command.args)
        except KVError as exc:
            logger.debug(f"{command.name} failed: {exc.kind}: {exc.message}")
            return Reply.from_exception(exc)

    @staticmethod
    def _expect(args: List[str], count: int, name: str) -> None:
        if len(args) != count:
            raise MalformedCommand.wrong_arity(name)

    def _ping(self, args: List[str]) -> Reply:
        if not args:
            return Reply.pong()
        self._expect(args, 1, "ping")
        return Reply.bulk(args[0])

    def _echo(self, args: List[str]) -> Reply:
        self._expect(args, 1, "echo")
        return Reply.bulk(args[0])

    def _set(self, args: List[str]) -> Reply:
        self._expect(args, 2, "set")
        key, value = args
        self.store.set(key, value)
        return Reply.ok()

    def _get(self, args: List[str]) -> Reply:
        self._expect(args, 1, "get")
        return Reply.bulk_or_null(self.store.get(args[0]))

    def _del(self, args: List[str]) -> Reply:
        self._expect(args, 1, "del")
        return Reply.integer(self.store.delete(args[0]))

    def _exists(self, args: List[str]) -> Reply:
        self._expect(args, 1, "exists")
        return Reply.integer(self.store.exists(args[0]))

    def _incr(self, args: List[str]) -> Reply:
        self._expect(args, 1, "incr")
        return Reply.integer(self.store.increment(args[0]))

    def _decr(self, args: List[str]) -> Reply:
        self._expect(args, 1, "decr")
        return Reply.integer(self.store.decrement(args[0]))

    def _expire(self, args: List[str]) -> Reply:
        self._expect(args, 2, "expire")
        key, raw_seconds = args
        # Parse before touching the store so a bad argument changes nothing
        seconds = parse_integer(raw_seconds)
        return Reply.integer(self.store.set_expiry(key, seconds))

    def _ttl(self, args: List[str]) -> Reply:
        self._expect(args, 1, "ttl")
        return Reply.integer(self.store.time_to_live(args[0]))

    def _mset(self, args: List[str]) -> Reply:
        if not args or len(args) % 2:
            raise MalformedCommand.wrong_arity("mset")
        self.store.mset(zip(args[0::2], args[1::2]))
        return Reply.ok()

    def _quit(self, args: List[str]) -> Reply:
        # The connection handler closes the connection after this reply
        return Reply.ok()
