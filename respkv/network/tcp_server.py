"""
Async TCP Server Module

This module implements the asynchronous TCP server for respkv.

- handle_client(): Handle a single client connection
- start(): Start the server and accept connections
- _expire_loop(): Periodically remove expired keys from the store
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional

from ..cache.store import KVStore
from ..config.settings import settings
from ..errors import ProtocolError
from ..protocol.commands import CommandType, Reply
from ..protocol.parser import ProtocolParser, RequestDecoder
from ..protocol.processor import CommandProcessor

logger = logging.getLogger(__name__)


class KVServer:
    """
    Asynchronous TCP server for respkv.

    This server handles multiple concurrent clients using asyncio.
    Each client connection is handled in a separate coroutine, and every
    command runs to completion before the next one is read, so commands
    never interleave on the shared store.

    Features:
    - Non-blocking I/O with asyncio
    - Persistent, pipelined connections (multiple commands per read)
    - One reply per command, written back in arrival order
    - Shared KVStore across all connections
    - Optional background sweep of expired keys

    Usage:
        server = KVServer(host='0.0.0.0', port=6379)
        await server.start()  # Runs forever

    Attributes:
        host: Server bind address (e.g., '0.0.0.0')
        port: Server port number (e.g., 6379)
        store: The KVStore instance shared by all connections
        parser: The ProtocolParser for decoding requests
        processor: The CommandProcessor executing commands on the store
        cleanup_interval: Seconds between expiry sweeps (0 disables)
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            store: KVStore = None,
            cleanup_interval: float = None,
    ):
        """
        Initialize the server.

        Args:
            host: Bind address (default from settings)
            port: Port number (default from settings)
            store: KVStore instance (creates new one if not provided)
            cleanup_interval: Seconds between expiry sweeps (default from settings)
        """
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.store = store if store is not None else KVStore()
        self.cleanup_interval = (
            cleanup_interval if cleanup_interval is not None else settings.CLEANUP_INTERVAL
        )
        self.parser = ProtocolParser()
        self.processor = CommandProcessor(self.store)

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._expire_task: Optional[asyncio.Task] = None
        self._running = False
        self._connection_count = 0
        self._total_requests = 0
        self._total_errors = 0
        self._expired_keys = 0

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Handle a single client connection.

        Feeds received bytes to a per-connection RequestDecoder, executes every
        complete request, and writes one reply per request.
        Stops when the client disconnects, sends QUIT, or sends bytes that
        are not a valid request.

        Args:
            reader: StreamReader for reading from the client
            writer: StreamWriter for writing to the client
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        logger.debug(f"Client connected: {addr}")

        decoder = self.parser.decoder()
        try:
            while True:
                data = await reader.read(settings.READ_BUFFER_SIZE)
                if not data:
                    logger.debug(f"Client disconnected: {addr}")
                    break

                decoder.feed(data)
                try:
                    quit_requested = self._process_requests(decoder, writer)
                except ProtocolError as exc:
                    logger.warning(f"Protocol error from {addr}: {exc.message}")
                    writer.write(self.parser.format_response(Reply.from_exception(exc)))
                    await writer.drain()
                    break

                await writer.drain()
                if quit_requested:
                    logger.debug(f"Client requested quit: {addr}")
                    break

        except ConnectionResetError:
            logger.debug(f"Connection reset by client: {addr}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            try:
                writer.close()
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    def _process_requests(self, decoder: RequestDecoder, writer: StreamWriter) -> bool:
        """
        Execute every complete request the decoder holds.

        Replies are queued on the writer in request order. Processing stops
        after a QUIT.

        Returns:
            Whether QUIT was received
        """
        while True:
            command = decoder.next_command()
            if command is None:
                return False

            self._total_requests += 1
            reply = self.processor.dispatch(command)
            if reply.is_error:
                self._total_errors += 1
            writer.write(self.parser.format_response(reply))

            if command.type == CommandType.QUIT:
                return True

    async def _expire_loop(self) -> None:
        """Remove expired keys every cleanup_interval seconds."""
        while True:
            await asyncio.sleep(self.cleanup_interval)
            removed = self.store.cleanup_expired()
            if removed:
                self._expired_keys += removed
                logger.debug(f"Expired {removed} keys")

    async def start(self) -> None:
        """
        Start the server and begin accepting connections.

        Runs forever (or until cancelled). Should be called from
        asyncio.run() or within an existing event loop.

        Example:
            server = KVServer(port=6379)
            asyncio.run(server.start())
        """
        if self._running:
            return

        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
        )
        self._running = True

        if self.cleanup_interval and self.cleanup_interval > 0:
            self._expire_task = asyncio.create_task(self._expire_loop())

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving on {addrs}")

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            # Expected during shutdown/fixture cleanup
            logger.debug("Server start cancelled")
        finally:
            self._running = False
            await self._cancel_expire_task()

    async def _cancel_expire_task(self) -> None:
        if self._expire_task is None:
            return

        self._expire_task.cancel()
        try:
            await self._expire_task
        except asyncio.CancelledError:
            pass
        self._expire_task = None

    async def stop(self) -> None:
        """
        Stop the server gracefully.

        Closes the listening socket, stops the expiry sweep and waits for
        the server to shut down.
        """
        await self._cancel_expire_task()

        if self._server is None:
            return

        self._server.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with server stats including connection counts,
            request counts, and store statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "total_requests": self._total_requests,
            "total_errors": self._total_errors,
            "expired_keys": self._expired_keys,
            "store_stats": self.store.get_stats(),
        }


async def run_server(host: str = None, port: int = None, store: KVStore = None) -> None:
    """
    Convenience function to create and run the server.

    Args:
        host: Bind address (default from settings)
        port: Port number (default from settings)
        store: Shared store (creates new one if not provided)

    Usage:
        asyncio.run(run_server(port=6379))
    """
    server = KVServer(host=host, port=port, store=store)

    try:
        await server.start()
    except asyncio.CancelledError:
        logger.info("Server shutdown requested")
    finally:
        await server.stop()
