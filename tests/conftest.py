"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator

from respkv.cache.store import KVStore
from respkv.protocol.parser import ProtocolParser
from respkv.protocol.processor import CommandProcessor
from respkv.network.tcp_server import KVServer


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class FakeClock:
    """
    Controllable clock for testing time-dependent functionality.

    Call the instance to read the current time; advance() moves it forward.
    """

    def __init__(self, start: float = 1000.0):
        self._now = start

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float = 1.0) -> None:
        self._now += seconds


# ============================================================================
# KVStore Fixtures
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> KVStore:
    """Create a fresh KVStore driven by the fake clock."""
    return KVStore(clock=clock)


@pytest.fixture
def real_store() -> KVStore:
    """Create a KVStore using the real monotonic clock."""
    return KVStore()


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser()


@pytest.fixture
def processor(store: KVStore) -> CommandProcessor:
    """Create a CommandProcessor over the fake-clock store."""
    return CommandProcessor(store)


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[KVServer, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a KVServer on a random free port
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = KVServer(host='127.0.0.1', port=server_port, cleanup_interval=0.1)

    # Start server in background task
    server_task = asyncio.create_task(srv.start())

    # Wait for server to be ready
    await asyncio.sleep(0.1)

    yield srv

    # Cleanup
    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


# ============================================================================
# Client Fixtures
# ============================================================================

def encode_command(*parts: str) -> bytes:
    """Encode a command as a RESP multibulk request."""
    out = [f"*{len(parts)}\r\n".encode()]
    for part in parts:
        data = part.encode()
        out.append(f"${len(data)}\r\n".encode() + data + b"\r\n")
    return b"".join(out)


async def read_reply(reader: asyncio.StreamReader) -> bytes:
    """Read exactly one RESP reply and return its raw bytes."""
    line = await reader.readline()
    if line.startswith(b"$") and not line.startswith(b"$-1"):
        length = int(line[1:-2])
        line += await reader.readexactly(length + 2)
    return line


class AsyncClient:
    """
    Helper class for testing server interactions.

    Provides a simple async context manager interface for
    sending commands and receiving raw RESP replies.

    Usage:
        async with AsyncClient('127.0.0.1', 6379) as client:
            reply = await client.send_command("SET", "key", "value")
            assert reply == b"+OK\\r\\n"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

    async def connect(self) -> None:
        """Establish connection to server."""
        self.reader, self.writer = await asyncio.open_connection(
            self.host, self.port
        )

    async def disconnect(self) -> None:
        """Close connection to server."""
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def send_command(self, *parts: str) -> bytes:
        """
        Send a command as a RESP array and receive the reply.

        Returns:
            The raw reply bytes, including the trailing CRLF
        """
        self.writer.write(encode_command(*parts))
        await self.writer.drain()
        return await read_reply(self.reader)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create test clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                reply = await client.send_command("GET", "key")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server_port)
    return factory


@pytest_asyncio.fixture
async def client_reader_writer(
    server: KVServer,
    server_port: int
) -> AsyncGenerator[tuple, None]:
    """
    Create a raw reader/writer pair connected to the server.

    Useful for low-level protocol testing.
    """
    reader, writer = await asyncio.open_connection('127.0.0.1', server_port)

    yield reader, writer

    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError):
        pass


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
