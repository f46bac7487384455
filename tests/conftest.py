"""
Pytest configuration for mcpconnector tests.

This module contains fixtures and configuration for pytest.
"""

import math
from collections.abc import AsyncIterator
from typing import Any, Callable, Dict, Optional

import anyio
import pytest

from mcpconnector.config import ClientInfo, ClientOptions, ServerConfig, TransportTypes


def initialize_result(name: str = "mock-server") -> Dict[str, Any]:
    return {
        "protocolVersion": "2024-11-05",
        "capabilities": {"tools": {}},
        "serverInfo": {"name": name, "version": "1.0.0"},
    }


def default_responder(message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Answer ``initialize`` and echo every other request."""
    if "id" not in message:
        return None
    if message["method"] == "initialize":
        result = initialize_result()
    else:
        result = {"echo": message.get("params")}
    return {"jsonrpc": "2.0", "id": message["id"], "result": result}


# Mock implementation of the ClientTransport protocol
class MockTransport:
    """Mock transport answering requests through a responder function."""

    def __init__(
        self,
        responder: Callable[[Dict[str, Any]], Optional[Dict[str, Any]]] = default_responder,
        raise_on_connect: Optional[Exception] = None,
        raise_on_disconnect: Optional[Exception] = None,
    ):
        self.responder = responder
        self.raise_on_connect = raise_on_connect
        self.raise_on_disconnect = raise_on_disconnect
        self.connected = False
        self.sent = []
        self.connect_count = 0
        self.disconnect_count = 0
        self._send_stream, self._receive_stream = anyio.create_memory_object_stream(math.inf)

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        self.connect_count += 1
        if self.raise_on_connect:
            raise self.raise_on_connect
        self.connected = True

    async def disconnect(self) -> None:
        self.disconnect_count += 1
        self.connected = False
        if self.raise_on_disconnect:
            raise self.raise_on_disconnect

    async def send(self, message: Dict[str, Any]) -> None:
        self.sent.append(message)
        reply = self.responder(message)
        if reply is not None:
            self._send_stream.send_nowait(reply)

    def push(self, message: Dict[str, Any]) -> None:
        """Deliver a server-initiated message."""
        self._send_stream.send_nowait(message)

    def close_stream(self) -> None:
        self._send_stream.close()

    async def receive(self) -> AsyncIterator[Dict[str, Any]]:
        async for message in self._receive_stream:
            yield message

    async def __aenter__(self) -> "MockTransport":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()


class MockClient:
    """Mock client recording its lifecycle calls.

    When ``gate`` is set, ``connect`` blocks until the event fires.
    """

    def __init__(
        self,
        transport=None,
        raise_on_connect: Optional[Exception] = None,
        raise_on_close: Optional[Exception] = None,
        gate: Optional[anyio.Event] = None,
    ):
        self.transport = transport
        self.raise_on_connect = raise_on_connect
        self.raise_on_close = raise_on_close
        self.gate = gate
        self.connect_count = 0
        self.close_count = 0
        self.connected = False

    async def connect(self) -> None:
        self.connect_count += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.raise_on_connect:
            raise self.raise_on_connect
        if self.transport is not None:
            await self.transport.connect()
        self.connected = True

    async def aclose(self) -> None:
        self.close_count += 1
        self.connected = False
        if self.transport is not None:
            await self.transport.disconnect()
        if self.raise_on_close:
            raise self.raise_on_close


@pytest.fixture
def client_options():
    """Fixture providing the client options shared by a factory."""
    return ClientOptions(
        client_info=ClientInfo(name="TestClient", version="1.0.0"),
        initialization_timeout=5,
    )


@pytest.fixture
def stdio_config():
    """Fixture providing a stdio server config."""
    return ServerConfig(
        id="test-server",
        name="Test Server",
        transport_type=TransportTypes.STDIO,
        location="/path/to/server",
        transport_options={"arguments": "--test arg", "workingDirectory": "/working/dir"},
    )


@pytest.fixture
def sse_config():
    """Fixture providing an sse server config."""
    return ServerConfig(
        id="sse-server",
        name="SSE Server",
        transport_type=TransportTypes.SSE,
        location="http://localhost:8080/sse",
    )


@pytest.fixture
def mock_transport():
    """Fixture providing a mock transport."""
    return MockTransport()


# Anyio Backend Selection - only use asyncio
@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Fixture to run tests with different anyio backends."""
    return request.param
