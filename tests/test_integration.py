"""
Integration tests for the client factory with real transports.
"""

import json
import os
import shlex
import sys

import anyio
import pytest

from mcpconnector import (
    ConfigurationError,
    McpClient,
    McpClientFactory,
    ServerConfig,
    TransportTypes,
)
from mcpconnector.transport.options import resolve_sse_options
from mcpconnector.transport.sse import SseClientTransport
from tests.transport.test_sse import MockSseServer, sse_body

FAKE_SERVER = os.path.join(os.path.dirname(__file__), "transport", "fake_server.py")


@pytest.fixture
def fake_stdio_config():
    return ServerConfig(
        id="fake",
        name="Fake Server",
        transport_type=TransportTypes.STDIO,
        location=sys.executable,
        transport_options={
            "arguments": f"{shlex.quote(FAKE_SERVER)} --greeting 'hi there'",
            "env.FAKE_SERVER_TAG": "integration",
            "shutdownTimeout": "2",
        },
    )


@pytest.mark.anyio
async def test_stdio_server_end_to_end(fake_stdio_config, client_options):
    """Test the full path from config to a request over a child process."""
    async with McpClientFactory([fake_stdio_config], client_options) as factory:
        client = await factory.get_client("fake")

        assert isinstance(client, McpClient)
        assert client.is_initialized
        assert client.server_info == {"name": "fake-server", "version": "0.0.1"}

        result = await client.request("echo", {"a": 1})
        assert result["params"] == {"a": 1}
        assert result["greeting"] == "hi there"
        assert result["tag"] == "integration"

        transport = client.transport

    assert not transport.is_connected


@pytest.mark.anyio
async def test_stdio_concurrent_callers_share_one_process(fake_stdio_config, client_options):
    """Test that concurrent first calls spawn a single server process."""
    spawned = []
    factory = McpClientFactory([fake_stdio_config], client_options)
    default_transport_factory = factory.transport_factory_method

    def counting_transport_factory(config):
        transport = default_transport_factory(config)
        spawned.append(transport)
        return transport

    factory.transport_factory_method = counting_transport_factory
    results = []

    async def worker():
        results.append(await factory.get_client("fake"))

    async with factory:
        async with anyio.create_task_group() as tg:
            for _ in range(5):
                tg.start_soon(worker)

    assert len(spawned) == 1
    assert len(results) == 5
    assert all(result is results[0] for result in results)


@pytest.mark.anyio
async def test_invalid_server_does_not_block_valid_one(fake_stdio_config, client_options):
    """Test a factory holding both a broken and a working server."""
    broken = ServerConfig("broken", "Broken", "websocket", "ws://localhost")
    async with McpClientFactory([broken, fake_stdio_config], client_options) as factory:
        with pytest.raises(ConfigurationError):
            await factory.get_client("broken")
        client = await factory.get_client("fake")
        assert client.is_initialized


@pytest.mark.anyio
async def test_sse_server_end_to_end(client_options):
    """Test the handshake over an SSE transport."""
    initialize_response = {
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "protocolVersion": "2024-11-05",
            "capabilities": {},
            "serverInfo": {"name": "sse-server", "version": "2.0.0"},
        },
    }
    server = MockSseServer(
        sse_body(("endpoint", "/messages"), ("message", json.dumps(initialize_response)))
    )
    config = ServerConfig(
        id="remote",
        name="Remote",
        transport_type=TransportTypes.SSE,
        location="http://localhost:8080/sse",
        transport_options={"header.Authorization": "Bearer secret", "reconnectDelay": "0"},
    )
    http_client = server.client()

    def transport_factory(config):
        options = resolve_sse_options(config.transport_options)
        return SseClientTransport(config.location, options, config.name, http_client=http_client)

    async with http_client:
        async with McpClientFactory(
            [config], client_options, transport_factory_method=transport_factory
        ) as factory:
            client = await factory.get_client("remote")
            assert client.server_info == {"name": "sse-server", "version": "2.0.0"}

    methods = [json.loads(request.content)["method"] for request in server.posts]
    assert methods == ["initialize", "notifications/initialized"]
    assert all(r.headers["authorization"] == "Bearer secret" for r in server.posts)
