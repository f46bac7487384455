"""
Protocol client bound to a single transport.

The client performs the ``initialize`` handshake when connected and then
offers plain JSON-RPC requests and notifications to the server.
"""

from collections.abc import AsyncIterator
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import anyio

from mcpconnector.config import ClientOptions, ServerConfig, get_env_config
from mcpconnector.errors import ProtocolError, TimeoutError
from mcpconnector.telemetry import get_telemetry
from mcpconnector.transport.errors import ConnectionError
from mcpconnector.transport.protocol import ClientTransport

DEFAULT_INITIALIZATION_TIMEOUT = 60.0


@runtime_checkable
class Client(Protocol):
    """What the client factory needs from the clients it caches."""

    async def connect(self) -> None:
        ...

    async def aclose(self) -> None:
        ...


class McpClient:
    """
    Client for one MCP server, owning the transport it talks through.
    """

    def __init__(
        self,
        transport: ClientTransport,
        server_config: ServerConfig,
        options: ClientOptions,
        enable_telemetry: bool = True,
    ):
        """Initialize the client.

        Args:
            transport: The transport to the server. The client closes it.
            server_config: The config of the server this client talks to.
            options: Options shared by all clients of a factory.
            enable_telemetry: Whether to log through structlog.
        """
        self.transport = transport
        self.server_config = server_config
        self.options = options
        self.server_info: Optional[Dict[str, Any]] = None
        self.server_capabilities: Dict[str, Any] = {}
        self._messages: Optional[AsyncIterator[Dict[str, Any]]] = None
        self._next_id = 1
        self._lock = anyio.Lock()
        self._initialized = False

        _, self._logger = get_telemetry("mcpconnector.client") if enable_telemetry else (None, None)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _initialization_timeout(self) -> float:
        if self.options.initialization_timeout is not None:
            return float(self.options.initialization_timeout)
        env_value = get_env_config("initialization_timeout")
        if env_value is not None:
            return float(env_value)
        return DEFAULT_INITIALIZATION_TIMEOUT

    async def connect(self) -> None:
        """Connect the transport and run the ``initialize`` handshake.

        Raises:
            TimeoutError: If the server does not answer in time.
            ProtocolError: If the server rejects the handshake.
            TransportError: If the transport fails.
        """
        if self._initialized:
            return

        await self.transport.connect()
        self._messages = self.transport.receive()

        timeout = self._initialization_timeout()
        params = {
            "protocolVersion": self.options.protocol_version,
            "capabilities": self.options.capabilities,
            "clientInfo": self.options.client_info.to_dict(),
        }
        result = None
        with anyio.move_on_after(timeout) as scope:
            result = await self.request("initialize", params)

        # If scope.cancel_called is True, the handshake timed out
        if scope.cancel_called:
            raise TimeoutError(
                f"Server '{self.server_config.id}' did not initialize within {timeout:g}s"
            )

        self.server_info = result.get("serverInfo")
        self.server_capabilities = result.get("capabilities") or {}
        await self.notify("notifications/initialized")
        self._initialized = True

        if self._logger:
            self._logger.info(
                "client.initialized",
                server_id=self.server_config.id,
                server_info=self.server_info,
                protocol_version=result.get("protocolVersion"),
            )

    async def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a request and wait for its response.

        Requests are issued one at a time; messages that are not the
        awaited response are skipped.

        Returns:
            The ``result`` member of the response.

        Raises:
            ProtocolError: If the server answers with an error.
            ConnectionError: If the transport closes before the response.
        """
        if self._messages is None:
            raise ConnectionError(f"Client for '{self.server_config.id}' is not connected")

        async with self._lock:
            request_id = self._next_id
            self._next_id += 1
            message = {"jsonrpc": "2.0", "id": request_id, "method": method}
            if params is not None:
                message["params"] = params
            await self.transport.send(message)

            async for response in self._messages:
                if response.get("id") != request_id or "method" in response:
                    if self._logger:
                        self._logger.debug(
                            "client.message_skipped",
                            server_id=self.server_config.id,
                            method=response.get("method"),
                        )
                    continue
                if "error" in response:
                    error = response["error"] or {}
                    raise ProtocolError(
                        error.get("message", f"{method} failed"),
                        code=error.get("code"),
                        data=error.get("data"),
                    )
                return response.get("result") or {}

        raise ConnectionError(
            f"Connection to '{self.server_config.id}' closed while waiting for '{method}'"
        )

    async def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Send a notification; no response is expected."""
        message = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        await self.transport.send(message)

    async def aclose(self) -> None:
        """Close the client and its transport."""
        self._initialized = False
        self._messages = None
        await self.transport.disconnect()

    async def __aenter__(self) -> "McpClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
