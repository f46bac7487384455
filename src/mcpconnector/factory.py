"""
Client factory for a fixed set of MCP servers.

The factory validates the server configs it is given, then hands out one
shared, connected client per server id. Clients are created on first use
and closed together when the factory is closed.
"""

from contextlib import nullcontext
from types import TracebackType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Type,
    Union,
)

import anyio
from opentelemetry.trace import Status, StatusCode

from mcpconnector.client import Client, McpClient
from mcpconnector.config import ClientOptions, ServerConfig
from mcpconnector.errors import (
    ConfigurationError,
    DisposalError,
    RegistryClosedError,
)
from mcpconnector.telemetry import get_telemetry
from mcpconnector.transport.protocol import ClientTransport
from mcpconnector.transport.registry import (
    TransportFactoryRegistry,
    default_transport_registry,
)

TransportFactoryMethod = Callable[[ServerConfig], ClientTransport]
ClientFactoryMethod = Callable[[ClientTransport, ServerConfig, ClientOptions], Client]


class _PendingClient:
    """Single-assignment result of one client construction attempt."""

    def __init__(self):
        self.scope = anyio.CancelScope(shield=True)
        self.transport: Optional[ClientTransport] = None
        self.client: Optional[Client] = None
        self.error: Optional[BaseException] = None
        self.abandoned = False
        self._settled = anyio.Event()

    @property
    def settled(self) -> bool:
        return self._settled.is_set()

    def set_result(self, transport: ClientTransport, client: Client) -> None:
        self.transport = transport
        self.client = client
        self._settled.set()

    def set_exception(self, error: BaseException) -> None:
        self.error = error
        self._settled.set()

    def abandon(self, server_id: str) -> None:
        """Settle an attempt whose owning task was cancelled outside its scope."""
        self.abandoned = True
        self.set_exception(
            RegistryClosedError(f"Connection attempt to '{server_id}' was abandoned")
        )

    async def wait_settled(self) -> None:
        await self._settled.wait()

    def result(self) -> Client:
        if self.error is not None:
            raise self.error
        return self.client


def _validate_server_configs(
    server_configs: Union[Iterable[ServerConfig], Mapping[str, ServerConfig]],
) -> Dict[str, ServerConfig]:
    """Index server configs by id, rejecting empty and duplicate ids."""
    if isinstance(server_configs, Mapping):
        for key, config in server_configs.items():
            if key != config.id:
                raise ConfigurationError(
                    f"Server config keyed '{key}' has id '{config.id}'"
                )
        server_configs = server_configs.values()

    configs: Dict[str, ServerConfig] = {}
    for config in server_configs:
        if not config.id:
            raise ConfigurationError(
                f"Server config '{config.name}' has an empty id"
            )
        if config.id in configs:
            raise ConfigurationError(f"Duplicate server id: '{config.id}'")
        configs[config.id] = config
    return configs


class McpClientFactory:
    """
    Hands out one shared, connected client per configured server.

    The first ``get_client`` call for a server id builds its transport,
    builds a client on top of it and connects the client. Concurrent
    callers for the same id wait for that single attempt. A successful
    client is returned to every later caller; a failed attempt is
    forgotten so that the next call tries again.

    Example:
        async with McpClientFactory(configs, options) as factory:
            client = await factory.get_client("everything")
    """

    def __init__(
        self,
        server_configs: Union[Iterable[ServerConfig], Mapping[str, ServerConfig]],
        client_options: ClientOptions,
        logger: Optional[Any] = None,
        transport_factory_method: Optional[TransportFactoryMethod] = None,
        client_factory_method: Optional[ClientFactoryMethod] = None,
        transport_registry: Optional[TransportFactoryRegistry] = None,
        enable_telemetry: bool = True,
    ):
        """Initialize the factory.

        Args:
            server_configs: The servers clients can be requested for.
            client_options: Options shared by every client.
            logger: Logger with ``debug``/``info``/``warning``/``error``
                methods taking an event name and keyword context. Defaults
                to the structlog-backed telemetry logger.
            transport_factory_method: Builds a transport for a server
                config. Defaults to ``transport_registry.create_transport``.
            client_factory_method: Builds a client from a transport, server
                config and client options. Defaults to ``McpClient``.
            transport_registry: Transport kinds available to the default
                transport factory method.
            enable_telemetry: Whether to log and trace.

        Raises:
            ConfigurationError: If a server id is empty or used twice, or a
                mapping key differs from the id of its config.
        """
        self._server_configs = _validate_server_configs(server_configs)
        self._client_options = client_options
        self._enable_telemetry = enable_telemetry
        self._transport_registry = transport_registry or default_transport_registry()

        self.transport_factory_method: TransportFactoryMethod = (
            transport_factory_method or self._transport_registry.create_transport
        )
        self.client_factory_method: ClientFactoryMethod = (
            client_factory_method or self._create_client
        )

        self._tracer, self._logger = (
            get_telemetry("mcpconnector.factory") if enable_telemetry else (None, None)
        )
        if logger is not None:
            self._logger = logger

        self._entries: Dict[str, _PendingClient] = {}
        self._closed = False

    @property
    def server_ids(self) -> List[str]:
        return list(self._server_configs)

    @property
    def closed(self) -> bool:
        return self._closed

    def get_server_config(self, server_id: str) -> ServerConfig:
        """Get the config of a server.

        Raises:
            ConfigurationError: If no server has this id.
        """
        try:
            return self._server_configs[server_id]
        except KeyError:
            raise ConfigurationError(f"Server with id '{server_id}' not found") from None

    def is_connected(self, server_id: str) -> bool:
        """Whether a client for this server has been created successfully."""
        entry = self._entries.get(server_id)
        return entry is not None and entry.settled and entry.error is None

    def _create_client(
        self, transport: ClientTransport, config: ServerConfig, options: ClientOptions
    ) -> McpClient:
        return McpClient(transport, config, options, enable_telemetry=self._enable_telemetry)

    async def get_client(self, server_id: str) -> Client:
        """Get the connected client for a server, creating it on first use.

        Cancelling a caller that waits on another caller's attempt only
        stops that caller's wait. The caller that started the attempt
        waits for it to finish, so that other waiters are not starved.
        If that caller's task is cancelled natively, as ``Task.cancel()``
        and ``asyncio.wait_for()`` do, the attempt is abandoned and a
        waiting caller starts a new one.

        Args:
            server_id: The id of a configured server.

        Returns:
            The client for this server, the same instance on every call.

        Raises:
            RegistryClosedError: If the factory has been closed.
            ConfigurationError: If no server has this id or its transport
                type is not supported.
            OptionFormatError: If a transport option cannot be parsed.
            Exception: Whatever the transport or client raised while
                connecting.
        """
        while True:
            if self._closed:
                raise RegistryClosedError("Client factory has been closed")
            config = self.get_server_config(server_id)

            # No await between the lookup and the insert
            entry = self._entries.get(server_id)
            if entry is None:
                entry = _PendingClient()
                self._entries[server_id] = entry
                return await self._construct(config, entry)

            await entry.wait_settled()
            # An abandoned attempt is not a failure of this call
            if entry.abandoned and not self._closed:
                continue
            return entry.result()

    async def _construct(self, config: ServerConfig, entry: _PendingClient) -> Client:
        transport: Optional[ClientTransport] = None
        client: Optional[Client] = None
        error: Optional[BaseException] = None

        if self._logger:
            self._logger.info(
                "client.connecting",
                server_id=config.id,
                transport_type=config.transport_type,
            )

        span_cm = (
            self._tracer.start_as_current_span(
                "mcpconnector.connect",
                attributes={
                    "server.id": config.id,
                    "transport.type": config.transport_type,
                },
            )
            if self._tracer
            else nullcontext()
        )

        released = False
        try:
            with entry.scope:
                with span_cm as span:
                    try:
                        transport = self.transport_factory_method(config)
                        client = self.client_factory_method(
                            transport, config, self._client_options
                        )
                        await client.connect()
                    except Exception as e:
                        error = e
                        if span is not None:
                            span.record_exception(e)
                            span.set_status(Status(StatusCode.ERROR, str(e)))

            if error is None and (entry.scope.cancelled_caught or self._closed):
                error = RegistryClosedError(
                    f"Client factory was closed while connecting to '{config.id}'"
                )

            if error is None:
                entry.set_result(transport, client)
                if self._logger:
                    self._logger.info("client.connected", server_id=config.id)
                return client

            if self._logger:
                self._logger.error(
                    "client.connect_failed",
                    server_id=config.id,
                    error=str(error),
                    error_type=type(error).__name__,
                )

            self._forget(config.id, entry)
            released = True
            await self._discard(config.id, transport, client)
            entry.set_exception(error)
            raise error
        finally:
            # Task.cancel() and asyncio.wait_for() cancel through the shield
            if not entry.settled:
                self._forget(config.id, entry)
                if self._logger:
                    self._logger.warning("client.connect_abandoned", server_id=config.id)
                try:
                    if not released:
                        await self._discard(config.id, transport, client)
                finally:
                    entry.abandon(config.id)

    def _forget(self, server_id: str, entry: _PendingClient) -> None:
        if self._entries.get(server_id) is entry:
            del self._entries[server_id]

    async def _release(self, transport: Optional[ClientTransport], client: Optional[Client]) -> None:
        if client is not None:
            await client.aclose()
        if transport is not None and transport.is_connected:
            await transport.disconnect()

    async def _discard(
        self, server_id: str, transport: Optional[ClientTransport], client: Optional[Client]
    ) -> None:
        """Release what a failed attempt built; the attempt's error wins."""
        with anyio.CancelScope(shield=True):
            try:
                await self._release(transport, client)
            except Exception as e:
                if self._logger:
                    self._logger.warning(
                        "client.cleanup_failed",
                        server_id=server_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )

    async def aclose(self) -> None:
        """Close every client the factory has created.

        In-flight connection attempts are cancelled. Every client is closed
        even if closing another one fails.

        Raises:
            DisposalError: If any client failed to close, carrying every error.
        """
        if self._closed:
            return
        self._closed = True

        entries = list(self._entries.items())
        if self._logger:
            self._logger.info("factory.closing", client_count=len(entries))

        for _, entry in entries:
            if not entry.settled:
                entry.scope.cancel()

        errors: List[BaseException] = []
        with anyio.CancelScope(shield=True):
            for server_id, entry in entries:
                await entry.wait_settled()
                if entry.error is not None:
                    continue
                try:
                    await self._release(entry.transport, entry.client)
                except Exception as e:
                    errors.append(e)
                    if self._logger:
                        self._logger.error(
                            "client.close_error",
                            server_id=server_id,
                            error=str(e),
                            error_type=type(e).__name__,
                        )
        self._entries.clear()

        if errors:
            raise DisposalError(f"Failed to close {len(errors)} client(s)", errors)

        if self._logger:
            self._logger.info("factory.closed")

    async def __aenter__(self) -> "McpClientFactory":
        """Enter the async context."""
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Exit the async context, closing all clients."""
        await self.aclose()
