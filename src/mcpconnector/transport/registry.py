"""
Registry for transport factories.

This module maps transport kinds to the callables that build a transport
for a server config, allowing additional kinds to be registered.
"""

from typing import Callable, Dict, List

from mcpconnector.config import ServerConfig, TransportTypes
from mcpconnector.errors import ConfigurationError
from mcpconnector.transport.options import resolve_sse_options, resolve_stdio_options
from mcpconnector.transport.protocol import ClientTransport
from mcpconnector.transport.sse import SseClientTransport
from mcpconnector.transport.stdio import StdioClientTransport

TransportFactory = Callable[[ServerConfig], ClientTransport]


def create_stdio_transport(config: ServerConfig) -> StdioClientTransport:
    """Build a stdio transport; ``config.location`` is the executable."""
    options = resolve_stdio_options(config.location, config.transport_options)
    return StdioClientTransport(options, name=config.name)


def create_sse_transport(config: ServerConfig) -> SseClientTransport:
    """Build an SSE transport; ``config.location`` is the stream URL."""
    options = resolve_sse_options(config.transport_options)
    return SseClientTransport(config.location, options, name=config.name)


class TransportFactoryRegistry:
    """Registry for transport factories."""

    def __init__(self):
        """Initialize a new transport factory registry."""
        self._factories: Dict[str, TransportFactory] = {}

    def register(self, name: str, factory: TransportFactory) -> None:
        """Register a transport factory.

        Args:
            name: The transport kind to register the factory under.
            factory: Callable building a transport from a server config.
        """
        self._factories[name] = factory

    def get(self, name: str) -> TransportFactory:
        """Get a transport factory by name.

        Raises:
            KeyError: If no factory is registered with the given name.
        """
        return self._factories[name]

    def get_registered_names(self) -> List[str]:
        return list(self._factories)

    def create_transport(self, config: ServerConfig) -> ClientTransport:
        """Create a transport for a server config.

        Args:
            config: The server config; its transport type selects the factory.

        Returns:
            A new, unconnected transport instance.

        Raises:
            ConfigurationError: If the transport type is not registered.
            OptionFormatError: If a transport option cannot be parsed.
        """
        try:
            factory = self._factories[config.transport_type]
        except KeyError:
            raise ConfigurationError(
                f"Server '{config.id}' uses unsupported transport type "
                f"'{config.transport_type}'. "
                f"Available types: {', '.join(self._factories)}"
            ) from None
        return factory(config)


def default_transport_registry() -> TransportFactoryRegistry:
    """Return a new registry with the stdio and sse transports registered."""
    registry = TransportFactoryRegistry()
    registry.register(TransportTypes.STDIO, create_stdio_transport)
    registry.register(TransportTypes.SSE, create_sse_transport)
    return registry
