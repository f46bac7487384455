"""
Transport layer for mcpconnector.

This package provides the transports that carry protocol messages between
a client and a server, and the registry that picks one for a server config.
"""

from mcpconnector.transport.errors import (
    ConnectionError,
    ConnectionRefusedError,
    ConnectionTimeoutError,
    DeserializationError,
    MessageError,
    SerializationError,
    TransportError,
)
from mcpconnector.transport.options import (
    SseTransportOptions,
    StdioTransportOptions,
    resolve_sse_options,
    resolve_stdio_options,
    resolve_transport_options,
)
from mcpconnector.transport.protocol import ClientTransport
from mcpconnector.transport.registry import (
    TransportFactoryRegistry,
    default_transport_registry,
)
from mcpconnector.transport.sse import SseClientTransport
from mcpconnector.transport.stdio import StdioClientTransport

__all__ = [
    "ClientTransport",
    "StdioClientTransport",
    "SseClientTransport",
    "StdioTransportOptions",
    "SseTransportOptions",
    "resolve_stdio_options",
    "resolve_sse_options",
    "resolve_transport_options",
    "TransportFactoryRegistry",
    "default_transport_registry",
    "TransportError",
    "ConnectionError",
    "ConnectionTimeoutError",
    "ConnectionRefusedError",
    "MessageError",
    "SerializationError",
    "DeserializationError",
]
