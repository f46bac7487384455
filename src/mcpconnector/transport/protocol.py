"""
Protocol definitions for client transports.

A transport moves JSON-RPC messages (already decoded to dicts) between a
client and one server. Framing and I/O are the transport's business.
"""

from collections.abc import AsyncIterator
from typing import Any, Dict, Protocol, TypeVar, runtime_checkable

T = TypeVar("T", bound="ClientTransport")


@runtime_checkable
class ClientTransport(Protocol):
    """Protocol defining the interface for client transports."""

    @property
    def is_connected(self) -> bool:
        """Whether the transport currently holds an open connection."""
        ...

    async def connect(self) -> None:
        """Establish the connection to the server.

        Raises:
            ConnectionError: If the connection cannot be established.
            ConnectionTimeoutError: If the connection attempt times out.
        """
        ...

    async def disconnect(self) -> None:
        """Close the connection. Calling it on a closed transport is a no-op."""
        ...

    async def send(self, message: Dict[str, Any]) -> None:
        """Send one JSON-RPC message.

        Raises:
            ConnectionError: If the transport is not connected.
            SerializationError: If the message cannot be encoded.
        """
        ...

    def receive(self) -> AsyncIterator[Dict[str, Any]]:
        """Iterate over incoming JSON-RPC messages.

        Raises:
            ConnectionError: If the connection is lost.
            DeserializationError: If an incoming message cannot be decoded.
        """
        ...

    async def __aenter__(self: T) -> T:
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        ...
