"""
Configuration types for mcpconnector.

Server descriptors, the client identity shared by every connection, and
the environment lookup used for process-wide defaults.
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from mcpconnector.errors import ConfigurationError

ENV_PREFIX = "MCPCONNECTOR_"

DEFAULT_PROTOCOL_VERSION = "2024-11-05"


def get_env_config(key: str) -> Optional[str]:
    """Get a configuration value from the environment.

    Args:
        key: The configuration key, e.g. ``initialization_timeout``

    Returns:
        The value of ``MCPCONNECTOR_<KEY>``, or None if it is not set
    """
    return os.environ.get(f"{ENV_PREFIX}{key.upper()}")


class TransportTypes:
    """Transport kinds understood by the default transport registry."""

    STDIO = "stdio"
    SSE = "sse"


@dataclass(frozen=True)
class ServerConfig:
    """Static description of one MCP server and how to reach it.

    Attributes:
        id: Unique identifier used to request the client
        name: Human readable name
        transport_type: Transport kind, compared as an exact string
        location: Executable path for stdio, URL for sse
        transport_options: Free-form string options for the transport
    """

    id: str
    name: str
    transport_type: str
    location: str
    transport_options: Optional[Mapping[str, str]] = None

    def __post_init__(self):
        if self.transport_options is not None:
            object.__setattr__(
                self, "transport_options", MappingProxyType(dict(self.transport_options))
            )

    def __hash__(self) -> int:
        options = self.transport_options
        return hash(
            (
                self.id,
                self.name,
                self.transport_type,
                self.location,
                None if options is None else frozenset(options.items()),
            )
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServerConfig":
        """Build a server config from a decoded JSON object.

        Both ``transportType``/``transportOptions`` and their snake_case
        spellings are accepted.
        """
        try:
            server_id = data["id"]
        except KeyError:
            raise ConfigurationError("Server configuration is missing 'id'") from None

        transport_type = data.get("transportType", data.get("transport_type"))
        if transport_type is None:
            raise ConfigurationError(
                f"Server configuration '{server_id}' is missing 'transportType'"
            )

        options = data.get("transportOptions", data.get("transport_options"))
        if options is not None:
            options = {str(k): str(v) for k, v in options.items()}

        return cls(
            id=str(server_id),
            name=str(data.get("name", server_id)),
            transport_type=str(transport_type),
            location=str(data.get("location", "")),
            transport_options=options,
        )


def load_server_configs(
    source: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]],
) -> List[ServerConfig]:
    """Load server configs from a ``{"servers": [...]}`` document or a list."""
    if isinstance(source, Mapping):
        if "servers" not in source:
            raise ConfigurationError("Configuration document has no 'servers' entry")
        source = source["servers"]
    return [ServerConfig.from_dict(item) for item in source]


@dataclass(frozen=True)
class ClientInfo:
    """Name and version the client reports to every server."""

    name: str
    version: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "version": self.version}


@dataclass
class ClientOptions:
    """Options shared by every client a factory creates.

    Attributes:
        client_info: The identity reported during initialization
        protocol_version: The protocol version to request
        capabilities: Client capabilities sent with ``initialize``
        initialization_timeout: Seconds to wait for the handshake. When
            None, ``MCPCONNECTOR_INITIALIZATION_TIMEOUT`` or 60 is used.
    """

    client_info: ClientInfo
    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    capabilities: Dict[str, Any] = field(default_factory=dict)
    initialization_timeout: Optional[float] = None
