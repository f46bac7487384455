"""
mcpconnector: shared, lazily connected MCP clients for a static set of servers.
"""

from mcpconnector.client import Client, McpClient
from mcpconnector.config import (
    ClientInfo,
    ClientOptions,
    ServerConfig,
    TransportTypes,
    load_server_configs,
)
from mcpconnector.errors import (
    ConfigurationError,
    ConnectorError,
    DisposalError,
    OptionFormatError,
    ProtocolError,
    RegistryClosedError,
    TimeoutError,
)
from mcpconnector.factory import McpClientFactory

__version__ = "0.1.0"

__all__ = [
    "McpClientFactory",
    "McpClient",
    "Client",
    "ServerConfig",
    "ClientInfo",
    "ClientOptions",
    "TransportTypes",
    "load_server_configs",
    "ConnectorError",
    "ConfigurationError",
    "OptionFormatError",
    "RegistryClosedError",
    "DisposalError",
    "ProtocolError",
    "TimeoutError",
]
