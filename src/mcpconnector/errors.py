"""
Error hierarchy for mcpconnector.

Configuration mistakes are raised eagerly where they are detected; errors
coming from transports and clients are propagated unchanged.
"""

from typing import List, Optional


class ConnectorError(Exception):
    """Base class for all mcpconnector errors."""


class ConfigurationError(ConnectorError, ValueError):
    """Raised for invalid server configurations or unknown server ids."""


class OptionFormatError(ConnectorError, ValueError):
    """Raised when a transport option value cannot be parsed."""

    def __init__(self, key: str, value: str, expected: str):
        super().__init__(
            f"Invalid value {value!r} for transport option '{key}': expected {expected}"
        )
        self.key = key
        self.value = value
        self.expected = expected


class RegistryClosedError(ConnectorError):
    """Raised when a client is requested from a closed factory."""


class DisposalError(ConnectorError):
    """Raised when one or more clients failed to close cleanly."""

    def __init__(self, message: str, errors: Optional[List[BaseException]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class TimeoutError(ConnectorError):
    """Raised when waiting for a client or a handshake takes too long."""


class ProtocolError(ConnectorError):
    """Raised when a server answers with an error or an unexpected message."""

    def __init__(self, message: str, code: Optional[int] = None, data=None):
        super().__init__(message)
        self.code = code
        self.data = data
