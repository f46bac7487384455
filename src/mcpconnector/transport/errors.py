"""
Error hierarchy for the transport layer.

These errors are raised by the stdio and SSE transports and pass through
the client factory untouched.
"""


class TransportError(Exception):
    """Base class for all transport-related errors."""


class ConnectionError(TransportError):
    """Error indicating a connection problem."""


class ConnectionTimeoutError(ConnectionError):
    """Error indicating a connection timeout."""


class ConnectionRefusedError(ConnectionError):
    """Error indicating the remote end refused or dropped the connection."""


class MessageError(TransportError):
    """Error related to message handling."""


class SerializationError(MessageError):
    """Error during message serialization."""


class DeserializationError(MessageError):
    """Error during message deserialization."""
