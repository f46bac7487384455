"""
Tests for the error hierarchy.
"""

import pytest

from mcpconnector.errors import (
    ConfigurationError,
    ConnectorError,
    DisposalError,
    OptionFormatError,
    ProtocolError,
    RegistryClosedError,
    TimeoutError,
)
from mcpconnector.transport.errors import (
    ConnectionError,
    ConnectionRefusedError,
    ConnectionTimeoutError,
    DeserializationError,
    MessageError,
    SerializationError,
    TransportError,
)


def test_error_hierarchy():
    """Test that the error hierarchy is correctly implemented."""
    for error_class in (
        ConfigurationError,
        OptionFormatError,
        RegistryClosedError,
        DisposalError,
        TimeoutError,
        ProtocolError,
    ):
        assert issubclass(error_class, ConnectorError)

    # Caller mistakes are also ValueErrors, but they are distinct kinds
    assert issubclass(ConfigurationError, ValueError)
    assert issubclass(OptionFormatError, ValueError)
    assert not issubclass(OptionFormatError, ConfigurationError)


def test_transport_error_hierarchy():
    """Test the transport error hierarchy."""
    assert issubclass(ConnectionError, TransportError)
    assert issubclass(ConnectionTimeoutError, ConnectionError)
    assert issubclass(ConnectionRefusedError, ConnectionError)
    assert issubclass(MessageError, TransportError)
    assert issubclass(SerializationError, MessageError)
    assert issubclass(DeserializationError, MessageError)


def test_option_format_error():
    """Test that the format error names the offending key."""
    error = OptionFormatError("connectionTimeout", "soon", "a non-negative integer")
    assert error.key == "connectionTimeout"
    assert error.value == "soon"
    assert "connectionTimeout" in str(error)
    assert "'soon'" in str(error)


def test_disposal_error_carries_errors():
    """Test that teardown failures are kept."""
    failures = [RuntimeError("a"), OSError("b")]
    error = DisposalError("Failed to close 2 client(s)", failures)
    assert error.errors == failures
    assert DisposalError("nothing").errors == []


def test_protocol_error():
    """Test the protocol error attributes."""
    error = ProtocolError("Method not found", code=-32601, data={"method": "x"})
    assert str(error) == "Method not found"
    assert error.code == -32601
    assert error.data == {"method": "x"}


def test_error_handling():
    """Test catching errors through their parents."""
    try:
        raise ConnectionTimeoutError("Connection timed out after 30s")
    except ConnectionError as e:
        assert "timed out" in str(e)
    except TransportError:
        pytest.fail("ConnectionTimeoutError should be caught by ConnectionError")
