"""
Telemetry module for mcpconnector.

This module provides observability for mcpconnector: tracing through
OpenTelemetry and structured logging through structlog.
"""

from mcpconnector.telemetry.config import configure_telemetry
from mcpconnector.telemetry.facade import LoggingFacade, TracingFacade


def get_telemetry(name: str) -> tuple:
    """
    Get tracer and logger instances for the given name.

    Args:
        name: The name to use for the tracer and logger

    Returns:
        A tuple containing a tracer and logger
    """
    return TracingFacade(name), LoggingFacade(name)


__all__ = [
    "LoggingFacade",
    "TracingFacade",
    "configure_telemetry",
    "get_telemetry",
]
