"""
Facades over OpenTelemetry tracing and structlog logging.

Components ask for a tracer and a logger by name and use them without
caring how telemetry has been configured.
"""

from typing import Any, Dict, Optional

import structlog
from opentelemetry import trace


class TracingFacade:
    """Named tracer used by mcpconnector components."""

    def __init__(self, name: str):
        """
        Initialize a new tracing facade.

        Args:
            name: The name of the tracer
        """
        self.name = name
        self.tracer = trace.get_tracer(name)

    def start_as_current_span(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        """
        Start a new span and make it the current span.

        Args:
            name: The name of the span
            attributes: Optional attributes to set on the span

        Returns:
            A context manager yielding the span
        """
        return self.tracer.start_as_current_span(name, attributes=attributes)


class LoggingFacade:
    """Named structured logger used by mcpconnector components."""

    def __init__(self, name: str):
        """
        Initialize a new logging facade.

        Args:
            name: The name of the logger
        """
        self.name = name
        self.logger = structlog.get_logger(name)

    def debug(self, event: str, **kwargs: Any) -> None:
        self.logger.debug(event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self.logger.info(event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self.logger.warning(event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self.logger.error(event, **kwargs)
