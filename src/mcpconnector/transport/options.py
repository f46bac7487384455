"""
Typed transport options.

Server configs carry their transport settings as a flat mapping of
strings. The functions here turn that mapping into the options record of
the matching transport, filling in defaults for missing keys. Unknown keys
are ignored.
"""

import re
import shlex
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Mapping, Optional, Union

from mcpconnector.config import TransportTypes
from mcpconnector.errors import ConfigurationError, OptionFormatError

HEADER_PREFIX = "header."
ENV_PREFIX = "env."

_INTEGER = re.compile(r"\+?\d+", re.ASCII)


@dataclass(frozen=True)
class StdioTransportOptions:
    """Options for a server spawned as a local process."""

    command: str
    arguments: List[str] = field(default_factory=list)
    working_directory: Optional[str] = None
    environment: Optional[Dict[str, str]] = None
    shutdown_timeout: timedelta = timedelta(seconds=5)


@dataclass(frozen=True)
class SseTransportOptions:
    """Options for a server reached over a server-sent-event stream.

    ``additional_headers`` is None when the server config names no
    ``header.*`` options, which is distinct from an empty mapping.
    """

    connection_timeout: timedelta = timedelta(seconds=30)
    max_reconnect_attempts: int = 3
    reconnect_delay: timedelta = timedelta(seconds=5)
    additional_headers: Optional[Dict[str, str]] = None


TransportOptions = Union[StdioTransportOptions, SseTransportOptions]


def parse_int(options: Mapping[str, str], key: str, default: int) -> int:
    """Read a non-negative decimal integer option.

    Raises:
        OptionFormatError: If the key is present but not a non-negative integer
    """
    value = options.get(key)
    if value is None:
        return default
    text = value.strip()
    if not _INTEGER.fullmatch(text):
        raise OptionFormatError(key, value, "a non-negative integer")
    return int(text)


def parse_seconds(options: Mapping[str, str], key: str, default: timedelta) -> timedelta:
    """Read an option holding a whole number of seconds."""
    value = options.get(key)
    if value is None:
        return default
    return timedelta(seconds=parse_int(options, key, 0))


def _prefixed(options: Mapping[str, str], prefix: str) -> Optional[Dict[str, str]]:
    found = {
        key[len(prefix):]: value
        for key, value in options.items()
        if key.startswith(prefix)
    }
    return found or None


def resolve_stdio_options(
    command: str, options: Optional[Mapping[str, str]] = None
) -> StdioTransportOptions:
    """Resolve options for the stdio transport.

    Args:
        command: The executable to spawn
        options: ``arguments`` (a shell-style string), ``workingDirectory``,
            ``shutdownTimeout`` (seconds) and ``env.<NAME>`` keys

    Returns:
        The resolved options
    """
    options = options or {}
    arguments = options.get("arguments")
    try:
        argv = shlex.split(arguments) if arguments else []
    except ValueError as e:
        raise OptionFormatError("arguments", arguments, f"a shell-style argument string ({e})") from e

    return StdioTransportOptions(
        command=command,
        arguments=argv,
        working_directory=options.get("workingDirectory") or None,
        environment=_prefixed(options, ENV_PREFIX),
        shutdown_timeout=parse_seconds(
            options, "shutdownTimeout", StdioTransportOptions.shutdown_timeout
        ),
    )


def resolve_sse_options(options: Optional[Mapping[str, str]] = None) -> SseTransportOptions:
    """Resolve options for the SSE transport.

    Args:
        options: ``connectionTimeout`` and ``reconnectDelay`` (seconds),
            ``maxReconnectAttempts`` and ``header.<name>`` keys

    Returns:
        The resolved options
    """
    options = options or {}
    defaults = SseTransportOptions()
    return SseTransportOptions(
        connection_timeout=parse_seconds(
            options, "connectionTimeout", defaults.connection_timeout
        ),
        max_reconnect_attempts=parse_int(
            options, "maxReconnectAttempts", defaults.max_reconnect_attempts
        ),
        reconnect_delay=parse_seconds(options, "reconnectDelay", defaults.reconnect_delay),
        additional_headers=_prefixed(options, HEADER_PREFIX),
    )


def resolve_transport_options(
    transport_type: str, location: str, options: Optional[Mapping[str, str]] = None
) -> TransportOptions:
    """Resolve the options record for a transport kind.

    Raises:
        ConfigurationError: If the transport kind is not known
        OptionFormatError: If an option value cannot be parsed
    """
    if transport_type == TransportTypes.STDIO:
        return resolve_stdio_options(location, options)
    if transport_type == TransportTypes.SSE:
        return resolve_sse_options(options)
    raise ConfigurationError(f"Unsupported transport type: {transport_type}")
