"""
Transport for servers reached over a server-sent-event stream.

The client opens a long-lived GET request on the server URL. The server
first sends an ``endpoint`` event naming the URL that client messages are
POSTed to, then delivers its own messages as ``message`` events.
"""

import json
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import AsyncExitStack
from typing import Any, Dict, Optional, Tuple

import anyio
import httpx
import structlog

from mcpconnector.transport.errors import (
    ConnectionError,
    ConnectionRefusedError,
    ConnectionTimeoutError,
    DeserializationError,
    SerializationError,
)
from mcpconnector.transport.options import SseTransportOptions

logger = structlog.get_logger(__name__)


class SseClientTransport:
    """Client transport over an HTTP server-sent-event stream."""

    def __init__(
        self,
        url: str,
        options: Optional[SseTransportOptions] = None,
        name: str = "",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the transport.

        Args:
            url: The SSE endpoint of the server
            options: The resolved SSE options, defaults if omitted
            name: Server name, used in error messages
            http_client: Optional client to use instead of creating one.
                A client passed in is not closed by the transport.
        """
        self.url = url
        self.options = options or SseTransportOptions()
        self.name = name or url
        self._http_client = http_client
        self._owns_client = http_client is None
        self._stack: Optional[AsyncExitStack] = None
        self._events: Optional[AsyncGenerator[Tuple[str, str], None]] = None
        self._endpoint: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self._endpoint is not None

    @property
    def endpoint(self) -> Optional[str]:
        """The URL messages are posted to, known once connected."""
        return self._endpoint

    def _headers(self, accept: str) -> Dict[str, str]:
        headers = {"Accept": accept}
        if self.options.additional_headers:
            headers.update(self.options.additional_headers)
        return headers

    async def connect(self) -> None:
        """Open the event stream, retrying up to ``max_reconnect_attempts`` times.

        ``max_reconnect_attempts`` is the total number of attempts made by
        this call, including the first, and never less than one. A stream
        that drops after connecting is not reopened; the next ``connect``
        call starts over.

        Raises:
            ConnectionTimeoutError: If no endpoint event arrives in time
            ConnectionError: If every attempt fails
        """
        if self.is_connected:
            return

        attempts = max(1, self.options.max_reconnect_attempts)
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                await self._open_stream()
                return
            except (httpx.HTTPError, ConnectionError) as e:
                last_error = e
                await self._close_stream()
                logger.warning(
                    "sse.connect_failed",
                    server=self.name,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    error=str(e),
                )
                if attempt < attempts - 1:
                    await anyio.sleep(self.options.reconnect_delay.total_seconds())

        if isinstance(last_error, ConnectionError):
            raise last_error
        raise ConnectionError(
            f"Failed to connect to '{self.name}' after {attempts} attempts: {last_error}"
        ) from last_error

    async def _open_stream(self) -> None:
        timeout = self.options.connection_timeout.total_seconds()
        self._stack = AsyncExitStack()
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout, read=None))
        client = self._http_client

        try:
            with anyio.fail_after(timeout):
                response = await self._stack.enter_async_context(
                    client.stream("GET", self.url, headers=self._headers("text/event-stream"))
                )
                if response.status_code >= 400:
                    raise ConnectionRefusedError(
                        f"Server '{self.name}' answered {response.status_code}"
                    )
                self._events = _iter_events(response)
                async for event, data in self._events:
                    if event == "endpoint":
                        self._endpoint = str(httpx.URL(self.url).join(data.strip()))
                        return
        except TimeoutError as e:
            raise ConnectionTimeoutError(
                f"No endpoint event from '{self.name}' within {timeout:g}s"
            ) from e

        raise ConnectionError(f"Stream from '{self.name}' ended before the endpoint event")

    async def _close_stream(self) -> None:
        stack, self._stack = self._stack, None
        events, self._events = self._events, None
        self._endpoint = None
        # A generator suspended inside a read ends when the response closes
        if events is not None and not events.ag_running:
            await events.aclose()
        if stack is not None:
            await stack.aclose()

    async def disconnect(self) -> None:
        await self._close_stream()
        if self._owns_client and self._http_client is not None:
            client, self._http_client = self._http_client, None
            await client.aclose()

    async def send(self, message: Dict[str, Any]) -> None:
        if not self.is_connected:
            raise ConnectionError(f"Transport for '{self.name}' is not connected")
        try:
            body = json.dumps(message)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize message: {e}") from e

        headers = self._headers("application/json")
        headers["Content-Type"] = "application/json"
        try:
            response = await self._http_client.post(self._endpoint, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise ConnectionError(f"Failed to post message to '{self.name}': {e}") from e
        if response.status_code >= 400:
            raise ConnectionError(
                f"Server '{self.name}' rejected message with status {response.status_code}"
            )

    async def receive(self) -> AsyncIterator[Dict[str, Any]]:
        if self._events is None:
            raise ConnectionError(f"Transport for '{self.name}' is not connected")
        async for event, data in self._events:
            if event != "message":
                continue
            try:
                message = json.loads(data)
            except json.JSONDecodeError as e:
                raise DeserializationError(f"Invalid JSON from '{self.name}': {e}") from e
            yield message

    async def __aenter__(self) -> "SseClientTransport":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()


async def _iter_events(response: httpx.Response) -> AsyncGenerator[Tuple[str, str], None]:
    """Parse a text/event-stream body into ``(event, data)`` pairs."""
    event = "message"
    data = []
    async for line in response.aiter_lines():
        if not line:
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
        elif line.startswith(":"):
            continue
        else:
            name, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if name == "event":
                event = value
            elif name == "data":
                data.append(value)
    if data:
        yield event, "\n".join(data)
