"""
Transport for servers spawned as a local process.

Messages are exchanged as newline-delimited JSON over the child's stdin
and stdout.
"""

import json
import os
import subprocess
from collections.abc import AsyncIterator
from typing import Any, Dict, Optional

import anyio
from anyio.abc import Process
from anyio.streams.text import TextReceiveStream

from mcpconnector.transport.errors import (
    ConnectionError,
    DeserializationError,
    SerializationError,
)
from mcpconnector.transport.options import StdioTransportOptions


class StdioClientTransport:
    """Client transport talking to a child process over its standard streams."""

    def __init__(self, options: StdioTransportOptions, name: str = ""):
        """Initialize the transport.

        Args:
            options: The resolved stdio options
            name: Server name, used in error messages
        """
        self.options = options
        self.name = name or options.command
        self._process: Optional[Process] = None
        self._lines: Optional[AsyncIterator[str]] = None
        self._buffer = ""

    @property
    def is_connected(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def connect(self) -> None:
        if self.is_connected:
            return

        env = None
        if self.options.environment:
            env = {**os.environ, **self.options.environment}

        try:
            self._process = await anyio.open_process(
                [self.options.command, *self.options.arguments],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                cwd=self.options.working_directory,
                env=env,
            )
        except OSError as e:
            raise ConnectionError(f"Failed to start server '{self.name}': {e}") from e

        self._buffer = ""
        self._lines = self._read_lines()

    async def disconnect(self) -> None:
        process = self._process
        if process is None:
            return
        self._process = None
        self._lines = None

        # Closing stdin asks a well-behaved server to exit
        if process.stdin is not None:
            try:
                await process.stdin.aclose()
            except (OSError, anyio.BrokenResourceError):
                pass

        with anyio.move_on_after(self.options.shutdown_timeout.total_seconds()):
            await process.wait()
        if process.returncode is None:
            process.kill()
            # Reap the child so it does not linger as a zombie
            with anyio.CancelScope(shield=True):
                await process.wait()

        await process.aclose()

    async def send(self, message: Dict[str, Any]) -> None:
        if not self.is_connected or self._process.stdin is None:
            raise ConnectionError(f"Transport for '{self.name}' is not connected")
        try:
            data = json.dumps(message, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize message: {e}") from e
        try:
            await self._process.stdin.send((data + "\n").encode("utf-8"))
        except (anyio.BrokenResourceError, anyio.ClosedResourceError) as e:
            raise ConnectionError(f"Server '{self.name}' closed its input") from e

    async def receive(self) -> AsyncIterator[Dict[str, Any]]:
        if self._lines is None:
            raise ConnectionError(f"Transport for '{self.name}' is not connected")
        async for line in self._lines:
            if not line.strip():
                continue
            try:
                message = json.loads(line)
            except json.JSONDecodeError as e:
                raise DeserializationError(f"Invalid JSON from '{self.name}': {e}") from e
            if not isinstance(message, dict):
                raise DeserializationError(
                    f"Expected a JSON object from '{self.name}', got {type(message).__name__}"
                )
            yield message

    async def _read_lines(self) -> AsyncIterator[str]:
        stdout = self._process.stdout
        async for chunk in TextReceiveStream(stdout):
            self._buffer += chunk
            while "\n" in self._buffer:
                line, self._buffer = self._buffer.split("\n", 1)
                yield line
        if self._buffer:
            line, self._buffer = self._buffer, ""
            yield line

    async def __aenter__(self) -> "StdioClientTransport":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
