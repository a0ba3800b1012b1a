"""Outbound message channel: publisher protocol and WebSocket implementation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any, Protocol

import aiohttp

from pymappy.exceptions import MappyTransportError, TransportUnavailableError

_logger = logging.getLogger(__name__)

MessageHandler = Callable[[str], None]


class Publisher(Protocol):
    """Structural publisher interface used by the emitter.

    ``send`` is fire-and-forget: no acknowledgement, never raises for a
    missing connection. Having a protocol here makes it easy to pass test
    doubles while keeping the production implementations concrete.
    """

    @property
    def connected(self) -> bool:
        ...

    def send(self, text: str) -> None:
        ...

    def on_message(self, handler: MessageHandler) -> None:
        ...


class WebSocketPublisher:
    """aiohttp WebSocket publisher.

    Outbound frames are queued and written by a background task so
    :meth:`send` never blocks the polling loop. Inbound text frames are
    logged and dispatched to registered handlers.

    Usage::

        async with WebSocketPublisher("wss://example/socket") as publisher:
            publisher.send("PLAYER_NAME::Warrior")
    """

    def __init__(
        self,
        url: str,
        *,
        session: aiohttp.ClientSession | None = None,
        heartbeat: float | None = 30.0,
        max_queue: int = 1000,
    ) -> None:
        self._url = url
        self._external_session = session is not None
        self._http = session
        self._heartbeat = heartbeat
        self._max_queue = max_queue
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._queue: asyncio.Queue[str] | None = None
        self._writer: asyncio.Task[None] | None = None
        self._reader: asyncio.Task[None] | None = None
        self._handlers: list[MessageHandler] = []
        self._dropped = 0

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> WebSocketPublisher:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def url(self) -> str:
        return self._url

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    @property
    def dropped(self) -> int:
        """Number of messages dropped because the channel was unavailable."""
        return self._dropped

    def on_message(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    async def connect(self) -> None:
        """Open the socket and start the writer/reader tasks."""
        if self.connected:
            return
        if self._http is None:
            self._http = aiohttp.ClientSession()
        _logger.info("Connecting to WebSocket %s", self._url)
        try:
            self._ws = await self._http.ws_connect(self._url, heartbeat=self._heartbeat)
        except (aiohttp.ClientError, OSError) as exc:
            if not self._external_session:
                await self._http.close()
                self._http = None
            raise MappyTransportError(f"WebSocket connect to {self._url} failed: {exc}", endpoint=self._url) from exc
        _logger.info("Connection to WebSocket successful")

        self._queue = asyncio.Queue(maxsize=self._max_queue)
        self._writer = asyncio.create_task(self._write_loop(self._ws, self._queue))
        self._reader = asyncio.create_task(self._read_loop(self._ws))

    def send(self, text: str) -> None:
        """Queue *text* for delivery; dropped when not connected."""
        queue = self._queue
        if queue is None or not self.connected:
            self._dropped += 1
            _logger.debug("WebSocket not connected, dropping message %s", text)
            return
        try:
            queue.put_nowait(text)
        except asyncio.QueueFull:
            self._dropped += 1
            _logger.warning("WebSocket send queue full, dropping message %s", text)

    async def close(self) -> None:
        """Stop background tasks and close the socket (and owned session)."""
        for task in (self._writer, self._reader):
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._writer = None
        self._reader = None
        self._queue = None

        ws = self._ws
        self._ws = None
        if ws is not None and not ws.closed:
            await ws.close()
            _logger.debug("WebSocket closed")

        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    async def _write_loop(self, ws: aiohttp.ClientWebSocketResponse, queue: asyncio.Queue[str]) -> None:
        while True:
            text = await queue.get()
            try:
                await ws.send_str(text)
            except (aiohttp.ClientError, ConnectionError, RuntimeError):
                self._dropped += 1
                _logger.debug("WebSocket send failed, dropping message %s", text, exc_info=True)
            finally:
                queue.task_done()

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                _logger.info("WS Message: %s", msg.data)
                self._dispatch(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                _logger.warning("WebSocket error: %s", ws.exception())
                break
        _logger.debug("WebSocket reader finished close_code=%s", ws.close_code)

    def _dispatch(self, text: str) -> None:
        for handler in self._handlers:
            try:
                handler(text)
            except Exception:
                _logger.debug("Inbound message handler failed", exc_info=True)

    async def flush(self) -> None:
        """Wait until every queued message has been handed to the socket."""
        if self._queue is None or not self.connected:
            raise TransportUnavailableError("WebSocket is not connected", endpoint=self._url)
        await self._queue.join()
