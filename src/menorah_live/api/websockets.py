"""
WebSocket connection management for the live display clients.

Every connected display receives every published event; there is no
per-client filtering and no replay of events sent before the client joined.

Each client has its own bounded outbound queue drained by a dedicated task,
so publishing never waits on a peer. A client whose queue overflows is
treated as stalled and dropped.
"""

import asyncio
import json
import logging
from typing import Any
from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 100


class _Subscriber:
    def __init__(self, websocket: WebSocket, max_pending: int):
        self.websocket = websocket
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_pending)
        self.sender: asyncio.Task | None = None

    def stop(self) -> None:
        if self.sender is not None and not self.sender.done():
            self.sender.cancel()


class SubscriberHub:
    """Tracks connected WebSocket clients and fans messages out to all of them."""

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING) -> None:
        self.max_pending = max_pending
        self._subscribers: list[_Subscriber] = []
        self._connection_lock = asyncio.Lock()

    async def subscribe(self, websocket: WebSocket) -> None:
        subscriber = _Subscriber(websocket, self.max_pending)
        subscriber.sender = asyncio.create_task(self._drain(subscriber))
        async with self._connection_lock:
            self._subscribers.append(subscriber)
            logger.info(f"Display client connected. Total connections: {len(self._subscribers)}")

    async def unsubscribe(self, websocket: WebSocket) -> None:
        async with self._connection_lock:
            subscriber = next((s for s in self._subscribers if s.websocket is websocket), None)
            if subscriber is None:
                return
            self._subscribers.remove(subscriber)
            logger.info(f"Display client disconnected. Remaining connections: {len(self._subscribers)}")
        subscriber.stop()

    def join(self, websocket: WebSocket, room: str | None) -> None:
        # Rooms are informational only, every client gets every event
        client = getattr(websocket, "client", None)
        logger.info(f"Client {client} joined room: {room}")

    async def broadcast(self, message: dict[str, Any]) -> int:
        """
        Queues ``message`` for every connected client and returns immediately.

        Returns the number of clients it was queued for. Clients whose queue
        is full are dropped from the hub.
        """
        text = json.dumps(message)
        stalled: list[_Subscriber] = []

        async with self._connection_lock:
            if not self._subscribers:
                logger.debug("No display clients connected, nothing to broadcast")
                return 0

            for subscriber in self._subscribers:
                try:
                    subscriber.queue.put_nowait(text)
                except asyncio.QueueFull:
                    stalled.append(subscriber)
            for subscriber in stalled:
                self._subscribers.remove(subscriber)
            queued = len(self._subscribers)

        for subscriber in stalled:
            logger.warning(f"Dropping stalled display client with {self.max_pending} pending events")
            subscriber.stop()

        logger.debug(f"Broadcast {message.get('type')} queued for {queued}/{queued + len(stalled)} clients")
        return queued

    @property
    def connection_count(self) -> int:
        return len(self._subscribers)

    async def _drain(self, subscriber: _Subscriber) -> None:
        try:
            while True:
                text = await subscriber.queue.get()
                await subscriber.websocket.send_text(text)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"Error sending to display client: {e}")

        async with self._connection_lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)
