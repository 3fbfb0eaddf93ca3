from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict

import socketio
from fastapi import WebSocket
from loguru import logger


@dataclass
class LiveEvent:
    type: str
    payload: Dict[str, Any]


EventSink = Callable[[LiveEvent], Awaitable[None]]


class LiveUpdateHub:
    """Fans engine events out to WebSocket and Socket.IO listeners."""

    def __init__(self, sio_server: socketio.AsyncServer) -> None:
        self.sio = sio_server
        self.websockets: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.websockets.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self.websockets.discard(websocket)

    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        message = {"event": event, "payload": payload}
        stale = []
        for connection in self.websockets:
            try:
                await connection.send_json(message)
            except Exception as exc:
                logger.debug("Dropping stale websocket: {}", exc)
                stale.append(connection)
        for connection in stale:
            self.disconnect(connection)
        await self.sio.emit(event, payload)

    async def publish(self, event: LiveEvent) -> None:
        await self.notify(event.type, event.payload)


sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins="*")
hub = LiveUpdateHub(sio)


def get_event_sink() -> EventSink:
    return hub.publish
