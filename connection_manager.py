from typing import Dict, Iterable, Optional
from uuid import uuid4
import asyncio
import logging

from fastapi import WebSocket

from room_manager import RoomManager

logger = logging.getLogger(__name__)

# Queued in place of a message to tell the writer to close the socket
CLOSE = object()

SESSION_REPLACED_CODE = 4001


class Connection:
    def __init__(self, handle: str):
        self.handle = handle
        self.outbox: asyncio.Queue = asyncio.Queue()
        self.close_reason: Optional[str] = None

    def push(self, event: str, data: dict):
        self.outbox.put_nowait({"event": event, "data": data})


class ConnectionManager:
    """Live connections keyed by handle, with fire-and-forget outbound queues.

    Emitting never awaits: messages are queued per connection and written
    to the socket by `pump`, so callers keep running to completion.
    """

    def __init__(self, rooms: RoomManager):
        self.connections: Dict[str, Connection] = {}
        self._rooms = rooms

    def attach(self, handle: Optional[str] = None) -> Connection:
        handle = handle or uuid4().hex
        connection = Connection(handle)
        self.connections[handle] = connection
        logger.info(f"New connection: {handle}")
        return connection

    def detach(self, handle: str):
        self.connections.pop(handle, None)

    def is_connected(self, handle: str) -> bool:
        return handle in self.connections

    def count(self) -> int:
        return len(self.connections)

    def send(self, handle: str, event: str, data: dict) -> bool:
        connection = self.connections.get(handle)
        if connection is None:
            return False
        connection.push(event, data)
        return True

    def send_many(self, handles: Iterable[str], event: str, data: dict):
        for handle in handles:
            self.send(handle, event, data)

    def send_room(self, room_id: str, event: str, data: dict, exclude: Optional[str] = None):
        for handle in self._rooms.occupants(room_id):
            if handle != exclude:
                self.send(handle, event, data)

    def close(self, handle: str, reason: str = "Session replaced"):
        connection = self.connections.get(handle)
        if connection is None:
            return
        connection.close_reason = reason
        connection.outbox.put_nowait(CLOSE)


async def pump(websocket: WebSocket, connection: Connection):
    """Write queued messages for one connection until closed or the socket fails"""
    while True:
        message = await connection.outbox.get()
        if message is CLOSE:
            try:
                await websocket.close(code=SESSION_REPLACED_CODE, reason=connection.close_reason)
            except RuntimeError as e:
                logger.warning(f"Could not close {connection.handle}: {e}")
            return
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning(f"Failed to send {message['event']} to {connection.handle}: {e}")
            return
