from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
import asyncio
import json
import logging
from connection_manager import pump
from models.schemas import Envelope

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket):
    await websocket.accept()
    hub = websocket.app.state.hub
    connection = hub.connections.attach()
    handle = connection.handle
    writer = asyncio.create_task(pump(websocket, connection))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                logger.warning(f"Dropping binary frame from {handle}")
                continue
            try:
                envelope = Envelope.model_validate(json.loads(raw))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Dropping malformed frame from {handle}: {e}")
                continue
            hub.router.dispatch(handle, envelope.event, envelope.data)
    except WebSocketDisconnect:
        logger.info(f"WebSocket closed: {handle}")
    except Exception as e:
        logger.error(f"Socket error for {handle}: {e}")
    finally:
        hub.router.disconnect(handle)
        hub.connections.detach(handle)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
