from typing import Any, Callable, Dict, Tuple, Type
import logging

from pydantic import BaseModel, ValidationError

from connection_manager import ConnectionManager
from exceptions import InvalidRequest
from models.schemas import (
    CallAcceptedPayload,
    CallUserPayload,
    CameraTogglePayload,
    ChatMessagePayload,
    IceCandidatePayload,
    JoinRoomPayload,
    LeaveRoomPayload,
    SignalingEvent,
)
from presence import PresenceManager
from registry import ConnectionRegistry
from room_manager import RoomManager

logger = logging.getLogger(__name__)


class SignalingRouter:
    """Routes inbound events to presence handling or relays them to peers.

    Every handler is synchronous and runs to completion, so registry and
    room state never change halfway through an event.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        connections: ConnectionManager,
        presence: PresenceManager,
        strict: bool = False,
    ):
        self.registry = registry
        self.connections = connections
        self.presence = presence
        self.strict = strict

        self.handlers: Dict[str, Tuple[Type[BaseModel], Callable[[str, Any], None]]] = {
            SignalingEvent.JOIN_ROOM.value: (JoinRoomPayload, presence.join),
            SignalingEvent.LEAVE_ROOM.value: (LeaveRoomPayload, presence.leave),
            SignalingEvent.CALL_USER.value: (CallUserPayload, self.call_user),
            SignalingEvent.CALL_ACCEPTED.value: (CallAcceptedPayload, self.call_accepted),
            SignalingEvent.ICE_CANDIDATE.value: (IceCandidatePayload, self.ice_candidate),
            SignalingEvent.CAMERA_TOGGLE.value: (CameraTogglePayload, self.camera_toggle),
            SignalingEvent.CHAT_MESSAGE.value: (ChatMessagePayload, self.chat_message),
        }

    def dispatch(self, handle: str, event: str, data: dict) -> bool:
        """Handle one inbound event; returns False when it was rejected"""
        entry = self.handlers.get(event)
        if entry is None:
            logger.warning(f"Unknown event '{event}' from {handle}")
            self._reject(handle, InvalidRequest("unknown_event", f"Unknown event: {event}"))
            return False

        schema, handler = entry
        try:
            payload = schema.model_validate(data)
            handler(handle, payload)
        except ValidationError as e:
            logger.warning(f"Invalid {event} payload from {handle}: {e.error_count()} error(s)")
            self._reject(handle, InvalidRequest("invalid_payload", f"Invalid {event} payload"))
            return False
        except InvalidRequest as e:
            logger.warning(f"Rejected {event} from {handle}: {e.message}")
            self._reject(handle, e)
            return False
        return True

    def disconnect(self, handle: str):
        self.presence.disconnect(handle)

    def call_user(self, handle: str, payload: CallUserPayload):
        target = self.registry.lookup_handle(payload.emailId)
        caller = self.registry.lookup_identity(handle)

        if target is None or not self.connections.is_connected(target):
            logger.info(f"User {payload.emailId} not found")
            self.connections.send(handle, SignalingEvent.USER_NOT_FOUND.value, {
                "emailId": payload.emailId,
            })
            return

        self.connections.send(target, SignalingEvent.INCOMING_CALL.value, {
            "from": handle,
            "fromEmail": caller.emailId if caller else None,
            "fromName": caller.name if caller else None,
            "offer": payload.offer,
        })
        logger.debug(f"Call from {handle} forwarded to {target}")

    def call_accepted(self, handle: str, payload: CallAcceptedPayload):
        user = self.registry.lookup_identity(handle)
        self._forward(handle, payload.to, SignalingEvent.CALL_ACCEPTED.value, {
            "ans": payload.ans,
            "from": handle,
            "fromEmail": user.emailId if user else None,
            "fromName": user.name if user else None,
        })

    def ice_candidate(self, handle: str, payload: IceCandidatePayload):
        self._forward(handle, payload.to, SignalingEvent.ICE_CANDIDATE.value, {
            "candidate": payload.candidate,
            "from": handle,
        })

    def camera_toggle(self, handle: str, payload: CameraTogglePayload):
        self.connections.send_room(payload.roomId, SignalingEvent.CAMERA_TOGGLE.value, {
            "cameraOn": payload.cameraOn,
        }, exclude=handle)

    def chat_message(self, handle: str, payload: ChatMessagePayload):
        sender = self.registry.lookup_identity(handle)
        self.connections.send_room(payload.roomId, SignalingEvent.CHAT_MESSAGE.value, {
            "from": handle,
            "text": payload.text,
            "senderName": sender.name if sender else "Guest",
        }, exclude=handle)

    def _forward(self, handle: str, to: str, event: str, data: dict):
        if not self.connections.send(to, event, data):
            logger.info(f"{event} from {handle}: target {to} is not connected")
            self.connections.send(handle, SignalingEvent.USER_NOT_FOUND.value, {"socketId": to})
            return
        logger.debug(f"{event} from {handle} to {to}")

    def _reject(self, handle: str, error: InvalidRequest):
        if self.strict:
            self.connections.send(handle, SignalingEvent.ERROR.value, {
                "code": error.code,
                "message": error.message,
            })


class SignalingHub:
    """One relay instance: registry, rooms, transport, presence and router"""

    def __init__(self, strict: bool = False, evict_superseded: bool = True):
        self.registry = ConnectionRegistry()
        self.rooms = RoomManager()
        self.connections = ConnectionManager(self.rooms)
        self.presence = PresenceManager(
            self.registry, self.rooms, self.connections, evict_superseded=evict_superseded
        )
        self.router = SignalingRouter(
            self.registry, self.connections, self.presence, strict=strict
        )

    def status(self) -> dict:
        return {
            "status": "active",
            "connections": self.connections.count(),
            "users": self.registry.identities(),
        }
