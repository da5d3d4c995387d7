# models/schemas.py
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel


class SignalingEvent(str, Enum):
    """Event names carried in the `event` field of a WebSocket envelope"""
    # Client -> Server
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    CALL_USER = "call-user"
    CALL_ACCEPTED = "call-accepted"
    ICE_CANDIDATE = "ice-candidate"
    CAMERA_TOGGLE = "camera-toggle"
    CHAT_MESSAGE = "chat-message"
    # Server -> Client
    JOINED_ROOM = "joined-room"
    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"
    ROOM_UPDATE = "room-update"
    ROOM_USERS = "room-users"
    INCOMING_CALL = "incoming-call"
    USER_NOT_FOUND = "user-not-found"
    SESSION_REPLACED = "session-replaced"
    ERROR = "error"


# Envelope
class Envelope(BaseModel):
    event: str
    data: dict = {}


# Registry entry
class Participant(BaseModel):
    emailId: str
    name: str
    socketId: str


# Inbound payloads
class JoinRoomPayload(BaseModel):
    roomId: Optional[str] = None
    emailId: Optional[str] = None
    name: Optional[str] = None


class LeaveRoomPayload(BaseModel):
    roomId: str


class CallUserPayload(BaseModel):
    emailId: str
    offer: Any = None


class CallAcceptedPayload(BaseModel):
    to: str
    ans: Any = None


class IceCandidatePayload(BaseModel):
    to: str
    candidate: Any = None


class CameraTogglePayload(BaseModel):
    roomId: str
    cameraOn: Any = None


class ChatMessagePayload(BaseModel):
    roomId: str
    text: Any = None


# HTTP responses
class StatusResponse(BaseModel):
    status: str
    connections: int
    users: List[str]


class RoomSummary(BaseModel):
    roomId: str
    numParticipants: int


class OccupantInfo(BaseModel):
    socketId: str
    emailId: Optional[str] = None
    name: Optional[str] = None


class RoomInfo(BaseModel):
    roomId: str
    numParticipants: int
    participants: List[OccupantInfo]
