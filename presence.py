from typing import Optional
import logging

from connection_manager import ConnectionManager
from exceptions import InvalidRequest
from models.schemas import JoinRoomPayload, LeaveRoomPayload, SignalingEvent
from registry import ConnectionRegistry
from room_manager import RoomManager

logger = logging.getLogger(__name__)


class PresenceManager:
    """Join, leave and disconnect sequences.

    Keeps registry and room membership consistent and tells the other
    occupants about every arrival and departure.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        rooms: RoomManager,
        connections: ConnectionManager,
        evict_superseded: bool = True,
    ):
        self.registry = registry
        self.rooms = rooms
        self.connections = connections
        self.evict_superseded = evict_superseded

    def join(self, handle: str, payload: JoinRoomPayload):
        room_id, identity, name = payload.roomId, payload.emailId, payload.name
        if not room_id or not identity or not name:
            raise InvalidRequest(
                "invalid_request", "roomId, emailId and name are required to join a room"
            )

        superseded = self.registry.register(identity, name, handle)
        if superseded is not None:
            self._supersede(superseded, identity)

        existing = self.rooms.occupants(room_id) - {handle}
        newly_joined = self.rooms.join(room_id, handle)

        self.connections.send(handle, SignalingEvent.JOINED_ROOM.value, {
            "roomId": room_id,
            "emailId": identity,
            "name": name,
            "socketId": handle,
        })
        for occupant in sorted(existing):
            self.connections.send(handle, SignalingEvent.USER_JOINED.value, self._describe(occupant))

        if newly_joined:
            self.connections.send_many(existing, SignalingEvent.USER_JOINED.value, {
                "emailId": identity,
                "name": name,
                "socketId": handle,
            })
            self._announce_roster(room_id)
            logger.info(f"User {identity} joined room {room_id}")
        else:
            logger.info(f"User {identity} re-joined room {room_id}")

        self._announce_count(room_id)

    def leave(self, handle: str, payload: LeaveRoomPayload):
        room_id = payload.roomId
        if not self.rooms.is_member(room_id, handle):
            logger.debug(f"Ignoring leave of {room_id} from non-member {handle}")
            return

        participant = self.registry.lookup_identity(handle)
        identity = participant.emailId if participant else None
        self.rooms.leave(room_id, handle)
        self._announce_departure(room_id, handle, identity)
        logger.info(f"User {identity or handle} left room {room_id}")

    def disconnect(self, handle: str):
        participant = self.registry.lookup_identity(handle)
        identity = participant.emailId if participant else None

        for room_id in sorted(self.rooms.leave_all(handle)):
            self._announce_departure(room_id, handle, identity)

        self.registry.remove(handle)
        if participant:
            logger.info(f"User disconnected: {identity} ({handle})")

    def _supersede(self, old_handle: str, identity: str):
        if not self.evict_superseded:
            logger.warning(f"Identity {identity} re-joined; {old_handle} is now anonymous")
            return

        logger.info(f"Evicting {old_handle}: identity {identity} joined from another connection")
        self.connections.send(old_handle, SignalingEvent.SESSION_REPLACED.value, {
            "emailId": identity,
            "socketId": old_handle,
        })
        for room_id in sorted(self.rooms.leave_all(old_handle)):
            self._announce_departure(room_id, old_handle, identity)
        self.connections.close(old_handle)

    def _announce_departure(self, room_id: str, handle: str, identity: Optional[str]):
        self.connections.send_room(room_id, SignalingEvent.USER_LEFT.value, {
            "emailId": identity,
            "socketId": handle,
        }, exclude=handle)
        if self.rooms.size(room_id):
            self._announce_count(room_id)

    def _describe(self, handle: str) -> dict:
        participant = self.registry.lookup_identity(handle)
        if participant is None:
            return {"emailId": None, "name": "Unknown", "socketId": handle}
        return {"emailId": participant.emailId, "name": participant.name, "socketId": handle}

    def _announce_roster(self, room_id: str):
        users = [self._describe(h)["name"] for h in sorted(self.rooms.occupants(room_id))]
        self.connections.send_room(room_id, SignalingEvent.ROOM_USERS.value, {"users": users})

    def _announce_count(self, room_id: str):
        self.connections.send_room(room_id, SignalingEvent.ROOM_UPDATE.value, {
            "count": self.rooms.size(room_id),
        })
