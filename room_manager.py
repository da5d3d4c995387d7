from typing import Dict, List, Set
import logging

logger = logging.getLogger(__name__)


class Room:
    def __init__(self, room_id: str):
        self.room_id = room_id
        self.occupants: Set[str] = set()

    def __len__(self) -> int:
        return len(self.occupants)


class RoomManager:
    """Room membership index.

    A room exists only while it has occupants: it is created by the first
    join and dropped by the last leave.
    """

    def __init__(self):
        self.rooms: Dict[str, Room] = {}
        self._memberships: Dict[str, Set[str]] = {}

    def join(self, room_id: str, handle: str) -> bool:
        if room_id not in self.rooms:
            self.rooms[room_id] = Room(room_id)
            logger.debug(f"Room {room_id} created")
        room = self.rooms[room_id]
        if handle in room.occupants:
            return False
        room.occupants.add(handle)
        self._memberships.setdefault(handle, set()).add(room_id)
        return True

    def leave(self, room_id: str, handle: str) -> bool:
        room = self.rooms.get(room_id)
        if room is None or handle not in room.occupants:
            return False
        room.occupants.discard(handle)
        if not room.occupants:
            del self.rooms[room_id]
            logger.debug(f"Room {room_id} closed")

        joined = self._memberships.get(handle)
        if joined is not None:
            joined.discard(room_id)
            if not joined:
                del self._memberships[handle]
        return True

    def leave_all(self, handle: str) -> Set[str]:
        left = self.rooms_of(handle)
        for room_id in left:
            self.leave(room_id, handle)
        return left

    def occupants(self, room_id: str) -> Set[str]:
        room = self.rooms.get(room_id)
        if room is None:
            return set()
        return set(room.occupants)

    def size(self, room_id: str) -> int:
        room = self.rooms.get(room_id)
        return len(room) if room else 0

    def rooms_of(self, handle: str) -> Set[str]:
        return set(self._memberships.get(handle, ()))

    def is_member(self, room_id: str, handle: str) -> bool:
        room = self.rooms.get(room_id)
        return room is not None and handle in room.occupants

    def list_rooms(self) -> List[str]:
        return list(self.rooms.keys())
