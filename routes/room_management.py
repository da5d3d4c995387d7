from fastapi import APIRouter, HTTPException, Request, status
import logging
from models.schemas import OccupantInfo, RoomInfo, RoomSummary
from signaling import SignalingHub

logger = logging.getLogger(__name__)
router = APIRouter()


def _hub(request: Request) -> SignalingHub:
    return request.app.state.hub


@router.get("/rooms")
async def list_rooms(request: Request):
    """
    List all live rooms
    """
    hub = _hub(request)
    room_list = [
        RoomSummary(roomId=room_id, numParticipants=hub.rooms.size(room_id))
        for room_id in sorted(hub.rooms.list_rooms())
    ]
    return {
        "rooms": room_list,
        "total": len(room_list)
    }


@router.get("/room/{room_id}", response_model=RoomInfo)
async def get_room_info(room_id: str, request: Request):
    """
    Get the occupants of a specific room
    """
    hub = _hub(request)
    occupants = hub.rooms.occupants(room_id)
    if not occupants:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Room '{room_id}' not found"
        )

    participants = []
    for handle in sorted(occupants):
        participant = hub.registry.lookup_identity(handle)
        participants.append(OccupantInfo(
            socketId=handle,
            emailId=participant.emailId if participant else None,
            name=participant.name if participant else None,
        ))

    return RoomInfo(
        roomId=room_id,
        numParticipants=len(participants),
        participants=participants,
    )
