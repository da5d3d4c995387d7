from typing import Dict, List, Optional
import logging

from models.schemas import Participant

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Identity <-> connection handle mapping.

    Both maps are updated inside the same synchronous call, so they are
    always inverses of each other for every entry they hold.
    """

    def __init__(self):
        self._by_identity: Dict[str, str] = {}
        self._by_handle: Dict[str, Participant] = {}

    def register(self, identity: str, name: str, handle: str) -> Optional[str]:
        """Bind identity to handle, returning the handle it superseded, if any"""
        previous = self._by_handle.get(handle)
        if previous and previous.emailId != identity:
            # same connection re-joining under another identity
            if self._by_identity.get(previous.emailId) == handle:
                del self._by_identity[previous.emailId]

        superseded = self._by_identity.get(identity)
        if superseded == handle:
            superseded = None
        if superseded is not None:
            self._by_handle.pop(superseded, None)
            logger.info(f"Identity {identity} moved from {superseded} to {handle}")

        self._by_identity[identity] = handle
        self._by_handle[handle] = Participant(emailId=identity, name=name, socketId=handle)
        return superseded

    def lookup_handle(self, identity: str) -> Optional[str]:
        return self._by_identity.get(identity)

    def lookup_identity(self, handle: str) -> Optional[Participant]:
        return self._by_handle.get(handle)

    def remove(self, handle: str) -> Optional[Participant]:
        participant = self._by_handle.pop(handle, None)
        if participant and self._by_identity.get(participant.emailId) == handle:
            del self._by_identity[participant.emailId]
        return participant

    def identities(self) -> List[str]:
        return list(self._by_identity.keys())

    def __len__(self) -> int:
        return len(self._by_handle)
