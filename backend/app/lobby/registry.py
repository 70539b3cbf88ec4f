# app/lobby/registry.py
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

MAX_ROOM_MEMBERS = 2


@dataclass(frozen=True)
class Participant:
    connection: str  # channel-layer channel name of the socket
    session_id: str  # caller generated, survives reconnects within one attempt
    user_id: str


class SessionRegistry:
    """
    connection -> Participant, plus which rooms each connection sits in.
    Process local; only touched from consumer callbacks on one event loop.
    """

    def __init__(self):
        self._participants: Dict[str, Participant] = {}
        self._rooms: Dict[str, Set[str]] = {}

    def register(self, participant: Participant) -> Participant:
        self._participants[participant.connection] = participant
        return participant

    def get(self, connection: str) -> Optional[Participant]:
        return self._participants.get(connection)

    def unregister(self, connection: str) -> Optional[Participant]:
        return self._participants.pop(connection, None)

    # ---- room membership ----

    def join_room(self, room: str, connection: str) -> bool:
        members = self._rooms.setdefault(room, set())
        if connection in members:
            return True
        if len(members) >= MAX_ROOM_MEMBERS:
            return False
        members.add(connection)
        return True

    def leave_room(self, room: str, connection: str) -> None:
        members = self._rooms.get(room)
        if not members:
            return
        members.discard(connection)
        if not members:
            del self._rooms[room]

    def rooms_of(self, connection: str) -> List[str]:
        return sorted(r for r, members in self._rooms.items() if connection in members)

    def room_members(self, room: str) -> Set[str]:
        return set(self._rooms.get(room, ()))

    def __len__(self):
        return len(self._participants)
