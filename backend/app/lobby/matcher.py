# app/lobby/matcher.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from app.lobby.registry import Participant, SessionRegistry
from app.signaling.rooms import pair_room_name

logger = logging.getLogger(__name__)

QueueKey = Tuple[str, str]  # (scope, mode)


@dataclass(frozen=True)
class Pairing:
    scope: str
    mode: str
    channel_name: str
    initiator: Participant  # the side that was already waiting
    joiner: Participant


class LobbyQueue:
    """
    Waiting participants for one (scope, mode), oldest first.
    Every read-modify-write must hold ``lock``.
    """

    def __init__(self, scope: str, mode: str):
        self.key: QueueKey = (scope, mode)
        self.lock = asyncio.Lock()
        self._entries = []

    def __len__(self):
        return len(self._entries)

    @property
    def entries(self) -> Tuple[Participant, ...]:
        return tuple(self._entries)

    def take_peer(self, joiner: Participant) -> Optional[Participant]:
        # insertion order is the fairness tie-break
        for i, entry in enumerate(self._entries):
            if entry.session_id == joiner.session_id:
                continue  # same tab joined twice: never pair with yourself
            if entry.connection == joiner.connection:
                continue
            return self._entries.pop(i)
        return None

    def append(self, participant: Participant) -> None:
        self._entries.append(participant)

    def discard_connection(self, connection: str) -> int:
        # by connection handle, not session id: stale duplicates of the same user stay put
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.connection != connection]
        return before - len(self._entries)


class Lobby:
    def __init__(self, sessions: Optional[SessionRegistry] = None):
        self.sessions = sessions or SessionRegistry()
        self._queues: Dict[QueueKey, LobbyQueue] = {}

    def queue(self, scope: str, mode: str) -> LobbyQueue:
        key = (scope, mode)
        q = self._queues.get(key)
        if q is None:
            q = self._queues[key] = LobbyQueue(scope, mode)
        return q

    def queue_length(self, scope: str, mode: str) -> int:
        q = self._queues.get((scope, mode))
        return len(q) if q else 0

    async def join(self, scope: str, mode: str, participant: Participant) -> Optional[Pairing]:
        """
        Pair with the oldest compatible waiter, or enqueue and return None.
        """
        # 1) a participant sits in at most one queue entry
        await self.leave(participant.connection)
        self.sessions.register(participant)

        # 2) scan / remove / append as one critical section
        q = self.queue(scope, mode)
        async with q.lock:
            peer = q.take_peer(participant)
            if peer is None:
                q.append(participant)
                logger.debug(
                    "lobby %s/%s: %s waiting (%d in queue)",
                    scope, mode, participant.session_id, len(q),
                )
                return None

        pairing = Pairing(
            scope=scope,
            mode=mode,
            channel_name=pair_room_name(peer.session_id, participant.session_id),
            initiator=peer,
            joiner=participant,
        )
        logger.info(
            "lobby %s/%s: paired %s with %s in %s",
            scope, mode, peer.session_id, participant.session_id, pairing.channel_name,
        )
        return pairing

    async def leave(self, connection: str) -> int:
        removed = 0
        for q in list(self._queues.values()):
            async with q.lock:
                removed += q.discard_connection(connection)
        return removed

    async def disconnect(self, connection: str) -> int:
        removed = await self.leave(connection)
        self.sessions.unregister(connection)
        return removed


_lobby = None


def get_lobby() -> Lobby:
    # one lobby per server process, created lazily on first connection
    global _lobby
    if _lobby is None:
        _lobby = Lobby()
    return _lobby


def reset_lobby() -> None:
    global _lobby
    _lobby = None
