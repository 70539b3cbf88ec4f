# app/matches/client.py
from dataclasses import dataclass
from typing import Optional

from app.common.http import ApiClient
from app.matches.confirmation import (
    DEFAULT_ATTEMPTS,
    DEFAULT_INTERVAL_SEC,
    MatchConfirmation,
    wait_for_match,
)


@dataclass(frozen=True)
class AcceptedInterest:
    is_mutual: bool
    match_id: Optional[int]


class HttpMatchClient(ApiClient):
    async def accept_match(self, my_id: str, target_id: str, *, room: Optional[str] = None) -> AcceptedInterest:
        payload = {"myId": my_id, "targetId": target_id}
        if room:
            payload["room"] = room
        body = await self.post("/api/accept-match", payload)
        data = body.get("data") or {}
        return AcceptedInterest(is_mutual=bool(body.get("isMutual")), match_id=data.get("matchId"))

    async def fetch_match_id(self, my_id: str, target_id: str) -> Optional[int]:
        body = await self.get("/api/match-status", myId=my_id, targetId=target_id)
        data = body.get("data") or {}
        return data.get("matchId") if data.get("matched") else None

    async def confirm_match(
        self,
        my_id: str,
        target_id: str,
        *,
        room: Optional[str] = None,
        interval: float = DEFAULT_INTERVAL_SEC,
        attempts: int = DEFAULT_ATTEMPTS,
    ) -> MatchConfirmation:
        """
        Record interest, then wait for the match row. A failed accept raises;
        a match that does not show up in time comes back as ``pending``.
        """
        accepted = await self.accept_match(my_id, target_id, room=room)
        if accepted.match_id is not None:
            return MatchConfirmation(confirmed=True, attempts=0, match_id=accepted.match_id)

        return await wait_for_match(
            lambda: self.fetch_match_id(my_id, target_id),
            interval=interval,
            attempts=attempts,
        )
