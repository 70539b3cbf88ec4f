# app/matches/services.py
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import DatabaseError, transaction

from app.common.errors import TransientDependencyError
from app.matches.models import Match, Notification, Swipe
from app.profiles.services import profile_cards
from app.signaling.relay import broadcast
from app.signaling.rooms import canonical_pair

logger = logging.getLogger(__name__)

LIKE = "like"
PASS = "pass"
MATCH_REVEAL_EVENT = "match_reveal"


@dataclass(frozen=True)
class InterestResult:
    is_mutual: bool
    match: Optional[Match] = None
    created: bool = False  # this call materialized the match row


def record_interest(liker_id: str, target_id: str, *, action: str = LIKE, room: Optional[str] = None) -> InterestResult:
    """
    1) upsert liker -> target and commit it (re-submitting the same pair changes nothing)
    2) look for target -> liker
    3) mutual: upsert the canonical (min, max) match, notify both, reveal in the pair room

    Steps 2-3 run after step 1 has committed. Of two crossing likes, whichever
    checks last sees the other's committed row, so the match is never lost.

    Raises TransientDependencyError when the store is unreachable; the caller must see it.
    """
    liker_id, target_id = str(liker_id), str(target_id)
    if liker_id == target_id:
        raise ValueError("cannot record interest in yourself")
    if action not in (LIKE, PASS):
        raise ValueError(f"unknown action: {action}")

    store_swipe(liker_id, target_id, action)
    if action != LIKE:
        return InterestResult(is_mutual=False)

    match, created = materialize_match(liker_id, target_id)
    if match is None:
        return InterestResult(is_mutual=False)

    if created:
        logger.info("match created %s <> %s", match.user1_id, match.user2_id)

    announce_match(match, room=room)
    return InterestResult(is_mutual=True, match=match, created=created)


def store_swipe(liker_id: str, target_id: str, action: str = LIKE) -> Swipe:
    try:
        with transaction.atomic():
            swipe, _ = Swipe.objects.update_or_create(
                liker_id=liker_id,
                target_id=target_id,
                defaults={"action": action},
            )
    except DatabaseError as exc:
        raise TransientDependencyError(
            "could not persist interest", dependency="database"
        ) from exc
    return swipe


def materialize_match(liker_id: str, target_id: str):
    """
    (match, created) when target -> liker is a like, else (None, False).
    """
    try:
        with transaction.atomic():
            is_mutual = Swipe.objects.filter(
                liker_id=target_id, target_id=liker_id, action=LIKE
            ).exists()
            if not is_mutual:
                return None, False

            # unique (user1_id, user2_id): the loser of a race gets the winner's row
            user1, user2 = canonical_pair(liker_id, target_id)
            match, created = Match.objects.get_or_create(user1_id=user1, user2_id=user2)
            if created:
                _create_match_notifications(match)
    except DatabaseError as exc:
        raise TransientDependencyError(
            "could not persist match", dependency="database"
        ) from exc
    return match, created


def _create_match_notifications(match: Match):
    Notification.objects.bulk_create(
        [
            Notification(
                user_id=uid,
                type="match",
                title="It's a match!",
                message="You both liked each other.",
                data={"matchId": match.id, "partnerId": match.other(uid)},
            )
            for uid in match.pair_key
        ]
    )


def reveal_payload(match: Match) -> dict:
    cards = profile_cards(match.pair_key)
    return {
        "users": [
            {"id": cards[uid]["id"], "name": cards[uid]["name"]}
            for uid in match.pair_key
        ]
    }


def announce_match(match: Match, *, room: Optional[str] = None):
    """
    match_reveal to the deterministic pair room, and to the caller's live room
    (e.g. the lobby pairing it came from) when that is a different one.
    """
    payload = reveal_payload(match)
    targets = [match.room_name]
    if room and room != match.room_name:
        targets.append(room)
    for target in targets:
        broadcast(target, MATCH_REVEAL_EVENT, payload)


def find_match(a: str, b: str) -> Optional[Match]:
    user1, user2 = canonical_pair(a, b)
    try:
        return Match.objects.filter(user1_id=user1, user2_id=user2).first()
    except DatabaseError as exc:
        raise TransientDependencyError(
            "could not read match", dependency="database"
        ) from exc
