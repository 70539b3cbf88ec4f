# app/matches/confirmation.py
"""
Waiting for a match row to show up after recording interest.

The match is materialized by whichever side lands second, possibly in another
request, so both sides poll for it on a fixed interval. Running out of attempts
is not a failure: the match completes in the background and the user is told so.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from app.common.errors import TransientDependencyError

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SEC = 0.5
DEFAULT_ATTEMPTS = 20  # 10 seconds

CONFIRMED = "confirmed"
PENDING = "pending"  # "will complete in background"


@dataclass(frozen=True)
class MatchConfirmation:
    confirmed: bool
    attempts: int
    match_id: Optional[int] = None

    @property
    def outcome(self) -> str:
        return CONFIRMED if self.confirmed else PENDING


async def wait_for_match(
    check: Callable[[], Awaitable[Optional[int]]],
    *,
    interval: float = DEFAULT_INTERVAL_SEC,
    attempts: int = DEFAULT_ATTEMPTS,
) -> MatchConfirmation:
    """
    Call ``check`` until it returns a match id or ``attempts`` run out.
    Cancel the surrounding task to abandon the wait.
    """
    for attempt in range(1, attempts + 1):
        try:
            match_id = await check()
        except TransientDependencyError as exc:
            # the row may still appear; keep polling within the budget
            logger.warning("match poll attempt %d failed: %s", attempt, exc)
            match_id = None

        if match_id is not None:
            return MatchConfirmation(confirmed=True, attempts=attempt, match_id=match_id)

        if attempt < attempts:
            await asyncio.sleep(interval)

    logger.info("match not observed after %d attempts, continuing in background", attempts)
    return MatchConfirmation(confirmed=False, attempts=attempts)


def start_match_wait(check, **kwargs) -> asyncio.Task:
    """Same as wait_for_match, as a task the UI layer can cancel."""
    return asyncio.ensure_future(wait_for_match(check, **kwargs))
