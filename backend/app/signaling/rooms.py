# app/signaling/rooms.py
import re
from typing import Optional, Tuple

# identifiers end up inside channel-layer group names (ASCII, < 100 chars)
IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_.-]{1,40}$")

ROOM_PREFIX = "room"
CALLS_PREFIX = "incoming_calls"


def clean_identifier(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if not IDENTIFIER_RE.match(value):
        return None
    return value


def canonical_pair(a: str, b: str) -> Tuple[str, str]:
    """
    Unordered pair -> (min, max), lexicographic.
    Both sides compute the same key no matter who calls first.
    """
    a, b = str(a), str(b)
    return (a, b) if a <= b else (b, a)


def pair_room_name(a: str, b: str) -> str:
    low, high = canonical_pair(a, b)
    return f"{ROOM_PREFIX}_{low}_{high}"


def calls_group_name(user_id: str) -> str:
    return f"{CALLS_PREFIX}_{user_id}"


ROOM_RE = re.compile(r"^[A-Za-z0-9_.-]{1,99}$")


def clean_room(value) -> Optional[str]:
    if not isinstance(value, str) or not ROOM_RE.match(value):
        return None
    return value
