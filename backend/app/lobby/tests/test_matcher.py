import asyncio

import pytest

from app.lobby.matcher import Lobby, get_lobby, reset_lobby
from app.lobby.registry import Participant


def _p(connection, session_id, user_id=None):
    return Participant(connection=connection, session_id=session_id, user_id=user_id or f"user-{session_id}")


@pytest.mark.asyncio
@pytest.mark.parametrize("first,second", [("s1", "s2"), ("s2", "s1")])
async def test_two_participants_pair_with_exactly_one_initiator(first, second):
    lobby = Lobby()

    assert await lobby.join("campus", "video", _p(f"c-{first}", first)) is None
    pairing = await lobby.join("campus", "video", _p(f"c-{second}", second))

    assert pairing is not None
    assert pairing.initiator.session_id == first  # the one already waiting
    assert pairing.joiner.session_id == second
    assert pairing.channel_name == "room_s1_s2"  # same name in either order
    assert lobby.queue_length("campus", "video") == 0


@pytest.mark.asyncio
async def test_same_session_never_pairs_with_itself():
    lobby = Lobby()

    await lobby.join("campus", "video", _p("tab-1", "s1"))
    pairing = await lobby.join("campus", "video", _p("tab-2", "s1"))

    assert pairing is None
    assert lobby.queue_length("campus", "video") == 2


@pytest.mark.asyncio
async def test_disconnect_before_pairing_removes_from_queue():
    lobby = Lobby()

    await lobby.join("campus", "video", _p("c1", "S1"))
    removed = await lobby.disconnect("c1")

    assert removed == 1
    assert lobby.queue_length("campus", "video") == 0
    assert lobby.sessions.get("c1") is None

    # S2 must wait, not pair with the ghost of S1
    assert await lobby.join("campus", "video", _p("c2", "S2")) is None
    assert [e.session_id for e in lobby.queue("campus", "video").entries] == ["S2"]


@pytest.mark.asyncio
async def test_remove_by_connection_leaves_other_entries_of_same_session():
    lobby = Lobby()
    await lobby.join("campus", "video", _p("tab-1", "s1"))
    await lobby.join("campus", "video", _p("tab-2", "s1"))

    await lobby.disconnect("tab-1")

    entries = lobby.queue("campus", "video").entries
    assert [e.connection for e in entries] == ["tab-2"]


@pytest.mark.asyncio
async def test_rejoin_keeps_a_single_entry_per_connection():
    lobby = Lobby()

    await lobby.join("campus", "video", _p("c1", "s1"))
    await lobby.join("global", "text", _p("c1", "s1"))

    assert lobby.queue_length("campus", "video") == 0
    assert lobby.queue_length("global", "text") == 1


@pytest.mark.asyncio
async def test_oldest_waiter_is_paired_first():
    lobby = Lobby()
    await lobby.join("global", "video", _p("c-a", "a", "ua"))
    await lobby.join("global", "video", _p("c-a2", "a", "ua"))  # same session, can't pair with c-a

    pairing = await lobby.join("global", "video", _p("c-b", "b", "ub"))

    assert pairing.initiator.connection == "c-a"
    assert [e.connection for e in lobby.queue("global", "video").entries] == ["c-a2"]


@pytest.mark.asyncio
async def test_queues_are_partitioned_by_scope_and_mode():
    lobby = Lobby()

    await lobby.join("campus", "video", _p("c1", "s1"))
    assert await lobby.join("campus", "text", _p("c2", "s2")) is None
    assert await lobby.join("global", "video", _p("c3", "s3")) is None

    assert lobby.queue_length("campus", "video") == 1
    assert lobby.queue_length("campus", "text") == 1
    assert lobby.queue_length("global", "video") == 1


@pytest.mark.asyncio
async def test_concurrent_joins_pair_everyone_once():
    lobby = Lobby()
    participants = [_p(f"c{i}", f"s{i}") for i in range(10)]

    results = await asyncio.gather(*(lobby.join("campus", "video", p) for p in participants))
    pairings = [r for r in results if r is not None]

    assert len(pairings) == 5
    assert lobby.queue_length("campus", "video") == 0
    paired = [p.initiator.session_id for p in pairings] + [p.joiner.session_id for p in pairings]
    assert sorted(paired) == sorted(p.session_id for p in participants)


def test_get_lobby_is_a_process_singleton():
    assert get_lobby() is get_lobby()
    first = get_lobby()
    reset_lobby()
    assert get_lobby() is not first
