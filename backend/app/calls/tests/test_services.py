from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from app.calls.models import CallSession
from app.calls.services import (
    SESSION_EVENT,
    SIGNAL_EVENT,
    STATUS_EVENT,
    CallNotFound,
    UserBusy,
    initiate_call,
    is_user_busy,
    set_call_status,
)
from app.profiles.models import Profile


@pytest.fixture
def broadcast():
    with mock.patch("app.calls.services.broadcast") as m:
        yield m


def _call(caller="u1", receiver="u2", status="ringing", age=0):
    call = CallSession.objects.create(
        caller_id=caller, receiver_id=receiver, channel_name="ch", token="t", app_id="a", status=status
    )
    if age:
        CallSession.objects.filter(id=call.id).update(created_at=timezone.now() - timedelta(seconds=age))
    return call


@pytest.mark.django_db
def test_initiate_creates_a_ringing_record(broadcast, rtc_token):
    call = initiate_call("u1", "u2", match_id="5", call_type="audio")

    assert call.status == "ringing"
    assert call.channel_name.startswith("call_")
    assert call.token == "rtc-token"
    assert call.app_id == "test-app-id"
    assert call.call_type == "audio"
    assert call.match_id == "5"
    rtc_token.assert_called_once()


@pytest.mark.django_db
def test_initiate_pushes_signal_before_the_record(broadcast):
    Profile.objects.create(user_id="u1", real_name="Ann", avatar="ann.png")

    call = initiate_call("u1", "u2")

    events = [(c.args[0], c.args[1]) for c in broadcast.call_args_list]
    assert events == [("incoming_calls_u2", SIGNAL_EVENT), ("incoming_calls_u2", SESSION_EVENT)]

    signal = broadcast.call_args_list[0].args[2]
    assert signal == {"id": "u1", "name": "Ann", "avatar": "ann.png", "callType": "video", "matchId": ""}

    record = broadcast.call_args_list[1].args[2]
    assert record["id"] == str(call.id)
    assert record["caller_name"] == "Ann"
    assert record["receiver_id"] == "u2"


@pytest.mark.django_db
def test_initiate_marks_my_earlier_attempts_missed(broadcast):
    first = _call("u1", "u2")

    second = initiate_call("u1", "u2")

    first.refresh_from_db()
    assert first.status == "missed"
    assert first.ended_at is not None
    assert second.status == "ringing"


@pytest.mark.django_db
def test_initiate_to_busy_user_is_refused(broadcast):
    _call("u3", "u2", status="active")

    with pytest.raises(UserBusy):
        initiate_call("u1", "u2")

    broadcast.assert_not_called()
    assert CallSession.objects.count() == 1


@pytest.mark.django_db
def test_busy_rules():
    _call("u1", "u2")
    assert is_user_busy("u2")
    assert is_user_busy("u1")
    assert not is_user_busy("u2", ignore_caller_id="u1")
    assert not is_user_busy("u9")


@pytest.mark.django_db
def test_stale_calls_do_not_make_anyone_busy():
    _call("u1", "u2", status="ringing", age=46)
    _call("u3", "u4", status="active", age=2 * 3600 + 1)

    assert not is_user_busy("u2")
    assert not is_user_busy("u4")


@pytest.mark.django_db
def test_finished_calls_do_not_make_anyone_busy():
    for status in ("ended", "rejected", "missed"):
        _call("u1", "u2", status=status)

    assert not is_user_busy("u2")


@pytest.mark.django_db
def test_answer_then_end(broadcast):
    call = _call()

    call, changed = set_call_status(call.id, "active")
    assert changed
    assert call.answered_at is not None

    call, changed = set_call_status(call.id, "ended")
    assert changed
    assert call.ended_at is not None

    pushed = [(c.args[0], c.args[1], c.args[2]["status"]) for c in broadcast.call_args_list]
    assert pushed == [
        ("incoming_calls_u1", STATUS_EVENT, "active"),
        ("incoming_calls_u2", STATUS_EVENT, "active"),
        ("incoming_calls_u1", STATUS_EVENT, "ended"),
        ("incoming_calls_u2", STATUS_EVENT, "ended"),
    ]


@pytest.mark.django_db
def test_finished_calls_are_never_reopened(broadcast):
    call = _call(status="rejected")

    call, changed = set_call_status(call.id, "active")

    assert not changed
    assert call.status == "rejected"
    broadcast.assert_not_called()


@pytest.mark.django_db
def test_unknown_call():
    with pytest.raises(CallNotFound):
        set_call_status("00000000-0000-0000-0000-000000000000", "ended")


@pytest.mark.django_db
def test_redial_tells_both_sides_the_old_call_was_missed(broadcast):
    first = initiate_call("u1", "u2")
    broadcast.reset_mock()

    second = initiate_call("u1", "u2")

    events = [(c.args[0], c.args[1], c.args[2].get("id")) for c in broadcast.call_args_list]
    assert events == [
        ("incoming_calls_u1", STATUS_EVENT, str(first.id)),
        ("incoming_calls_u2", STATUS_EVENT, str(first.id)),
        ("incoming_calls_u2", SIGNAL_EVENT, "u1"),
        ("incoming_calls_u2", SESSION_EVENT, str(second.id)),
    ]
    assert broadcast.call_args_list[0].args[2]["status"] == "missed"
