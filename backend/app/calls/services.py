# app/calls/services.py
import logging
from datetime import timedelta

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from app.calls.models import CallSession
from app.calls.serializers import CallSessionSerializer
from app.calls.tokens import issue_rtc_credentials, new_channel_name
from app.common.errors import PlatformError, TransientDependencyError
from app.profiles.services import profile_cards
from app.signaling.relay import broadcast
from app.signaling.rooms import calls_group_name

logger = logging.getLogger(__name__)

RINGING = "ringing"
ACTIVE = "active"
ENDED = "ended"
REJECTED = "rejected"
MISSED = "missed"
TERMINAL_STATUSES = (ENDED, REJECTED, MISSED)

# push events on incoming_calls_<userId>
SIGNAL_EVENT = "incoming_call_signal"  # optimistic, no durable id yet
SESSION_EVENT = "call_session"  # authoritative record
STATUS_EVENT = "call_status"

# status -> statuses it may move to
_TRANSITIONS = {
    RINGING: (ACTIVE, REJECTED, MISSED, ENDED),
    ACTIVE: (ENDED,),
}


class UserBusy(PlatformError):
    code = "USER_BUSY"


class CallNotFound(PlatformError):
    code = "CALL_NOT_FOUND"


def serialize_call(call: CallSession) -> dict:
    return dict(CallSessionSerializer(call).data)


def is_user_busy(user_id: str, *, ignore_caller_id=None, now=None) -> bool:
    """
    Busy = a ringing call younger than CALL_RINGING_STALE_SEC, or an active call
    younger than CALL_ACTIVE_STALE_SEC, on either side. Ringing calls placed by
    ``ignore_caller_id`` are that caller's own earlier attempts and don't count.
    """
    now = now or timezone.now()
    ringing_cutoff = now - timedelta(seconds=settings.CALL_RINGING_STALE_SEC)
    active_cutoff = now - timedelta(seconds=settings.CALL_ACTIVE_STALE_SEC)

    qs = CallSession.objects.filter(
        Q(caller_id=user_id) | Q(receiver_id=user_id)
    ).filter(
        Q(status=RINGING, created_at__gte=ringing_cutoff)
        | Q(status=ACTIVE, created_at__gte=active_cutoff)
    )
    if ignore_caller_id:
        qs = qs.exclude(status=RINGING, caller_id=ignore_caller_id)

    try:
        return qs.exists()
    except DatabaseError as exc:
        raise TransientDependencyError("could not check busy state", dependency="database") from exc


def initiate_call(caller_id: str, receiver_id: str, *, match_id: str = "", call_type: str = "video") -> CallSession:
    """
    1) my earlier ringing calls to the same receiver -> missed (page refresh while calling)
    2) receiver busy -> UserBusy
    3) optimistic broadcast to the receiver, before anything slow
    4) credentials + durable record
    5) push the record (with the caller's display profile) to the receiver
    """
    now = timezone.now()
    try:
        with transaction.atomic():
            stale = list(
                CallSession.objects.select_for_update().filter(
                    caller_id=caller_id, receiver_id=receiver_id, status=RINGING
                )
            )
            CallSession.objects.filter(id__in=[c.id for c in stale]).update(
                status=MISSED, ended_at=now
            )
    except DatabaseError as exc:
        raise TransientDependencyError("could not clean up calls", dependency="database") from exc

    # the receiver may still be showing one of these
    for call in stale:
        call.status = MISSED
        push_status(call)

    if is_user_busy(receiver_id, ignore_caller_id=caller_id, now=now):
        raise UserBusy(f"{receiver_id} is busy")

    caller = profile_cards([caller_id])[caller_id]
    broadcast(
        calls_group_name(receiver_id),
        SIGNAL_EVENT,
        {
            "id": caller_id,
            "name": caller["name"],
            "avatar": caller["avatar"],
            "callType": call_type,
            "matchId": match_id,
        },
    )

    credentials = issue_rtc_credentials(
        new_channel_name(), ttl_sec=settings.CALL_TOKEN_TTL_SEC
    )
    try:
        call = CallSession.objects.create(
            caller_id=caller_id,
            receiver_id=receiver_id,
            match_id=match_id or "",
            channel_name=credentials["channelName"],
            token=credentials["token"],
            app_id=credentials["appId"],
            call_type=call_type,
            status=RINGING,
        )
    except DatabaseError as exc:
        raise TransientDependencyError("could not create call", dependency="database") from exc

    logger.info("call %s ringing %s -> %s", call.id, caller_id, receiver_id)

    record = serialize_call(call)
    record["caller_name"] = caller["name"]
    record["caller_avatar"] = caller["avatar"]
    broadcast(calls_group_name(receiver_id), SESSION_EVENT, record)
    return call


def set_call_status(call_id, status: str):
    """
    Returns (call, changed). Terminal calls are never reopened; a late reject
    on an ended call is a no-op rather than an error.
    """
    try:
        with transaction.atomic():
            call = CallSession.objects.select_for_update().filter(id=call_id).first()
            if call is None:
                raise CallNotFound(f"call {call_id} not found")

            if status not in _TRANSITIONS.get(call.status, ()):
                return call, False

            now = timezone.now()
            call.status = status
            fields = ["status"]
            if status == ACTIVE:
                call.answered_at = now
                fields.append("answered_at")
            else:
                call.ended_at = now
                fields.append("ended_at")
            call.save(update_fields=fields)
    except DatabaseError as exc:
        raise TransientDependencyError("could not update call", dependency="database") from exc

    logger.info("call %s -> %s", call.id, status)
    push_status(call)
    return call, True


def push_status(call: CallSession):
    payload = {"id": str(call.id), "status": call.status}
    for uid in (call.caller_id, call.receiver_id):
        broadcast(calls_group_name(uid), STATUS_EVENT, payload)
