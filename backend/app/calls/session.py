# app/calls/session.py
"""
Client-side call lifecycle as a pure reducer.

An inbound call reaches the callee twice: an optimistic broadcast (caller
identity only, no durable id, no credentials) and the authoritative record
(durable id, channel, credentials). Either may arrive first, or only one of
them. ``reduce`` folds both into a single offer keyed by caller identity.

    caller:  idle -> outgoing-ringing -> active -> idle
    callee:  idle -> incoming-broadcast -> incoming-confirmed -> active -> idle
             incoming-* -> idle  on reject / timeout / remote cancel

``reduce(state, event, now)`` returns the next state plus the side effects the
driver has to run. It never performs I/O and never reads a clock.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

ANSWER_TIMEOUT_SEC = 30.0

REMOTE_ACTIVE = "active"
REMOTE_TERMINAL = ("ended", "rejected", "missed")


class Phase(str, Enum):
    IDLE = "idle"
    OUTGOING_RINGING = "outgoing-ringing"
    INCOMING_BROADCAST = "incoming-broadcast"
    INCOMING_CONFIRMED = "incoming-confirmed"
    ACTIVE = "active"


class OfferStatus(str, Enum):
    PENDING_BROADCAST = "pending-broadcast"
    PENDING_CONFIRMED = "pending-confirmed"
    ANSWERED = "answered"
    REJECTED = "rejected"
    EXPIRED = "expired"


class Merge(str, Enum):
    NEW = "new"
    MERGE = "merge"  # same call as the pending offer
    SUPERSEDE = "supersede"  # another call while busy: must be rejected


# ---- state ----


@dataclass(frozen=True)
class CallOffer:
    caller_id: str
    deadline: float  # loop time; set once when the offer is first presented
    caller_name: str = ""
    caller_avatar: str = ""
    call_type: str = "video"
    call_id: Optional[str] = None
    channel_name: str = ""
    token: str = ""
    app_id: str = ""
    status: OfferStatus = OfferStatus.PENDING_BROADCAST

    @property
    def is_confirmed(self) -> bool:
        return self.call_id is not None


@dataclass(frozen=True)
class OutgoingCall:
    receiver_id: str
    receiver_name: str = ""
    receiver_avatar: str = ""
    call_type: str = "video"
    call_id: Optional[str] = None
    channel_name: str = ""
    token: str = ""
    app_id: str = ""


@dataclass(frozen=True)
class ActiveCall:
    call_id: str
    partner_id: str
    channel_name: str
    token: str
    app_id: str
    call_type: str = "video"
    partner_name: str = ""
    partner_avatar: str = ""


@dataclass(frozen=True)
class CallState:
    incoming: Optional[CallOffer] = None
    outgoing: Optional[OutgoingCall] = None
    active: Optional[ActiveCall] = None

    @property
    def phase(self) -> Phase:
        if self.active is not None:
            return Phase.ACTIVE
        if self.incoming is not None:
            if self.incoming.is_confirmed:
                return Phase.INCOMING_CONFIRMED
            return Phase.INCOMING_BROADCAST
        if self.outgoing is not None:
            return Phase.OUTGOING_RINGING
        return Phase.IDLE

    @property
    def is_busy(self) -> bool:
        return self.active is not None or self.incoming is not None or self.outgoing is not None


# ---- events ----


@dataclass(frozen=True)
class BroadcastOffer:
    caller_id: str
    caller_name: str = ""
    caller_avatar: str = ""
    call_type: str = "video"


@dataclass(frozen=True)
class ConfirmedOffer:
    call_id: str
    caller_id: str
    channel_name: str
    token: str
    app_id: str
    caller_name: str = ""
    caller_avatar: str = ""
    call_type: str = "video"


@dataclass(frozen=True)
class Accept:
    pass


@dataclass(frozen=True)
class Reject:
    pass


@dataclass(frozen=True)
class AnswerTimeout:
    deadline: float  # the deadline this timer was armed for


@dataclass(frozen=True)
class OutgoingStarted:
    receiver_id: str
    receiver_name: str = ""
    receiver_avatar: str = ""
    call_type: str = "video"


@dataclass(frozen=True)
class OutgoingPlaced:
    call_id: str
    channel_name: str
    token: str
    app_id: str


@dataclass(frozen=True)
class RemoteStatus:
    call_id: str
    status: str


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class HangUp:
    pass


# ---- effects ----


@dataclass(frozen=True)
class PresentOffer:
    offer: CallOffer


@dataclass(frozen=True)
class RefreshOffer:
    offer: CallOffer


@dataclass(frozen=True)
class DismissOffer:
    offer: CallOffer  # carries the terminal status


@dataclass(frozen=True)
class ArmTimer:
    deadline: float


@dataclass(frozen=True)
class CancelTimer:
    pass


@dataclass(frozen=True)
class AnswerCall:
    call_id: str


@dataclass(frozen=True)
class RejectCall:
    call_id: str


@dataclass(frozen=True)
class EndCall:
    call_id: str


@dataclass(frozen=True)
class StartCall:
    call: ActiveCall


@dataclass(frozen=True)
class CallFinished:
    call_id: str
    reason: str


@dataclass(frozen=True)
class Transition:
    state: CallState
    effects: Tuple = ()


def classify(state: CallState, offer: ConfirmedOffer) -> Merge:
    pending = state.incoming
    if (
        pending is not None
        and pending.caller_id == offer.caller_id
        and pending.call_id in (None, offer.call_id)
    ):
        return Merge.MERGE
    if state.is_busy:
        return Merge.SUPERSEDE
    return Merge.NEW


def reduce(state: CallState, event, now: float, *, timeout: float = ANSWER_TIMEOUT_SEC) -> Transition:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"unknown call event: {event!r}")
    return handler(state, event, now, timeout)


# ---- incoming ----


def _on_broadcast(state, event: BroadcastOffer, now, timeout):
    if state.is_busy:
        return Transition(state)

    offer = CallOffer(
        caller_id=event.caller_id,
        caller_name=event.caller_name,
        caller_avatar=event.caller_avatar,
        call_type=event.call_type,
        deadline=now + timeout,
    )
    return Transition(
        replace(state, incoming=offer),
        (PresentOffer(offer), ArmTimer(offer.deadline)),
    )


def _on_confirmed(state, event: ConfirmedOffer, now, timeout):
    outcome = classify(state, event)

    if outcome is Merge.SUPERSEDE:
        # durable id: the caller has to hear back, so reject instead of dropping
        return Transition(state, (RejectCall(event.call_id),))

    if outcome is Merge.MERGE:
        pending = state.incoming
        offer = replace(
            pending,
            call_id=event.call_id,
            channel_name=event.channel_name,
            token=event.token,
            app_id=event.app_id,
            caller_name=event.caller_name or pending.caller_name,
            caller_avatar=event.caller_avatar or pending.caller_avatar,
            call_type=event.call_type,
            status=OfferStatus.PENDING_CONFIRMED,
        )
        # deadline untouched: the broadcast's timer keeps running
        return Transition(replace(state, incoming=offer), (RefreshOffer(offer),))

    offer = CallOffer(
        caller_id=event.caller_id,
        caller_name=event.caller_name,
        caller_avatar=event.caller_avatar,
        call_type=event.call_type,
        call_id=event.call_id,
        channel_name=event.channel_name,
        token=event.token,
        app_id=event.app_id,
        deadline=now + timeout,
        status=OfferStatus.PENDING_CONFIRMED,
    )
    return Transition(
        replace(state, incoming=offer),
        (PresentOffer(offer), ArmTimer(offer.deadline)),
    )


def _on_accept(state, event, now, timeout):
    offer = state.incoming
    if offer is None or not offer.is_confirmed:
        # broadcast only: no credentials to join with yet
        return Transition(state)

    call = ActiveCall(
        call_id=offer.call_id,
        partner_id=offer.caller_id,
        partner_name=offer.caller_name,
        partner_avatar=offer.caller_avatar,
        channel_name=offer.channel_name,
        token=offer.token,
        app_id=offer.app_id,
        call_type=offer.call_type,
    )
    return Transition(
        CallState(active=call),
        (
            CancelTimer(),
            AnswerCall(offer.call_id),
            DismissOffer(replace(offer, status=OfferStatus.ANSWERED)),
            StartCall(call),
        ),
    )


def _resolve_incoming(state, status: OfferStatus, *, cancel_timer: bool, reject: bool):
    offer = state.incoming
    effects = []
    if cancel_timer:
        effects.append(CancelTimer())
    if reject and offer.is_confirmed:
        effects.append(RejectCall(offer.call_id))
    effects.append(DismissOffer(replace(offer, status=status)))
    return Transition(replace(state, incoming=None), tuple(effects))


def _on_reject(state, event, now, timeout):
    if state.incoming is None:
        return Transition(state)
    return _resolve_incoming(state, OfferStatus.REJECTED, cancel_timer=True, reject=True)


def _on_timeout(state, event: AnswerTimeout, now, timeout):
    offer = state.incoming
    if offer is None or offer.deadline != event.deadline:
        return Transition(state)  # stale timer
    # the timer is the trigger, nothing to cancel
    return _resolve_incoming(state, OfferStatus.EXPIRED, cancel_timer=False, reject=True)


# ---- outgoing ----


def _on_outgoing_started(state, event: OutgoingStarted, now, timeout):
    if state.is_busy:
        return Transition(state)
    outgoing = OutgoingCall(
        receiver_id=event.receiver_id,
        receiver_name=event.receiver_name,
        receiver_avatar=event.receiver_avatar,
        call_type=event.call_type,
    )
    return Transition(replace(state, outgoing=outgoing))


def _on_outgoing_placed(state, event: OutgoingPlaced, now, timeout):
    if state.outgoing is None:
        return Transition(state)  # cancelled while the request was in flight
    outgoing = replace(
        state.outgoing,
        call_id=event.call_id,
        channel_name=event.channel_name,
        token=event.token,
        app_id=event.app_id,
    )
    return Transition(replace(state, outgoing=outgoing))


def _on_cancel(state, event, now, timeout):
    # local only; the callee's offer runs out on its own timer
    if state.outgoing is None:
        return Transition(state)
    return Transition(replace(state, outgoing=None))


# ---- both sides ----


def _on_remote_status(state, event: RemoteStatus, now, timeout):
    outgoing = state.outgoing
    if outgoing is not None and outgoing.call_id == event.call_id:
        if event.status == REMOTE_ACTIVE:
            call = ActiveCall(
                call_id=outgoing.call_id,
                partner_id=outgoing.receiver_id,
                partner_name=outgoing.receiver_name,
                partner_avatar=outgoing.receiver_avatar,
                channel_name=outgoing.channel_name,
                token=outgoing.token,
                app_id=outgoing.app_id,
                call_type=outgoing.call_type,
            )
            return Transition(replace(state, outgoing=None, active=call), (StartCall(call),))
        if event.status in REMOTE_TERMINAL:
            return Transition(
                replace(state, outgoing=None),
                (CallFinished(event.call_id, event.status),),
            )

    active = state.active
    if active is not None and active.call_id == event.call_id and event.status in REMOTE_TERMINAL:
        return Transition(
            replace(state, active=None),
            (CallFinished(event.call_id, event.status),),
        )

    incoming = state.incoming
    if incoming is not None and incoming.call_id == event.call_id and event.status in REMOTE_TERMINAL:
        # caller gave up; record already terminal, nothing to reject
        return _resolve_incoming(state, OfferStatus.EXPIRED, cancel_timer=True, reject=False)

    return Transition(state)


def _on_hang_up(state, event, now, timeout):
    if state.active is None:
        return Transition(state)
    call_id = state.active.call_id
    return Transition(
        replace(state, active=None),
        (EndCall(call_id), CallFinished(call_id, "ended")),
    )


_HANDLERS = {
    BroadcastOffer: _on_broadcast,
    ConfirmedOffer: _on_confirmed,
    Accept: _on_accept,
    Reject: _on_reject,
    AnswerTimeout: _on_timeout,
    OutgoingStarted: _on_outgoing_started,
    OutgoingPlaced: _on_outgoing_placed,
    Cancel: _on_cancel,
    RemoteStatus: _on_remote_status,
    HangUp: _on_hang_up,
}
