# app/calls/controller.py
import abc
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from app.common.errors import PlatformError
from app.calls.session import (
    ANSWER_TIMEOUT_SEC,
    Accept,
    AnswerCall,
    AnswerTimeout,
    ArmTimer,
    BroadcastOffer,
    CallState,
    Cancel,
    CancelTimer,
    ConfirmedOffer,
    EndCall,
    HangUp,
    Merge,
    OutgoingCall,
    OutgoingPlaced,
    OutgoingStarted,
    Reject,
    RejectCall,
    RemoteStatus,
    Transition,
    classify,
    reduce,
)

logger = logging.getLogger(__name__)

MISSED = "missed"

Listener = Callable[[object, CallState], None]


class CallBackend(abc.ABC):
    """Durable side of the call: the record store behind the API."""

    @abc.abstractmethod
    async def initiate_call(self, caller_id: str, receiver_id: str, *, match_id: str = "", call_type: str = "video") -> dict:
        ...

    @abc.abstractmethod
    async def answer_call(self, call_id: str) -> bool:
        """False when the record had already finished (caller gave up)."""
        ...

    @abc.abstractmethod
    async def reject_call(self, call_id: str) -> None:
        ...

    @abc.abstractmethod
    async def end_call(self, call_id: str) -> None:
        ...


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _log_timer_failure(task: asyncio.Task):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("answer timer failed", exc_info=exc)


class CallSessionController:
    """
    Drives ``reduce`` for one signed-in user.

    ``state`` is the only copy of the call state. Push handlers read it when
    they run, never from a value captured when the subscription was set up, so
    busy checks always see the latest offer / outgoing / active call.
    """

    def __init__(self, user_id: str, backend: CallBackend, *, answer_timeout: float = ANSWER_TIMEOUT_SEC):
        self.user_id = user_id
        self.backend = backend
        self.answer_timeout = answer_timeout
        self._state = CallState()
        self._timer: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> CallState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def dispatch(self, event) -> Transition:
        now = asyncio.get_running_loop().time()
        transition = reduce(self._state, event, now, timeout=self.answer_timeout)
        # commit before any await so interleaved events see the new state
        self._state = transition.state
        follow_ups = []
        for effect in transition.effects:
            follow_up = await self._run(effect)
            if follow_up is not None:
                follow_ups.append(follow_up)
        # after every effect of this transition has been announced
        for event in follow_ups:
            await self.dispatch(event)
        return transition

    # ---- push stream ----

    async def handle_push(self, message: dict):
        kind = message.get("type")
        payload = message.get("payload") or {}

        if kind == "incoming_call_signal":
            await self.dispatch(
                BroadcastOffer(
                    caller_id=str(payload.get("id", "")),
                    caller_name=payload.get("name") or "",
                    caller_avatar=payload.get("avatar") or "",
                    call_type=payload.get("callType") or "video",
                )
            )
        elif kind == "call_session":
            if not self._is_fresh_ringing(payload):
                logger.debug("ignoring stale call record %s", payload.get("id"))
                return
            offer = ConfirmedOffer(
                call_id=str(payload["id"]),
                caller_id=str(payload.get("caller_id", "")),
                channel_name=payload.get("channel_name") or "",
                token=payload.get("token") or "",
                app_id=payload.get("app_id") or "",
                caller_name=payload.get("caller_name") or "",
                caller_avatar=payload.get("caller_avatar") or "",
                call_type=payload.get("call_type") or "video",
            )
            if classify(self._state, offer) is Merge.SUPERSEDE:
                logger.warning("busy, auto-rejecting call %s from %s", offer.call_id, offer.caller_id)
            await self.dispatch(offer)
        elif kind == "call_status":
            await self.dispatch(RemoteStatus(call_id=str(payload.get("id")), status=payload.get("status") or ""))
        else:
            logger.debug("unhandled push %r", kind)

    def _is_fresh_ringing(self, record: dict) -> bool:
        if record.get("status") != "ringing" or "id" not in record:
            return False
        if record.get("receiver_id") not in (None, self.user_id):
            return False
        created = _parse_timestamp(record.get("created_at"))
        if created is None:
            return True
        age = (datetime.now(timezone.utc) - created).total_seconds()
        return age < self.answer_timeout

    # ---- user actions ----

    async def accept(self) -> Transition:
        return await self.dispatch(Accept())

    async def reject(self) -> Transition:
        return await self.dispatch(Reject())

    async def hang_up(self) -> Transition:
        return await self.dispatch(HangUp())

    async def cancel_outgoing(self) -> Transition:
        return await self.dispatch(Cancel())

    async def start_outgoing(
        self,
        receiver_id: str,
        *,
        receiver_name: str = "",
        receiver_avatar: str = "",
        call_type: str = "video",
        match_id: str = "",
    ) -> Optional[OutgoingCall]:
        """
        Ring ``receiver_id``. Returns None when we are busy ourselves; backend
        failures clear the ringing state and propagate.
        """
        await self.dispatch(
            OutgoingStarted(
                receiver_id=receiver_id,
                receiver_name=receiver_name,
                receiver_avatar=receiver_avatar,
                call_type=call_type,
            )
        )
        if self._state.outgoing is None or self._state.outgoing.receiver_id != receiver_id:
            return None

        try:
            record = await self.backend.initiate_call(
                self.user_id, receiver_id, match_id=match_id, call_type=call_type
            )
        except PlatformError:
            await self.dispatch(Cancel())
            raise

        await self.dispatch(
            OutgoingPlaced(
                call_id=str(record["id"]),
                channel_name=record.get("channel_name") or "",
                token=record.get("token") or "",
                app_id=record.get("app_id") or "",
            )
        )
        return self._state.outgoing

    async def close(self):
        self._cancel_timer()

    # ---- effects ----

    async def _run(self, effect):
        follow_up = None
        if isinstance(effect, ArmTimer):
            self._arm_timer(effect.deadline)
        elif isinstance(effect, CancelTimer):
            self._cancel_timer()
        elif isinstance(effect, AnswerCall):
            changed = await self._call_backend("answer", self.backend.answer_call, effect.call_id)
            if changed is False:
                logger.info("call %s finished before it was answered", effect.call_id)
                follow_up = RemoteStatus(call_id=effect.call_id, status=MISSED)
        elif isinstance(effect, RejectCall):
            await self._call_backend("reject", self.backend.reject_call, effect.call_id)
        elif isinstance(effect, EndCall):
            await self._call_backend("end", self.backend.end_call, effect.call_id)

        for listener in list(self._listeners):
            listener(effect, self._state)
        return follow_up

    async def _call_backend(self, action: str, fn, call_id: str):
        try:
            return await fn(call_id)
        except PlatformError as exc:
            # the record stays ringing and ages out server side
            logger.warning("%s call %s failed: %s", action, call_id, exc)
            return None

    def _arm_timer(self, deadline: float):
        self._cancel_timer()
        self._timer = asyncio.ensure_future(self._expire_at(deadline))
        self._timer.add_done_callback(_log_timer_failure)

    def _cancel_timer(self):
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    async def _expire_at(self, deadline: float):
        delay = deadline - asyncio.get_running_loop().time()
        if delay > 0:
            await asyncio.sleep(delay)
        if self._timer is asyncio.current_task():
            self._timer = None
        await self.dispatch(AnswerTimeout(deadline))
