# app/calls/views.py
from django.conf import settings
from rest_framework.views import APIView

from app.calls.models import CallSession
from app.calls.serializers import InitiateCallSerializer
from app.calls.services import (
    ACTIVE,
    ENDED,
    REJECTED,
    CallNotFound,
    UserBusy,
    initiate_call,
    is_user_busy,
    serialize_call,
    set_call_status,
)
from app.calls.tokens import issue_rtc_credentials, new_channel_name
from app.common.responses import fail, ok
from app.signaling.rooms import clean_identifier

# url action -> target status
ACTION_STATUS = {
    "answer": ACTIVE,
    "reject": REJECTED,
    "end": ENDED,
}


class RtcTokenView(APIView):
    """
    POST /api/agora-token
    res: { token, channelName, appId, uid } for a fresh channel
    """

    def post(self, request):
        credentials = issue_rtc_credentials(
            new_channel_name(), ttl_sec=settings.RTC_TOKEN_TTL_SEC
        )
        return ok(credentials)


class InitiateCallView(APIView):
    """
    POST /api/initiate-call
    body: { "callerId", "receiverId", "matchId", "callType": "audio"|"video" }
    res:  call session record
    """

    def post(self, request):
        ser = InitiateCallSerializer(data=request.data)
        if not ser.is_valid():
            return fail("VALIDATION_ERROR", str(ser.errors))
        data = ser.validated_data

        try:
            call = initiate_call(
                data["callerId"],
                data["receiverId"],
                match_id=data["matchId"],
                call_type=data["callType"],
            )
        except UserBusy:
            return fail("USER_BUSY", "user is on another call", 409)

        return ok(serialize_call(call))


class CallDetailView(APIView):
    """GET /api/calls/<call_id>"""

    def get(self, request, call_id):
        call = CallSession.objects.filter(id=call_id).first()
        if not call:
            return fail("CALL_NOT_FOUND", "call not found", 404)
        return ok(serialize_call(call))


class CallActionView(APIView):
    """
    POST /api/calls/<call_id>/answer | reject | end
    res: { call, changed }
    """

    def post(self, request, call_id, action):
        status = ACTION_STATUS.get(action)
        if status is None:
            return fail("VALIDATION_ERROR", f"unknown action: {action}", 404)

        try:
            call, changed = set_call_status(call_id, status)
        except CallNotFound:
            return fail("CALL_NOT_FOUND", "call not found", 404)

        return ok({"call": serialize_call(call), "changed": changed})


class CallBusyView(APIView):
    """
    GET /api/calls/busy/<user_id>?ignoreCallerId=...
    res: { busy }
    """

    def get(self, request, user_id):
        user_id = clean_identifier(user_id)
        if not user_id:
            return fail("VALIDATION_ERROR", "invalid user id")
        ignore = clean_identifier(request.query_params.get("ignoreCallerId"))
        return ok({"busy": is_user_busy(user_id, ignore_caller_id=ignore)})
