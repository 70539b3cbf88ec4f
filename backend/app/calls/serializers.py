# app/calls/serializers.py
from rest_framework import serializers

from app.calls.models import CallSession
from app.signaling.rooms import IDENTIFIER_RE


class CallSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CallSession
        fields = [
            "id",
            "caller_id",
            "receiver_id",
            "match_id",
            "channel_name",
            "token",
            "app_id",
            "call_type",
            "status",
            "created_at",
            "answered_at",
            "ended_at",
        ]


class InitiateCallSerializer(serializers.Serializer):
    callerId = serializers.RegexField(IDENTIFIER_RE)
    receiverId = serializers.RegexField(IDENTIFIER_RE)
    matchId = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    callType = serializers.ChoiceField(choices=["audio", "video"], default="video")

    def validate(self, attrs):
        if attrs["callerId"] == attrs["receiverId"]:
            raise serializers.ValidationError("cannot call yourself")
        return attrs
