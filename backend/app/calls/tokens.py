# app/calls/tokens.py
import secrets
import string
import time

from agora_token_builder import RtcTokenBuilder
from django.conf import settings

from app.common.errors import TransientDependencyError

ROLE_PUBLISHER = 1  # can send and receive
AUTO_UID = 0  # media SDK assigns the uid

_ALPHABET = string.ascii_lowercase + string.digits


def new_channel_name() -> str:
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"call_{int(time.time() * 1000)}_{suffix}"


def issue_rtc_credentials(channel_name: str, *, ttl_sec: int) -> dict:
    app_id = settings.AGORA_APP_ID
    certificate = settings.AGORA_APP_CERTIFICATE
    if not app_id or not certificate:
        raise TransientDependencyError("media credentials not configured", dependency="media")

    expires_at = int(time.time()) + ttl_sec
    token = RtcTokenBuilder.buildTokenWithUid(
        app_id, certificate, channel_name, AUTO_UID, ROLE_PUBLISHER, expires_at
    )
    return {
        "token": token,
        "channelName": channel_name,
        "appId": app_id,
        "uid": str(AUTO_UID),
    }
