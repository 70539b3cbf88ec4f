from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from app.calls.models import CallSession


@pytest.fixture
def client():
    return APIClient()


def _initiate(client, caller="u1", receiver="u2", **extra):
    return client.post(
        "/api/initiate-call", {"callerId": caller, "receiverId": receiver, **extra}, format="json"
    )


@pytest.mark.django_db
def test_agora_token(client):
    res = client.post("/api/agora-token", {}, format="json")

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["token"] == "rtc-token"
    assert data["appId"] == "test-app-id"
    assert data["uid"] == "0"
    assert data["channelName"].startswith("call_")


@pytest.mark.django_db
def test_agora_token_without_credentials_is_503(client, settings):
    settings.AGORA_APP_CERTIFICATE = ""

    res = client.post("/api/agora-token", {}, format="json")

    assert res.status_code == 503
    assert res.json()["error"]["code"] == "DEPENDENCY_UNAVAILABLE"


@pytest.mark.django_db
def test_initiate_call(client):
    res = _initiate(client, matchId="12", callType="audio")

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["caller_id"] == "u1"
    assert data["receiver_id"] == "u2"
    assert data["status"] == "ringing"
    assert data["call_type"] == "audio"
    assert CallSession.objects.filter(id=data["id"]).exists()


@pytest.mark.django_db
@pytest.mark.parametrize(
    "payload",
    [
        {"callerId": "u1"},
        {"callerId": "u1", "receiverId": "u1"},
        {"callerId": "u1", "receiverId": "u2", "callType": "hologram"},
    ],
)
def test_initiate_validation(client, payload):
    res = client.post("/api/initiate-call", payload, format="json")

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.django_db
def test_initiate_to_busy_user_is_409(client):
    _initiate(client, caller="u3", receiver="u2")

    res = _initiate(client, caller="u1", receiver="u2")

    assert res.status_code == 409
    assert res.json()["error"]["code"] == "USER_BUSY"


@pytest.mark.django_db
def test_stale_ringing_does_not_block(client):
    call_id = _initiate(client, caller="u3", receiver="u2").json()["data"]["id"]
    CallSession.objects.filter(id=call_id).update(created_at=timezone.now() - timedelta(seconds=60))

    res = _initiate(client, caller="u1", receiver="u2")

    assert res.status_code == 200


@pytest.mark.django_db
def test_call_actions(client):
    call_id = _initiate(client).json()["data"]["id"]

    res = client.post(f"/api/calls/{call_id}/answer")
    assert res.json()["data"]["changed"] is True
    assert res.json()["data"]["call"]["status"] == "active"

    res = client.post(f"/api/calls/{call_id}/end")
    assert res.json()["data"]["call"]["status"] == "ended"

    res = client.post(f"/api/calls/{call_id}/reject")
    assert res.status_code == 200
    assert res.json()["data"]["changed"] is False
    assert res.json()["data"]["call"]["status"] == "ended"


@pytest.mark.django_db
def test_call_detail(client):
    call_id = _initiate(client).json()["data"]["id"]

    res = client.get(f"/api/calls/{call_id}")

    assert res.status_code == 200
    assert res.json()["data"]["id"] == call_id


@pytest.mark.django_db
def test_unknown_call_is_404(client):
    missing = "00000000-0000-0000-0000-000000000000"

    assert client.get(f"/api/calls/{missing}").status_code == 404
    res = client.post(f"/api/calls/{missing}/answer")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "CALL_NOT_FOUND"


@pytest.mark.django_db
def test_unknown_action_is_404(client):
    call_id = _initiate(client).json()["data"]["id"]

    assert client.post(f"/api/calls/{call_id}/snooze").status_code == 404


@pytest.mark.django_db
def test_busy_endpoint(client):
    assert client.get("/api/calls/busy/u2").json()["data"] == {"busy": False}

    _initiate(client, caller="u1", receiver="u2")

    assert client.get("/api/calls/busy/u2").json()["data"] == {"busy": True}
    res = client.get("/api/calls/busy/u2", {"ignoreCallerId": "u1"})
    assert res.json()["data"] == {"busy": False}
