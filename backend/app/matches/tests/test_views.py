from unittest import mock

import pytest
from rest_framework.test import APIClient

from app.common.errors import TransientDependencyError


@pytest.fixture
def client():
    return APIClient()


def _accept(client, my_id, target_id, **extra):
    return client.post(
        "/api/accept-match", {"myId": my_id, "targetId": target_id, **extra}, format="json"
    )


@pytest.mark.django_db
def test_accept_one_sided(client):
    res = _accept(client, "u1", "u2")

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["isMutual"] is False
    assert body["data"] == {"matchId": None}


@pytest.mark.django_db
def test_accept_mutual_returns_match_id(client):
    _accept(client, "u2", "u1")
    res = _accept(client, "u1", "u2")

    body = res.json()
    assert body["isMutual"] is True
    assert body["data"]["matchId"] is not None


@pytest.mark.django_db
@pytest.mark.parametrize(
    "payload",
    [
        {"myId": "u1"},
        {"myId": "u1", "targetId": "u1"},
        {"myId": "u1", "targetId": "bad id"},
        {"myId": "u1", "targetId": "u2", "action": "superlike"},
        {"myId": "u1", "targetId": "u2", "room": "no spaces allowed"},
    ],
)
def test_accept_validation(client, payload):
    res = client.post("/api/accept-match", payload, format="json")

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.django_db
def test_accept_store_down_is_503(client):
    with mock.patch(
        "app.matches.views.record_interest",
        side_effect=TransientDependencyError("db down", dependency="database"),
    ):
        res = _accept(client, "u1", "u2")

    assert res.status_code == 503
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "DEPENDENCY_UNAVAILABLE"


@pytest.mark.django_db
def test_match_status(client):
    res = client.get("/api/match-status", {"myId": "u1", "targetId": "u2"})
    assert res.json()["data"] == {"matched": False, "matchId": None}

    _accept(client, "u1", "u2")
    match_id = _accept(client, "u2", "u1").json()["data"]["matchId"]

    res = client.get("/api/match-status/", {"myId": "u2", "targetId": "u1"})
    assert res.json()["data"] == {"matched": True, "matchId": match_id}


@pytest.mark.django_db
def test_match_status_requires_ids(client):
    res = client.get("/api/match-status", {"myId": "u1"})
    assert res.status_code == 400
