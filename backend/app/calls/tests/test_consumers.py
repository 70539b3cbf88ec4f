import pytest
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from app.config.routing import websocket_urlpatterns
from app.signaling.relay import relay
from app.signaling.rooms import calls_group_name

application = URLRouter(websocket_urlpatterns)


@pytest.mark.asyncio
async def test_call_events_are_pushed_to_the_user():
    comm = WebsocketCommunicator(application, "/ws/calls/u2/")
    connected, _ = await comm.connect()
    assert connected

    await relay(calls_group_name("u2"), "call_status", {"id": "c1", "status": "ended"})

    assert await comm.receive_json_from() == {
        "type": "call_status",
        "payload": {"id": "c1", "status": "ended"},
    }
    await comm.disconnect()


@pytest.mark.asyncio
async def test_other_users_events_are_not_delivered():
    comm = WebsocketCommunicator(application, "/ws/calls/u2/")
    await comm.connect()

    await relay(calls_group_name("u3"), "call_status", {"id": "c1", "status": "ended"})

    assert await comm.receive_nothing()
    await comm.disconnect()


@pytest.mark.asyncio
async def test_ping_pong_and_garbage():
    comm = WebsocketCommunicator(application, "/ws/calls/u2/")
    await comm.connect()

    await comm.send_to(text_data="not json")
    await comm.send_json_to({"type": "ping"})

    assert await comm.receive_json_from() == {"type": "pong"}
    await comm.disconnect()


@pytest.mark.asyncio
async def test_invalid_user_id_is_refused():
    comm = WebsocketCommunicator(application, "/ws/calls/" + "x" * 41 + "/")

    connected, code = await comm.connect()

    assert not connected
    assert code == 4400
