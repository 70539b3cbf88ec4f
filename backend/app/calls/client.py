# app/calls/client.py
"""
Python client for the call API and the incoming-call push stream.

    backend = HttpCallBackend("https://api.example")
    controller = CallSessionController(my_id, backend)
    await listen_for_calls("wss://api.example/ws/calls/<my_id>/", controller)
"""
import json
import logging

from websockets.asyncio.client import connect

from app.common.http import ApiClient
from app.calls.controller import CallBackend, CallSessionController

logger = logging.getLogger(__name__)


class HttpCallBackend(ApiClient, CallBackend):
    async def initiate_call(self, caller_id: str, receiver_id: str, *, match_id: str = "", call_type: str = "video") -> dict:
        body = await self.post(
            "/api/initiate-call",
            {
                "callerId": caller_id,
                "receiverId": receiver_id,
                "matchId": match_id,
                "callType": call_type,
            },
        )
        return body["data"]

    async def answer_call(self, call_id: str) -> bool:
        body = await self.post(f"/api/calls/{call_id}/answer")
        return bool((body.get("data") or {}).get("changed"))

    async def reject_call(self, call_id: str) -> None:
        await self.post(f"/api/calls/{call_id}/reject")

    async def end_call(self, call_id: str) -> None:
        await self.post(f"/api/calls/{call_id}/end")


async def listen_for_calls(url: str, controller: CallSessionController, *, connector=connect):
    """
    Feed every push frame into the controller, one at a time, until the socket closes.
    """
    async with connector(url) as ws:
        async for raw in ws:
            try:
                message = json.loads(raw)
            except ValueError:
                logger.warning("dropping non-JSON push frame")
                continue
            if isinstance(message, dict):
                await controller.handle_push(message)
