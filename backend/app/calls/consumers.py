# app/calls/consumers.py
import json
import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from app.signaling.rooms import calls_group_name, clean_identifier

logger = logging.getLogger(__name__)


class IncomingCallConsumer(AsyncJsonWebsocketConsumer):
    """
    Push stream of call events for one user.
      - URL: ws://<host>/ws/calls/<userId>/
      - server -> client: { "type": "incoming_call_signal" | "call_session" | "call_status", "payload": {...} }
      - client -> server: { "type": "ping" } -> { "type": "pong" }
    """

    async def connect(self):
        self.user_id = clean_identifier(self.scope["url_route"]["kwargs"]["user_id"])
        if not self.user_id:
            await self.close(code=4400)
            return

        self.group_name = calls_group_name(self.user_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        group = getattr(self, "group_name", None)
        if group:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return
        try:
            content = json.loads(text_data)
        except ValueError:
            logger.debug("non-JSON frame from %s ignored", self.user_id)
            return
        await self.receive_json(content)

    async def receive_json(self, content, **kwargs):
        if isinstance(content, dict) and content.get("type") == "ping":
            await self.send_json({"type": "pong"})

    async def relay_message(self, event):
        await self.send_json({"type": event.get("event"), "payload": event.get("payload")})
