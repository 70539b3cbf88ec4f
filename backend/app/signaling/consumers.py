# app/signaling/consumers.py
import json
import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from app.lobby.matcher import get_lobby
from app.lobby.registry import Participant
from app.signaling.relay import relay
from app.signaling.rooms import clean_identifier, pair_room_name

logger = logging.getLogger(__name__)

LOBBY_MATCHED_HANDLER = "lobby.matched"  # handler: lobby_matched


class SignalingConsumer(AsyncJsonWebsocketConsumer):
    """
    WS signaling protocol
      - URL: ws://<host>/ws/signaling/
      - Envelope (both directions):
        { "type": "...", "payload": {...} }

      client -> server
        join_lobby    {scope, mode, sessionId, userId}
        leave_lobby   {}
        join_room     {userId, peerId}          (matched pair, direct messaging)
        leave_room    {room}
        send_message  {room, text, sender}
        webrtc_signal {room, signal}

      server -> client
        waiting         {scope, mode}
        match_found     {peerId, peerUserId, channelName, initiator}
        room_joined     {room}
        receive_message {text, sender}
        webrtc_signal   {signal, from}
        peer_left       {room, from}
        match_reveal    {users: [{id, name}, {id, name}]}
        error           {code, message}
    """

    async def connect(self):
        self.lobby = get_lobby()
        self.participant = None
        self.user_id = None
        self.rooms = set()
        await self.accept()

    async def disconnect(self, close_code):
        lobby = getattr(self, "lobby", None)
        if lobby is None:
            return

        # 1) unregister first: a pairing in flight checks the registry before it commits
        removed = await lobby.disconnect(self.channel_name)
        if removed:
            logger.debug("%s left the lobby on disconnect", self.channel_name)

        # 2) rooms we were put into by a peer's pairing may not have reached us yet
        rooms = set(self.rooms) | set(lobby.sessions.rooms_of(self.channel_name))
        for room in sorted(rooms):
            await self._leave_room(room)

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return

        try:
            data = json.loads(text_data)
        except ValueError:
            await self._send_error("INVALID_JSON", "frame is not valid JSON")
            return

        if not isinstance(data, dict):
            await self._send_error("INVALID_ENVELOPE", "frame must be an object")
            return

        handler = self._client_handlers().get(data.get("type"))
        if handler is None:
            await self._send_error("UNKNOWN_TYPE", f"unknown type: {data.get('type')}")
            return

        payload = data.get("payload")
        await handler(payload if isinstance(payload, dict) else {})

    def _client_handlers(self):
        return {
            "join_lobby": self.on_join_lobby,
            "leave_lobby": self.on_leave_lobby,
            "join_room": self.on_join_room,
            "leave_room": self.on_leave_room,
            "send_message": self.on_send_message,
            "webrtc_signal": self.on_webrtc_signal,
        }

    # ---- client events ----

    async def on_join_lobby(self, payload):
        scope = clean_identifier(payload.get("scope"))
        mode = clean_identifier(payload.get("mode"))
        session_id = clean_identifier(payload.get("sessionId"))
        user_id = clean_identifier(payload.get("userId"))
        if not (scope and mode and session_id and user_id):
            await self._send_error(
                "VALIDATION_ERROR", "scope, mode, sessionId and userId are required"
            )
            return

        self.participant = Participant(
            connection=self.channel_name,
            session_id=session_id,
            user_id=user_id,
        )
        self.user_id = user_id

        while True:
            pairing = await self.lobby.join(scope, mode, self.participant)
            if pairing is None:
                await self.send_json({"type": "waiting", "payload": {"scope": scope, "mode": mode}})
                return
            if await self._enter_pair_room(pairing):
                break
            # peer disconnected while the room was being set up; back in line
            logger.info("lobby %s/%s: peer %s vanished, requeueing", scope, mode, pairing.initiator.session_id)

        room = pairing.channel_name
        peer = pairing.initiator

        # the waiting side offers first, so exactly one initiator
        await self.channel_layer.send(
            peer.connection,
            {
                "type": LOBBY_MATCHED_HANDLER,
                "room": room,
                "payload": {
                    "peerId": self.participant.session_id,
                    "peerUserId": self.participant.user_id,
                    "channelName": room,
                    "initiator": True,
                },
            },
        )
        await self.send_json(
            {
                "type": "match_found",
                "payload": {
                    "peerId": peer.session_id,
                    "peerUserId": peer.user_id,
                    "channelName": room,
                    "initiator": False,
                },
            }
        )

    async def _enter_pair_room(self, pairing) -> bool:
        room = pairing.channel_name
        peer = pairing.initiator

        # 1) both connections into the pair room
        await self.channel_layer.group_add(room, peer.connection)
        await self.channel_layer.group_add(room, self.channel_name)

        # 2) registry update and liveness check with no await in between: a peer
        #    that unregisters later finds the room through rooms_of and sends peer_left
        self.lobby.sessions.join_room(room, peer.connection)
        self.lobby.sessions.join_room(room, self.channel_name)
        if self.lobby.sessions.get(peer.connection) is not None:
            self.rooms.add(room)
            return True

        # 3) peer already gone: undo
        self.lobby.sessions.leave_room(room, peer.connection)
        self.lobby.sessions.leave_room(room, self.channel_name)
        await self.channel_layer.group_discard(room, peer.connection)
        await self.channel_layer.group_discard(room, self.channel_name)
        return False

    async def on_leave_lobby(self, payload):
        await self.lobby.leave(self.channel_name)
        await self.send_json({"type": "left_lobby", "payload": {}})

    async def on_join_room(self, payload):
        user_id = clean_identifier(payload.get("userId"))
        peer_id = clean_identifier(payload.get("peerId"))
        if not user_id or not peer_id or user_id == peer_id:
            await self._send_error("VALIDATION_ERROR", "userId and peerId are required")
            return

        room = pair_room_name(user_id, peer_id)
        if not self.lobby.sessions.join_room(room, self.channel_name):
            await self._send_error("ROOM_FULL", "room already has two members")
            return

        self.user_id = user_id
        await self.channel_layer.group_add(room, self.channel_name)
        self.rooms.add(room)
        await self.send_json({"type": "room_joined", "payload": {"room": room}})

    async def on_leave_room(self, payload):
        room = payload.get("room")
        if room in self.rooms:
            await self._leave_room(room)

    async def on_send_message(self, payload):
        room = payload.get("room")
        if room not in self.rooms:
            logger.debug("send_message to foreign room %r dropped", room)
            return
        await relay(
            room,
            "receive_message",
            {"text": payload.get("text"), "sender": payload.get("sender")},
            sender=self.channel_name,
            layer=self.channel_layer,
        )

    async def on_webrtc_signal(self, payload):
        room = payload.get("room")
        if room not in self.rooms:
            logger.debug("webrtc_signal to foreign room %r dropped", room)
            return
        await relay(
            room,
            "webrtc_signal",
            {"signal": payload.get("signal"), "from": self._identity()},
            sender=self.channel_name,
            layer=self.channel_layer,
        )

    # ---- group handlers ----

    async def relay_message(self, event):
        # group broadcast comes back to the sender too
        if event.get("sender") == self.channel_name:
            return
        await self.send_json({"type": event.get("event"), "payload": event.get("payload")})

    async def lobby_matched(self, event):
        self.rooms.add(event["room"])
        await self.send_json({"type": "match_found", "payload": event.get("payload") or {}})

    # ---- helpers ----

    async def _leave_room(self, room: str):
        # tell the peer first, then drop out of the group
        await relay(
            room,
            "peer_left",
            {"room": room, "from": self._identity()},
            sender=self.channel_name,
            layer=self.channel_layer,
        )
        await self.channel_layer.group_discard(room, self.channel_name)
        self.lobby.sessions.leave_room(room, self.channel_name)
        self.rooms.discard(room)

    def _identity(self):
        if self.participant is not None:
            return self.participant.session_id
        return self.user_id or self.channel_name

    async def _send_error(self, code: str, message: str):
        await self.send_json({"type": "error", "payload": {"code": code, "message": message}})
