# app/signaling/relay.py
"""
Signal relay on top of the channel layer.

A room is a channel-layer group. Payloads are opaque, delivered at most once,
never buffered: sending into a room where nobody else listens is a no-op.
Consumers drop events whose ``sender`` is their own channel name, so the sender
never gets an echo.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

RELAY_HANDLER = "relay.message"  # consumer method: relay_message


def relay_event(event: str, payload, sender=None) -> dict:
    return {
        "type": RELAY_HANDLER,
        "event": event,
        "payload": payload,
        "sender": sender,
    }


async def relay(room: str, event: str, payload, *, sender=None, layer=None):
    layer = layer or get_channel_layer()
    if layer is None:
        logger.debug("no channel layer configured, dropping %s for %s", event, room)
        return
    await layer.group_send(room, relay_event(event, payload, sender))


def broadcast(room: str, event: str, payload) -> None:
    """
    Server-originated event from sync code (views / services).
    """
    async_to_sync(relay)(room, event, payload)
