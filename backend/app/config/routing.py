# app/config/routing.py
from django.urls import re_path

from app.calls.consumers import IncomingCallConsumer
from app.signaling.consumers import SignalingConsumer

websocket_urlpatterns = [
    re_path(r"^ws/signaling/?$", SignalingConsumer.as_asgi()),
    re_path(r"^ws/calls/(?P<user_id>[^/]+)/?$", IncomingCallConsumer.as_asgi()),
]
