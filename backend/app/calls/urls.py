# app/calls/urls.py
from django.urls import path
from .views import (
    CallActionView,
    CallBusyView,
    CallDetailView,
    InitiateCallView,
    RtcTokenView,
)

urlpatterns = [
    path("agora-token", RtcTokenView.as_view()),
    path("initiate-call", InitiateCallView.as_view()),
    path("calls/busy/<str:user_id>", CallBusyView.as_view()),
    path("calls/<uuid:call_id>", CallDetailView.as_view()),
    path("calls/<uuid:call_id>/<str:action>", CallActionView.as_view()),
]
