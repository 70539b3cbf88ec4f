# app/matches/urls.py
from django.urls import path
from .views import AcceptMatchView, MatchStatusView

urlpatterns = [
    path("accept-match", AcceptMatchView.as_view()),
    path("accept-match/", AcceptMatchView.as_view()),
    path("match-status", MatchStatusView.as_view()),
    path("match-status/", MatchStatusView.as_view()),
]
