# app/config/urls.py
from django.contrib import admin
from django.urls import path, include

from app.config.health import health


urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health", health),
    path("api/health/", health),
    path("api/", include("app.matches.urls")),
    path("api/", include("app.calls.urls")),
]
