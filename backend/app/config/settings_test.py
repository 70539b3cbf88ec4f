# config/settings_test.py
"""
With these settings, tests run without Redis or Postgres.
"""

from .settings import *  # noqa: F401,F403

SECRET_KEY = "test-secret-key-not-for-production"
DEBUG = False
ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
}

AGORA_APP_ID = "test-app-id"
AGORA_APP_CERTIFICATE = "test-app-certificate"

# let pytest's caplog see app loggers
LOGGING["loggers"]["app"]["propagate"] = True  # noqa: F405
