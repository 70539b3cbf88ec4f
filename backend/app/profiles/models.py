# app/profiles/models.py
from django.db import models

ANONYMOUS_NAME = "Anonymous"


class Profile(models.Model):
    # mirror of the managed backend's profile rows; written elsewhere, read here
    user_id = models.CharField(max_length=40, unique=True, db_index=True)
    real_name = models.CharField(max_length=100, blank=True, default="")
    anonymous_id = models.CharField(max_length=100, blank=True, default="")
    avatar = models.TextField(blank=True, default="")

    @property
    def display_name(self) -> str:
        return self.real_name or self.anonymous_id or ANONYMOUS_NAME

    def __str__(self):
        return f"{self.user_id} {self.display_name}"
