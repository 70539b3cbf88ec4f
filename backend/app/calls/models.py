# app/calls/models.py
import uuid
from django.db import models


class CallSession(models.Model):
    STATUS_CHOICES = (
        ("ringing", "ringing"),
        ("active", "active"),
        ("ended", "ended"),
        ("rejected", "rejected"),
        ("missed", "missed"),
    )
    CALL_TYPE_CHOICES = (
        ("audio", "audio"),
        ("video", "video"),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    caller_id = models.CharField(max_length=40, db_index=True)
    receiver_id = models.CharField(max_length=40, db_index=True)
    match_id = models.CharField(max_length=40, blank=True, default="")

    # media credentials handed to both sides
    channel_name = models.CharField(max_length=64)
    token = models.TextField()
    app_id = models.CharField(max_length=64)

    call_type = models.CharField(max_length=5, choices=CALL_TYPE_CHOICES, default="video")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="ringing")

    created_at = models.DateTimeField(auto_now_add=True)
    answered_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.id} {self.caller_id}->{self.receiver_id} {self.status}"
