# app/matches/models.py
from django.db import models

from app.signaling.rooms import canonical_pair, pair_room_name


class Swipe(models.Model):
    """Directional interest: liker -> target."""

    ACTION_CHOICES = (
        ("like", "like"),
        ("pass", "pass"),
    )

    liker_id = models.CharField(max_length=40, db_index=True)
    target_id = models.CharField(max_length=40, db_index=True)
    action = models.CharField(max_length=10, choices=ACTION_CHOICES, default="like")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["liker_id", "target_id"], name="uniq_swipe_liker_target"
            ),
        ]

    @property
    def pair_key(self):
        return canonical_pair(self.liker_id, self.target_id)


class Match(models.Model):
    """
    Unordered pair stored as (min, max). The unique constraint is what makes
    concurrent double-triggers from both sides converge to one row.
    """

    user1_id = models.CharField(max_length=40, db_index=True)
    user2_id = models.CharField(max_length=40, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user1_id", "user2_id"], name="uniq_match_pair"
            ),
        ]

    @property
    def pair_key(self):
        return (self.user1_id, self.user2_id)

    @property
    def room_name(self) -> str:
        return pair_room_name(self.user1_id, self.user2_id)

    def other(self, user_id: str) -> str:
        return self.user2_id if str(user_id) == self.user1_id else self.user1_id

    def __str__(self):
        return f"{self.user1_id} <> {self.user2_id}"


class Notification(models.Model):
    TYPE_CHOICES = (("match", "match"),)

    user_id = models.CharField(max_length=40, db_index=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    title = models.CharField(max_length=100)
    message = models.CharField(max_length=255, blank=True, default="")
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
