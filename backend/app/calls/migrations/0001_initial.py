import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="CallSession",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("caller_id", models.CharField(db_index=True, max_length=40)),
                ("receiver_id", models.CharField(db_index=True, max_length=40)),
                ("match_id", models.CharField(blank=True, default="", max_length=40)),
                ("channel_name", models.CharField(max_length=64)),
                ("token", models.TextField()),
                ("app_id", models.CharField(max_length=64)),
                (
                    "call_type",
                    models.CharField(
                        choices=[("audio", "audio"), ("video", "video")],
                        default="video",
                        max_length=5,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("ringing", "ringing"),
                            ("active", "active"),
                            ("ended", "ended"),
                            ("rejected", "rejected"),
                            ("missed", "missed"),
                        ],
                        default="ringing",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("answered_at", models.DateTimeField(blank=True, null=True)),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
