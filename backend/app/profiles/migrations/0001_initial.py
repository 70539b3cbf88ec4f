from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Profile",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("user_id", models.CharField(db_index=True, max_length=40, unique=True)),
                ("real_name", models.CharField(blank=True, default="", max_length=100)),
                ("anonymous_id", models.CharField(blank=True, default="", max_length=100)),
                ("avatar", models.TextField(blank=True, default="")),
            ],
        ),
    ]
