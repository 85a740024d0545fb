from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Notifier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                (
                    "channel",
                    models.CharField(
                        choices=[("slack", "Slack"), ("webhook", "Webhook")],
                        default="slack",
                        help_text="Sink type used to deliver notifications",
                        max_length=50,
                    ),
                ),
                ("webhook", models.CharField(help_text="Target sink URL", max_length=2048)),
                (
                    "auth_token",
                    models.CharField(
                        blank=True,
                        help_text="Optional bearer token sent to generic webhooks",
                        max_length=512,
                    ),
                ),
                ("namespaces", models.JSONField(default=list, help_text="Namespaces to admit (required)")),
                (
                    "event_types",
                    models.JSONField(default=list, help_text="Event types to admit, e.g. Normal, Warning (required)"),
                ),
                (
                    "event_reasons",
                    models.JSONField(blank=True, default=list, help_text="Reasons to admit; empty admits any"),
                ),
                (
                    "event_object_types",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Involved object kinds to admit; empty admits any",
                    ),
                ),
                (
                    "message_contains",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Case-insensitive substrings; the message must contain at least one",
                    ),
                ),
                ("message_prefix", models.CharField(blank=True, max_length=200)),
                ("enable_verbose", models.BooleanField(default=False)),
                ("is_enabled", models.BooleanField(default=True)),
                ("last_event_time", models.DateTimeField(blank=True, null=True)),
                ("recent_events", models.JSONField(blank=True, default=list)),
                ("status_message", models.CharField(blank=True, max_length=200)),
                ("status_updated_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Notifier",
                "verbose_name_plural": "Notifiers",
                "ordering": ["name"],
            },
        ),
    ]
