from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ClusterEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uid", models.CharField(max_length=128, unique=True)),
                ("name", models.CharField(blank=True, max_length=253)),
                ("namespace", models.CharField(db_index=True, max_length=253)),
                ("type", models.CharField(db_index=True, max_length=32)),
                ("reason", models.CharField(blank=True, db_index=True, max_length=128)),
                ("message", models.TextField(blank=True)),
                ("involved_kind", models.CharField(blank=True, max_length=128)),
                ("involved_name", models.CharField(blank=True, max_length=253)),
                ("last_timestamp", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("raw", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["last_timestamp", "id"],
                "indexes": [models.Index(fields=["namespace", "type"], name="events_namespace_type_idx")],
            },
        ),
    ]
