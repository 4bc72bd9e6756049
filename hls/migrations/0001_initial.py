import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Job",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("bucket", models.CharField(max_length=255)),
                ("object_name", models.CharField(max_length=1024)),
                ("content_type", models.CharField(blank=True, default="", max_length=128)),
                ("size", models.BigIntegerField(blank=True, null=True)),
                ("generation", models.CharField(blank=True, default="", max_length=64)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("TRIGGERED", "Triggered"),
                            ("FILTERED_OUT", "Filtered Out"),
                            ("DOWNLOADING", "Downloading"),
                            ("ENCODING", "Encoding"),
                            ("ENCODE_FAILED", "Encode Failed"),
                            ("PUBLISHING", "Publishing"),
                            ("COMPOSING", "Composing"),
                            ("RECONCILING", "Reconciling"),
                            ("RECONCILE_FAILED", "Reconcile Failed"),
                            ("NOTIFYING", "Notifying"),
                            ("DONE", "Done"),
                            ("FAILED", "Failed"),
                        ],
                        default="TRIGGERED",
                        max_length=24,
                    ),
                ),
                ("progress", models.PositiveSmallIntegerField(default=0)),
                ("outputs", models.JSONField(blank=True, default=list)),
                ("error", models.TextField(blank=True, default="")),
                ("sermon_id", models.CharField(blank=True, default="", max_length=128)),
                ("hls_url", models.URLField(blank=True, default="", max_length=2048)),
                ("poster_url", models.URLField(blank=True, default="", max_length=2048)),
                ("duration_sec", models.FloatField(blank=True, null=True)),
                ("notified", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["bucket", "object_name", "generation"], name="hls_job_object_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("generation", ""), _negated=True),
                        fields=("bucket", "object_name", "generation"),
                        name="hls_job_unique_generation",
                    ),
                ],
            },
        ),
    ]
