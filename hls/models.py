import uuid
from django.db import models

class Job(models.Model):
    class Status(models.TextChoices):
        TRIGGERED = "TRIGGERED"
        FILTERED_OUT = "FILTERED_OUT"
        DOWNLOADING = "DOWNLOADING"
        ENCODING = "ENCODING"
        ENCODE_FAILED = "ENCODE_FAILED"
        PUBLISHING = "PUBLISHING"
        COMPOSING = "COMPOSING"
        RECONCILING = "RECONCILING"
        RECONCILE_FAILED = "RECONCILE_FAILED"
        NOTIFYING = "NOTIFYING"
        DONE = "DONE"
        FAILED = "FAILED"

    TERMINAL = {
        Status.FILTERED_OUT,
        Status.ENCODE_FAILED,
        Status.RECONCILE_FAILED,
        Status.DONE,
        Status.FAILED,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    bucket = models.CharField(max_length=255)
    object_name = models.CharField(max_length=1024)   # source object path in the bucket
    content_type = models.CharField(max_length=128, blank=True, default="")
    size = models.BigIntegerField(null=True, blank=True)
    generation = models.CharField(max_length=64, blank=True, default="")  # storage object generation, dedup key
    metadata = models.JSONField(default=dict, blank=True)  # custom object metadata from the upload

    status = models.CharField(max_length=24, choices=Status.choices, default=Status.TRIGGERED)
    progress = models.PositiveSmallIntegerField(default=0)  # 0..100
    outputs = models.JSONField(default=list, blank=True)    # [{path, content_type, cache_control, url}]
    error = models.TextField(blank=True, default="")

    sermon_id = models.CharField(max_length=128, blank=True, default="")
    hls_url = models.URLField(max_length=2048, blank=True, default="")
    poster_url = models.URLField(max_length=2048, blank=True, default="")
    duration_sec = models.FloatField(null=True, blank=True)
    notified = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["bucket", "object_name", "generation"], name="hls_job_object_idx"),
        ]
        constraints = [
            # One job per object generation; events without a generation are never deduplicated.
            models.UniqueConstraint(
                fields=["bucket", "object_name", "generation"],
                condition=~models.Q(generation=""),
                name="hls_job_unique_generation",
            ),
        ]

    def __str__(self):
        return f"{self.object_name} [{self.status}]"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL
