from rest_framework import serializers
from .models import Job


class JobSerializer(serializers.ModelSerializer):
    class Meta:
        model = Job
        fields = [
            "id",
            "bucket",
            "object_name",
            "status",
            "progress",
            "outputs",
            "error",
            "sermon_id",
            "hls_url",
            "poster_url",
            "duration_sec",
            "notified",
            "created_at",
            "updated_at",
        ]


class StorageEventSerializer(serializers.Serializer):
    """
    The finalized object resource as delivered by the storage trigger.
    Field names follow the storage API (camelCase).
    """
    bucket = serializers.CharField()
    name = serializers.CharField()
    contentType = serializers.CharField(required=False, allow_blank=True, default="")
    size = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    generation = serializers.CharField(required=False, allow_blank=True, default="")
    metadata = serializers.DictField(required=False, allow_null=True, default=dict)

    def to_internal_value(self, data):
        # Push deliveries wrap the object resource in a "data" envelope.
        if isinstance(data, dict) and isinstance(data.get("data"), dict) and "name" not in data:
            data = data["data"]
        return super().to_internal_value(data)
