import logging

from django.db import IntegrityError, transaction
from django.http import HttpResponse
from rest_framework import status, views
from rest_framework.response import Response

from .models import Job
from .serializers import JobSerializer, StorageEventSerializer
from .tasks import process_upload
from .utils import should_process

logger = logging.getLogger(__name__)


def ping(request):
    return HttpResponse("ok", content_type="text/plain")


class StorageEventView(views.APIView):
    """
    Receives "object finalized" notifications from the upload bucket and
    enqueues one transcoding job per accepted video.
    """

    def post(self, request):
        ser = StorageEventSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        event = ser.validated_data

        if not should_process(event):
            return Response({"status": "ignored"}, status=status.HTTP_200_OK)

        generation = event.get("generation") or ""
        try:
            with transaction.atomic():
                job = Job.objects.create(
                    bucket=event["bucket"],
                    object_name=event["name"],
                    content_type=event.get("contentType") or "",
                    size=event.get("size"),
                    generation=generation,
                    metadata=event.get("metadata") or {},
                )
        except IntegrityError:
            # Only rows with a generation are unique, so this is a redelivery.
            existing = Job.objects.get(bucket=event["bucket"], object_name=event["name"], generation=generation)
            logger.info("Duplicate delivery for %s (generation %s), job %s", event["name"], generation, existing.id)
            return Response({"status": "duplicate", "job_id": str(existing.id)}, status=status.HTTP_200_OK)

        logger.info("Queued HLS job %s for gs://%s/%s", job.id, job.bucket, job.object_name)

        process_upload.delay(str(job.id))  # queue background processing
        return Response({"job_id": str(job.id)}, status=status.HTTP_202_ACCEPTED)


class JobDetailView(views.APIView):
    def get(self, request, job_id):
        try:
            job = Job.objects.get(pk=job_id)
        except Job.DoesNotExist:
            return Response({"detail": "Not found"}, status=404)
        return Response(JobSerializer(job).data)
