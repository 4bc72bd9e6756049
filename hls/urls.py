from django.urls import path
from .views import JobDetailView, StorageEventView, ping

urlpatterns = [
    path("ping/", ping, name="ping"),
    path("events/storage/", StorageEventView.as_view(), name="storage_event"),
    path("jobs/<uuid:job_id>/", JobDetailView.as_view(), name="job_detail"),
]
