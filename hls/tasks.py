import logging
from pathlib import Path, PurePosixPath

from celery import shared_task
from django.conf import settings

from . import storage
from .catalog import CatalogClient, notify_completion, reconcile
from .exceptions import EncodeError, PublishError, ReconcileError
from .ffmpeg import EncodeSettings, capture_thumbnail, encode_rendition, probe_duration
from .manifest import compose_master, publish_master
from .models import Job
from .publisher import publish_rendition, publish_thumbnail
from .renditions import plan_renditions
from .utils import destination_prefix, make_work_dir, remove_work_dir, should_process

logger = logging.getLogger(__name__)

ERROR_LIMIT = 4000


def _update(job: Job, *, status=None, progress=None, error=None, outputs_append=None, **fields):
    changed = set(fields)
    if status:
        job.status = status
        changed.add("status")
    if progress is not None:
        job.progress = max(0, min(100, int(progress)))
        changed.add("progress")
    if error is not None:
        job.error = error[:ERROR_LIMIT]
        changed.add("error")
    if outputs_append:
        outs = job.outputs or []
        outs.extend(outputs_append)
        job.outputs = outs
        changed.add("outputs")
    for name, value in fields.items():
        setattr(job, name, value)
    job.save(update_fields=sorted(changed | {"updated_at"}))


def _progress_for_step(idx: int, total: int, start: float = 10.0, end: float = 60.0) -> int:
    """Map step index onto the [start, end] progress band of a stage."""
    if total <= 0:
        return int(end)
    return int(start + (end - start) * (idx / total))


def _event_for(job: Job) -> dict:
    return {"bucket": job.bucket, "name": job.object_name, "contentType": job.content_type}


def _missing_preconditions() -> list[str]:
    missing = []
    if not settings.SERVER_API_URL:
        missing.append("SERVER_API_URL")
    if not settings.HLS_CALLBACK_SECRET:
        missing.append("HLS_CALLBACK_SECRET")
    return missing


def _encode_all(job: Job, source: Path, out_dir: Path, renditions, encode: EncodeSettings) -> dict:
    """Encode renditions strictly one after another; the first failure aborts."""
    _update(job, status=Job.Status.ENCODING, progress=10)
    logger.info("Starting multi-bitrate ffmpeg jobs for %s", job.object_name)
    dirs = {}
    for idx, r in enumerate(renditions, start=1):
        dirs[r.name] = encode_rendition(source, out_dir, r, encode)
        logger.info("Rendition %s complete", r.name)
        _update(job, progress=_progress_for_step(idx, len(renditions)))
    logger.info("All renditions finished")
    return dirs


def _publish_all(job: Job, renditions, rendition_dirs: dict, prefix: str) -> dict:
    _update(job, status=Job.Status.PUBLISHING)
    playlist_urls = {}
    for idx, r in enumerate(renditions, start=1):
        try:
            published = publish_rendition(job.bucket, r, rendition_dirs[r.name], prefix)
        except PublishError as e:
            logger.error("Leaving %s out of the manifest: %s", r.name, e)
            continue
        playlist_urls[r.name] = published.playlist_url
        _update(
            job,
            progress=_progress_for_step(idx, len(renditions), 65, 85),
            outputs_append=[a.as_output() for a in published.assets],
        )
    if not playlist_urls:
        raise PublishError("No rendition could be published")
    return playlist_urls


def _run(job: Job, work_dir: str, prefix: str) -> str:
    renditions = plan_renditions(settings.HLS_MAX_BITRATES)
    encode = EncodeSettings.from_settings()

    _update(job, status=Job.Status.DOWNLOADING, progress=5)
    src_local = Path(work_dir) / PurePosixPath(job.object_name).name
    out_dir = Path(work_dir) / "out"
    out_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading source to %s", src_local)
    storage.download_file(job.bucket, job.object_name, src_local)

    rendition_dirs = _encode_all(job, src_local, out_dir, renditions, encode)

    duration = probe_duration(src_local)
    thumb = capture_thumbnail(src_local, out_dir)
    _update(job, progress=62, duration_sec=duration)

    playlist_urls = _publish_all(job, renditions, rendition_dirs, prefix)
    poster = publish_thumbnail(job.bucket, thumb, prefix)

    _update(
        job,
        status=Job.Status.COMPOSING,
        progress=88,
        poster_url=poster.url if poster else "",
        outputs_append=[poster.as_output()] if poster else None,
    )
    master = publish_master(job.bucket, compose_master(renditions, playlist_urls), prefix)
    _update(job, status=Job.Status.RECONCILING, progress=90, hls_url=master.url, outputs_append=[master.as_output()])

    client = CatalogClient.from_settings()
    sermon_id = str((job.metadata or {}).get("sermonId") or "")
    if sermon_id:
        logger.info("Using sermonId %s from object metadata", sermon_id)
    else:
        sermon_id = reconcile(
            client,
            job.object_name,
            attempts=settings.HLS_LOOKUP_ATTEMPTS,
            interval=settings.HLS_LOOKUP_INTERVAL,
        )

    _update(job, status=Job.Status.NOTIFYING, progress=95, sermon_id=sermon_id)
    notified = notify_completion(
        client,
        sermon_id,
        master.url,
        duration_sec=duration,
        poster_url=poster.url if poster else None,
    )
    _update(job, status=Job.Status.DONE, progress=100, notified=notified)
    return job.status


@shared_task(bind=True)
def process_upload(self, job_id: str):
    job = Job.objects.get(pk=job_id)

    if not should_process(_event_for(job)):
        _update(job, status=Job.Status.FILTERED_OUT, progress=100)
        return job.status

    missing = _missing_preconditions()
    if missing:
        logger.error("Missing %s; not processing %s", " and ".join(missing), job.object_name)
        _update(job, status=Job.Status.FAILED, progress=100, error=f"Missing configuration: {', '.join(missing)}")
        return job.status

    prefix = destination_prefix(settings.HLS_OUTPUT_PREFIX, job.object_name)
    work_dir = None
    try:
        work_dir = make_work_dir()
        return _run(job, work_dir, prefix)
    except EncodeError as e:
        logger.error("Encoding failed for %s (%s): %s", job.object_name, e.rendition, e.stderr or e)
        _update(job, status=Job.Status.ENCODE_FAILED, progress=100, error=e.stderr or str(e))
        raise
    except ReconcileError as e:
        # Published assets stay in the bucket unreferenced.
        logger.error("%s; HLS assets under %s are orphaned", e, prefix)
        _update(job, status=Job.Status.RECONCILE_FAILED, progress=100, error=str(e))
        return job.status
    except Exception as e:
        _update(job, status=Job.Status.FAILED, progress=100, error=str(e))
        raise
    finally:
        remove_work_dir(work_dir)
