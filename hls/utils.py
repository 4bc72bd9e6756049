import os
import shutil
import tempfile
import time
import logging
from pathlib import PurePosixPath
from urllib.parse import quote

from django.conf import settings

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".mp4", ".mov", ".mkv", ".webm"}
GENERATED_EXTENSIONS = (".m3u8", ".ts", ".m4s")


def output_segment() -> str:
    """Last component of HLS_OUTPUT_PREFIX; any path containing it is pipeline output."""
    return PurePosixPath(settings.HLS_OUTPUT_PREFIX.strip("/")).name or "hls"


def is_video_object(event: dict | None) -> bool:
    """True for video uploads that are not our own generated HLS output."""
    if not event:
        return False
    content_type = event.get("contentType") or ""
    name = event.get("name") or ""
    if not content_type or not name:
        return False
    if not content_type.startswith("video/"):
        return False
    if f"/{output_segment()}/" in f"/{name}":
        return False
    if name.endswith(GENERATED_EXTENSIONS):
        return False
    return True


def has_supported_extension(name: str) -> bool:
    return PurePosixPath(name).suffix.lower() in SUPPORTED_EXTENSIONS


def should_process(event: dict | None) -> bool:
    if not is_video_object(event):
        logger.info("Skipping non-video or already-processed object: %s", (event or {}).get("name"))
        return False
    if not has_supported_extension(event["name"]):
        logger.info("Unsupported video extension, skipping: %s", event["name"])
        return False
    return True


def destination_prefix(output_prefix: str, object_name: str) -> str:
    """sermons/123_title.mp4 -> <output_prefix>/123_title/"""
    base = PurePosixPath(object_name).stem
    return f"{output_prefix.strip('/')}/{base}/"


def make_work_dir() -> str:
    """Per-invocation scratch directory, named by timestamp and unique per process."""
    return tempfile.mkdtemp(prefix=f"hls-{int(time.time() * 1000)}-")


def remove_work_dir(path: str | None) -> None:
    if not path:
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.debug("Could not remove work dir %s: %s", path, e)


def list_files_recursive(directory) -> list[str]:
    out = []
    for root, _dirs, files in os.walk(directory):
        for f in sorted(files):
            out.append(os.path.join(root, f))
    return sorted(out)


def encode_uri_component(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(str(value), safe="-_.!~*'()")
