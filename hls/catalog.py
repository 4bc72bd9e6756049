"""
Client for the sermon catalog API.

The catalog has no reference to the transcoding job, so the record for an
upload is located by polling its list endpoint and matching on the storage
path. Once found, the finished manifest is delivered through the record's
HLS callback.
"""
import logging
import time
from pathlib import PurePosixPath

import requests
from django.conf import settings

from .exceptions import NotifyError, ReconcileError
from .utils import encode_uri_component

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-HLS-SECRET"


class CatalogClient:
    def __init__(self, base_url: str, secret: str, *, timeout: float = 30, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.secret = secret
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> "CatalogClient":
        return cls(
            settings.SERVER_API_URL,
            settings.HLS_CALLBACK_SECRET,
            timeout=settings.HLS_HTTP_TIMEOUT,
        )

    def list_sermons(self):
        resp = self.session.get(f"{self.base_url}/sermons", timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def hls_callback(self, sermon_id: str, payload: dict) -> None:
        url = f"{self.base_url}/sermons/{encode_uri_component(sermon_id)}/hls-callback"
        resp = self.session.post(
            url,
            json=payload,
            headers={SECRET_HEADER: self.secret},
            timeout=self.timeout,
        )
        if not resp.ok:
            raise NotifyError(
                f"Callback failed {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )


def _has_usable_id(record: dict) -> bool:
    return record.get("id") not in (None, "")


def _matches(record, storage_path: str, encoded_path: str, filename: str) -> bool:
    if not isinstance(record, dict):
        return False
    if storage_path and storage_path in (record.get("storagePath"), record.get("firebaseStoragePath")):
        return True
    video_url = record.get("videoUrl")
    if isinstance(video_url, str):
        base = video_url.split("?")[0] or video_url
        if encoded_path in base:
            return True
        # Weakest rule: unrelated uploads that share a filename can collide here.
        if filename and filename.lower() in base.lower():
            return True
    return False


def find_matching_record(records, storage_path: str) -> str | None:
    """
    Return the id of the first catalog record that refers to storage_path,
    or None. The first match decides; it only counts if it has an id.
    """
    if not isinstance(records, list):
        return None
    encoded = encode_uri_component(storage_path)
    filename = PurePosixPath(storage_path).name
    for record in records:
        if _matches(record, storage_path, encoded, filename):
            return str(record["id"]) if _has_usable_id(record) else None
    return None


def reconcile(client: CatalogClient, storage_path: str, *, attempts: int = 6, interval: float = 5.0, sleep=time.sleep) -> str:
    """
    Poll the catalog until a record for storage_path shows up.
    Raises ReconcileError once every attempt has come back empty.
    """
    for attempt in range(1, attempts + 1):
        try:
            sermon_id = find_matching_record(client.list_sermons(), storage_path)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Lookup attempt %d failed: %s", attempt, e)
            sermon_id = None
        if sermon_id:
            logger.info("Matched %s to sermon %s on attempt %d", storage_path, sermon_id, attempt)
            return sermon_id
        if attempt < attempts:
            sleep(interval)
    raise ReconcileError(f"Could not find sermon for storagePath {storage_path} after {attempts} attempts")


def build_callback_payload(hls_url: str, duration_sec: float | None = None, poster_url: str | None = None) -> dict:
    payload = {"hlsUrl": hls_url}
    if duration_sec is not None:
        payload["durationSec"] = duration_sec
    if poster_url:
        payload["thumbnails"] = {"poster": poster_url}
    return payload


def notify_completion(client: CatalogClient, sermon_id: str, hls_url: str, *, duration_sec=None, poster_url=None) -> bool:
    """Single best-effort callback; failures are logged, never raised."""
    payload = build_callback_payload(hls_url, duration_sec, poster_url)
    try:
        client.hls_callback(sermon_id, payload)
    except (NotifyError, requests.RequestException) as e:
        logger.error("Callback error for sermon %s: %s", sermon_id, e)
        return False
    logger.info("Callback success for sermon %s", sermon_id)
    return True
