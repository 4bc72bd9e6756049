import uuid
from dataclasses import dataclass
import boto3
from botocore.config import Config as BotoConfig
from django.conf import settings

from .utils import encode_uri_component

# Sent as an x-amz-meta-* header; the download endpoint looks the token up by this
# exact mixed-case key, so the bucket must keep metadata key case as sent. Check this
# against the target bucket when changing endpoints; header names are case-insensitive.
TOKEN_METADATA_KEY = "firebaseStorageDownloadTokens"

CACHE_IMMUTABLE = "public, max-age=31536000"
CACHE_PLAYLIST = "public, max-age=3600"
CACHE_MASTER = "public, max-age=1800"

PLAYLIST_CONTENT_TYPE = "application/x-mpegURL"


@dataclass(frozen=True)
class PublishedAsset:
    path: str
    token: str
    content_type: str
    cache_control: str
    url: str

    def as_output(self) -> dict:
        return {
            "path": self.path,
            "content_type": self.content_type,
            "cache_control": self.cache_control,
            "url": self.url,
        }


def get_storage_client():
    """
    SDK client for the upload bucket's S3-compatible endpoint.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.STORAGE_ACCESS_KEY,
        aws_secret_access_key=settings.STORAGE_SECRET_KEY,
        region_name=settings.STORAGE_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.STORAGE_ENDPOINT_URL,
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
            retries={"max_attempts": 3, "mode": "standard"},
        ),
    )


def new_token() -> str:
    """Fresh opaque download token; one per uploaded object."""
    return str(uuid.uuid4())


def download_url(bucket: str, path: str, token: str | None = None) -> str:
    """
    Public token URL for an object:
    https://<host>/v0/b/<bucket>/o/<encoded path>?alt=media&token=<token>
    """
    base = f"https://{settings.STORAGE_DOWNLOAD_HOST}/v0/b/{bucket}/o/{encode_uri_component(path)}"
    return f"{base}?alt=media&token={token}" if token else f"{base}?alt=media"


def download_file(bucket: str, path: str, dest: str) -> None:
    client = get_storage_client()
    client.download_file(bucket, path, str(dest))


def _extra_args(content_type: str, token: str, cache_control: str) -> dict:
    return {
        "ContentType": content_type,
        "CacheControl": cache_control,
        "Metadata": {TOKEN_METADATA_KEY: token},
    }


def upload_file(
    local_path,
    bucket: str,
    dest: str,
    *,
    content_type: str,
    token: str,
    cache_control: str,
) -> PublishedAsset:
    """
    Upload a single local file; the token lands in the object's custom metadata.
    """
    client = get_storage_client()
    client.upload_file(
        str(local_path),
        bucket,
        dest,
        ExtraArgs=_extra_args(content_type, token, cache_control),
    )
    return PublishedAsset(dest, token, content_type, cache_control, download_url(bucket, dest, token))


def save_text(
    content: str,
    bucket: str,
    dest: str,
    *,
    content_type: str,
    token: str,
    cache_control: str,
) -> PublishedAsset:
    """
    Write a text object (playlists) in a single non-resumable request.
    """
    client = get_storage_client()
    client.put_object(
        Bucket=bucket,
        Key=dest,
        Body=content.encode("utf-8"),
        **_extra_args(content_type, token, cache_control),
    )
    return PublishedAsset(dest, token, content_type, cache_control, download_url(bucket, dest, token))
