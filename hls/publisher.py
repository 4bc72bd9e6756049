"""
Uploads encoded renditions and rewrites their playlists to absolute token URLs.

A published variant playlist never references a relative path, so each one can
be fetched and played on its own.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from . import storage
from .exceptions import PublishError
from .ffmpeg import PLAYLIST_NAME
from .renditions import Rendition
from .utils import list_files_recursive

logger = logging.getLogger(__name__)


@dataclass
class PublishedRendition:
    name: str
    playlist_url: str
    file_urls: dict = field(default_factory=dict)
    assets: list = field(default_factory=list)


def content_type_for(filename: str) -> str:
    lower = filename.lower()
    if lower.endswith(".ts"):
        return "video/mp2t"
    if lower.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    return "application/octet-stream"


def rewrite_playlist(text: str, url_map: dict) -> str:
    """
    Replace bare segment filenames with their public URLs.
    Directives, comments, blank lines and unknown lines are left untouched.
    """
    out = []
    for line in text.splitlines(keepends=True):
        body = line.rstrip("\r\n")
        ending = line[len(body):]
        t = body.strip()
        if not t or t.startswith("#"):
            out.append(line)
        elif t in url_map:
            out.append(url_map[t] + ending)
        else:
            out.append(line)
    return "".join(out)


def publish_rendition(bucket: str, rendition: Rendition, local_dir, dest_prefix: str) -> PublishedRendition:
    """
    Upload every file of one rendition directory, then its rewritten playlist.
    Raises PublishError if anything cannot be uploaded or read.
    """
    local_dir = Path(local_dir)
    file_urls = {}
    assets = []
    try:
        for local_path in list_files_recursive(local_dir):
            fname = os.path.basename(local_path)
            if fname == PLAYLIST_NAME:
                continue
            asset = storage.upload_file(
                local_path,
                bucket,
                f"{dest_prefix}{rendition.name}/{fname}",
                content_type=content_type_for(fname),
                token=storage.new_token(),
                cache_control=storage.CACHE_IMMUTABLE,
            )
            file_urls[fname] = asset.url
            assets.append(asset)

        playlist = (local_dir / PLAYLIST_NAME).read_text(encoding="utf-8")
        rewritten = rewrite_playlist(playlist, file_urls)
        playlist_asset = storage.save_text(
            rewritten,
            bucket,
            f"{dest_prefix}{rendition.name}/{PLAYLIST_NAME}",
            content_type=storage.PLAYLIST_CONTENT_TYPE,
            token=storage.new_token(),
            cache_control=storage.CACHE_PLAYLIST,
        )
    except (OSError, Boto3Error, BotoCoreError, ClientError) as e:
        raise PublishError(f"Publishing {rendition.name} failed: {e}") from e

    assets.append(playlist_asset)
    logger.info("Published %s (%d files)", rendition.name, len(assets))
    return PublishedRendition(rendition.name, playlist_asset.url, file_urls, assets)


def publish_thumbnail(bucket: str, thumb_path, dest_prefix: str):
    """Best-effort poster upload; returns the PublishedAsset or None."""
    if not thumb_path or not Path(thumb_path).is_file():
        return None
    name = Path(thumb_path).name
    try:
        return storage.upload_file(
            thumb_path,
            bucket,
            f"{dest_prefix}{name}",
            content_type="image/jpeg",
            token=storage.new_token(),
            cache_control=storage.CACHE_IMMUTABLE,
        )
    except (OSError, Boto3Error, BotoCoreError, ClientError) as e:
        logger.warning("Failed uploading thumbnail: %s", e)
        return None

