from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from hls.ffmpeg import PLAYLIST_NAME

SEGMENT_PLAYLIST = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    "#EXT-X-TARGETDURATION:6\n"
    "#EXT-X-MEDIA-SEQUENCE:0\n"
    "#EXT-X-PLAYLIST-TYPE:VOD\n"
    "#EXT-X-INDEPENDENT-SEGMENTS\n"
    "#EXTINF:6.000000,\n"
    "segment_000.ts\n"
    "#EXTINF:6.000000,\n"
    "segment_001.ts\n"
    "#EXTINF:2.500000,\n"
    "segment_002.ts\n"
    "#EXT-X-ENDLIST\n"
)


def write_rendition_dir(out_root, name: str, segments: int = 3) -> Path:
    """Lay out what ffmpeg leaves behind for one rendition."""
    var_dir = Path(out_root) / name
    var_dir.mkdir(parents=True, exist_ok=True)
    for i in range(segments):
        (var_dir / f"segment_{i:03d}.ts").write_bytes(b"\x47" * 188)
    (var_dir / PLAYLIST_NAME).write_text(SEGMENT_PLAYLIST, encoding="utf-8")
    return var_dir


@pytest.fixture
def pipeline_settings(settings):
    settings.SERVER_API_URL = "http://catalog.test/api"
    settings.HLS_CALLBACK_SECRET = "s3cret"
    settings.HLS_LOOKUP_INTERVAL = 0
    settings.HLS_LOOKUP_ATTEMPTS = 6
    settings.STORAGE_DOWNLOAD_HOST = "firebasestorage.googleapis.com"
    settings.HLS_OUTPUT_PREFIX = "sermons/hls"
    return settings


@pytest.fixture
def storage_client(monkeypatch):
    """boto3 client double; download_file drops a small placeholder file."""
    client = MagicMock()

    def _download(bucket, key, dest):
        Path(dest).write_bytes(b"source")

    client.download_file.side_effect = _download
    monkeypatch.setattr("hls.storage.get_storage_client", lambda: client)
    return client


def json_response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = payload
    resp.text = "" if resp.ok else "error body"
    if resp.ok:
        resp.raise_for_status.return_value = None
    else:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code}")
    return resp
