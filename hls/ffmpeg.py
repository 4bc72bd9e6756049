"""
ffmpeg / ffprobe wrappers used by the transcoding task.

Every call blocks until the external process exits; renditions are encoded one
after another so only one encoder runs per job at any time.
"""
import json
import math
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from django.conf import settings
from PIL import Image

from .exceptions import EncodeError
from .renditions import Rendition

logger = logging.getLogger(__name__)

PLAYLIST_NAME = "index.m3u8"
SEGMENT_PATTERN = "segment_%03d.ts"
THUMBNAIL_NAME = "thumb.jpg"

STDERR_TAIL = 4000


@dataclass(frozen=True)
class EncodeSettings:
    crf: str = "22"
    preset: str = "veryfast"
    segment_seconds: str = "6"

    @classmethod
    def from_settings(cls) -> "EncodeSettings":
        return cls(
            crf=str(settings.HLS_CRF),
            preset=str(settings.HLS_PRESET),
            segment_seconds=str(settings.HLS_SEGMENT_SECONDS),
        )


def build_hls_command(source, out_dir, rendition: Rendition, encode: EncodeSettings) -> list[str]:
    out_dir = Path(out_dir)
    seg = encode.segment_seconds
    return [
        settings.FFMPEG_BIN,
        "-y",
        "-i", str(source),
        "-vf", f"scale=-2:{rendition.height}",
        "-c:v", "libx264",
        "-profile:v", "main",
        "-crf", encode.crf,
        "-preset", encode.preset,
        "-c:a", "aac",
        "-ac", "2",
        "-ar", "48000",
        "-b:a", rendition.audio_bitrate,
        "-maxrate", rendition.video_bitrate,
        "-bufsize", rendition.video_bitrate,
        "-sc_threshold", "0",
        "-force_key_frames", f"expr:gte(t,n_forced*{seg})",
        "-hls_time", seg,
        "-hls_playlist_type", "vod",
        "-hls_flags", "independent_segments",
        "-hls_segment_filename", str(out_dir / SEGMENT_PATTERN),
        str(out_dir / PLAYLIST_NAME),
    ]


def _stderr_tail(e: subprocess.CalledProcessError) -> str:
    err = e.stderr.decode("utf-8", errors="ignore") if e.stderr else str(e)
    return err[-STDERR_TAIL:]


def encode_rendition(source, out_root, rendition: Rendition, encode: EncodeSettings) -> Path:
    """
    Encode one rendition into <out_root>/<name>/ (segments + index.m3u8).
    Raises EncodeError on any engine failure.
    """
    var_dir = Path(out_root) / rendition.name
    var_dir.mkdir(parents=True, exist_ok=True)

    cmd = build_hls_command(source, var_dir, rendition, encode)
    logger.debug("Running %s", " ".join(cmd))
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except subprocess.CalledProcessError as e:
        stderr = _stderr_tail(e)
        raise EncodeError(
            f"ffmpeg exited with {e.returncode} for {rendition.name}",
            rendition=rendition.name,
            stderr=stderr,
        ) from e
    except OSError as e:
        raise EncodeError(f"Could not start ffmpeg: {e}", rendition=rendition.name) from e

    if not (var_dir / PLAYLIST_NAME).is_file():
        raise EncodeError(f"ffmpeg produced no playlist for {rendition.name}", rendition=rendition.name)
    return var_dir


def probe_duration(source) -> float | None:
    """Container duration in seconds, or None when ffprobe cannot tell."""
    cmd = [
        settings.FFPROBE_BIN,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "json",
        str(source),
    ]
    try:
        proc = subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        data = json.loads(proc.stdout.decode("utf-8", errors="ignore") or "{}")
        sec = float(data.get("format", {}).get("duration", ""))
    except (subprocess.CalledProcessError, OSError, ValueError, AttributeError, TypeError) as e:
        logger.warning("Duration probe failed for %s: %s", source, e)
        return None
    if not math.isfinite(sec):
        return None
    return sec


def capture_thumbnail(source, out_dir, *, offset: float | None = None, max_edge: int | None = None) -> Path | None:
    """
    Grab a single poster frame as <out_dir>/thumb.jpg. Best-effort: returns None
    on any failure, including sources shorter than the offset.
    """
    offset = settings.HLS_THUMBNAIL_OFFSET if offset is None else offset
    max_edge = settings.HLS_THUMBNAIL_MAX_EDGE if max_edge is None else max_edge
    out = Path(out_dir) / THUMBNAIL_NAME
    cmd = [
        settings.FFMPEG_BIN,
        "-y",
        "-ss", str(offset),
        "-i", str(source),
        "-frames:v", "1",
        "-q:v", "2",
        str(out),
    ]
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        if not out.is_file():
            logger.warning("Thumbnail generation produced no frame for %s", source)
            return None
        img = Image.open(out).convert("RGB")
        img.thumbnail((max_edge, max_edge))
        img.save(out, format="JPEG", quality=90)
    except subprocess.CalledProcessError as e:
        logger.warning("Thumbnail generation failed: %s", _stderr_tail(e))
        return None
    except OSError as e:
        logger.warning("Thumbnail generation failed: %s", e)
        return None
    return out
