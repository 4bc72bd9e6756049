"""
Output quality ladder for the adaptive stream.

Bandwidth figures end up verbatim in the master manifest, so they are computed
once here from the configured caps.
"""
import re
from dataclasses import dataclass

BANDWIDTH_OVERHEAD = 100_000

# (name, height, nominal resolution, default video cap, audio bitrate), ascending.
DEFAULT_LADDER = (
    ("360p", 360, "640x360", "700k", "96k"),
    ("540p", 540, "960x540", "1200k", "128k"),
    ("720p", 720, "1280x720", "2200k", "128k"),
    ("1080p", 1080, "1920x1080", "4200k", "160k"),
)

_LEADING_INT = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class Rendition:
    name: str
    height: int
    resolution: str
    video_bitrate: str
    audio_bitrate: str
    bandwidth: int


def parse_bitrate(value) -> int:
    """
    Parse an ffmpeg-style bitrate ("700k", "96000") into bits per second.
    Unparseable input yields 0 instead of raising.
    """
    if value is None:
        return 0
    text = str(value).strip().lower()
    m = _LEADING_INT.match(text)
    if not m:
        return 0
    n = int(m.group(0))
    return n * 1000 if text.endswith("k") else n


def plan_renditions(max_bitrates: dict | None = None) -> list[Rendition]:
    """Return the ladder in ascending quality, video caps overridable by name."""
    overrides = max_bitrates or {}
    plan = []
    for name, height, resolution, default_vbr, abr in DEFAULT_LADDER:
        vbr = overrides.get(name) or default_vbr
        plan.append(
            Rendition(
                name=name,
                height=height,
                resolution=resolution,
                video_bitrate=str(vbr),
                audio_bitrate=abr,
                bandwidth=parse_bitrate(vbr) + parse_bitrate(abr) + BANDWIDTH_OVERHEAD,
            )
        )
    return plan
