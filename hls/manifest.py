from . import storage
from .renditions import Rendition

MASTER_NAME = "master.m3u8"

MASTER_HEADER = (
    "#EXTM3U",
    "#EXT-X-VERSION:3",
    "#EXT-X-INDEPENDENT-SEGMENTS",
)


def compose_master(renditions: list[Rendition], playlist_urls: dict) -> str:
    """
    Master playlist in planner order. Renditions without a published
    playlist URL are left out.
    """
    lines = list(MASTER_HEADER)
    for r in renditions:
        url = playlist_urls.get(r.name)
        if not url:
            continue
        lines.append(f"#EXT-X-STREAM-INF:BANDWIDTH={r.bandwidth},RESOLUTION={r.resolution}")
        lines.append(url)
    return "\n".join(lines) + "\n"


def publish_master(bucket: str, content: str, dest_prefix: str) -> storage.PublishedAsset:
    return storage.save_text(
        content,
        bucket,
        f"{dest_prefix}{MASTER_NAME}",
        content_type=storage.PLAYLIST_CONTENT_TYPE,
        token=storage.new_token(),
        cache_control=storage.CACHE_MASTER,
    )
