"""Blob storage buckets for uploaded media.

Each bucket is a directory under ``settings.media_root``. Keys are single path
segments; anything that would escape the bucket directory is rejected.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

from shop.core.config import settings


class Bucket:
    """Flat key/value blob store backed by one directory."""

    def __init__(self, name: str, root: Path) -> None:
        self.name = name
        self.root = root

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / key

    def put(self, key: str, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self._path(key).write_bytes(data)

    def get(self, key: str) -> bytes | None:
        try:
            path = self._path(key)
        except ValueError:
            return None
        if not path.is_file():
            return None
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        try:
            return self._path(key).is_file()
        except ValueError:
            return False

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class MediaStorage:
    """The image and video buckets, selected by media type."""

    def __init__(self, images: Bucket, videos: Bucket) -> None:
        self.images = images
        self.videos = videos

    def bucket_for(self, media_type: str) -> Bucket:
        return self.videos if media_type == "video" else self.images

    def find(self, key: str) -> tuple[bytes, Bucket] | None:
        """Look a key up in the image bucket, then the video bucket."""
        for bucket in (self.images, self.videos):
            data = bucket.get(key)
            if data is not None:
                return data, bucket
        return None


def guess_content_type(key: str) -> str:
    content_type, _ = mimetypes.guess_type(key)
    return content_type or "application/octet-stream"


def get_storage() -> MediaStorage:
    """FastAPI dependency returning buckets rooted at the configured media root."""
    root = Path(settings.media_root)
    return MediaStorage(
        images=Bucket(settings.images_bucket, root / settings.images_bucket),
        videos=Bucket(settings.videos_bucket, root / settings.videos_bucket),
    )
