"""Blob storage for closet photos and their derived image variants."""

from __future__ import annotations

import io
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image

from stylist_app.logging_config import get_logger
from tools.observability import instrument_call

LOGGER = get_logger(__name__)

THUMBNAIL_SIZE: Tuple[int, int] = (600, 600)
OPTIMIZED_SIZE: Tuple[int, int] = (1024, 1024)
JPEG_QUALITY = 80


@dataclass(frozen=True)
class ImageVariants:
    thumbnail: bytes
    optimized: bytes


def _reencode(image: Image.Image, max_size: Tuple[int, int]) -> bytes:
    copy = image.copy()
    # thumbnail() keeps the aspect ratio and never upscales.
    copy.thumbnail(max_size)
    buffer = io.BytesIO()
    copy.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    return buffer.getvalue()


def derive_image_variants(data: bytes) -> ImageVariants:
    """Produce the <=600x600 thumbnail and <=1024x1024 optimized JPEG copies."""

    with Image.open(io.BytesIO(data)) as image:
        rgb = image.convert("RGB")
    return ImageVariants(
        thumbnail=_reencode(rgb, THUMBNAIL_SIZE),
        optimized=_reencode(rgb, OPTIMIZED_SIZE),
    )


class BlobStorage(ABC):
    """Object storage interface."""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store bytes at ``path`` and return a URL for them."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the object at ``path`` if it exists."""

    @abstractmethod
    def list(self, prefix: str) -> List[str]:
        """Return object paths under ``prefix``."""

    @abstractmethod
    def path_for_url(self, url: str) -> Optional[str]:
        """Map a URL returned by ``upload`` back to its storage path."""

    def upload_image_versions(
        self,
        data: bytes,
        user_id: str,
        category: str,
        filename: str,
        content_type: str = "image/jpeg",
    ) -> Dict[str, str]:
        """Upload the original photo plus thumbnail and optimized variants."""

        variants = derive_image_variants(data)
        stamped = f"{int(time.time() * 1000)}-{Path(filename).name}"
        jpeg_name = f"{Path(stamped).stem}.jpg"
        base_path = f"images/{user_id}/{category}"
        return {
            "original": self.upload(f"{base_path}/{stamped}", data, content_type),
            "thumbnail": self.upload(f"{base_path}/thumbnails/{jpeg_name}", variants.thumbnail, "image/jpeg"),
            "processed": self.upload(f"{base_path}/optimized/{jpeg_name}", variants.optimized, "image/jpeg"),
        }


class LocalBlobStorage(BlobStorage):
    """Filesystem-backed storage for local development and tests."""

    def __init__(self, base_dir: str | Path = "data/blobs", base_url: Optional[str] = None) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.base_url = (base_url or self.base_dir.resolve().as_uri()).rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.base_dir / path).resolve()
        if self.base_dir.resolve() not in target.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        return target

    @instrument_call("blob.upload")
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return f"{self.base_url}/{path}"

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        if target.exists():
            target.unlink()

    def list(self, prefix: str) -> List[str]:
        root = self.base_dir.resolve()
        return sorted(
            str(file.relative_to(root).as_posix())
            for file in root.rglob("*")
            if file.is_file() and file.relative_to(root).as_posix().startswith(prefix)
        )

    def path_for_url(self, url: str) -> Optional[str]:
        prefix = f"{self.base_url}/"
        return url[len(prefix):] if url.startswith(prefix) else None


class FirebaseBlobStorage(BlobStorage):
    """Cloud Storage bucket accessed through firebase_admin."""

    def __init__(self, bucket: Any = None, bucket_name: Optional[str] = None, app: Any = None) -> None:
        if bucket is None:
            from firebase_admin import storage

            bucket = storage.bucket(bucket_name, app=app)
        self.bucket = bucket

    @instrument_call("blob.upload")
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        blob = self.bucket.blob(path)
        blob.upload_from_string(data, content_type=content_type)
        return blob.public_url

    def delete(self, path: str) -> None:
        blob = self.bucket.blob(path)
        if blob.exists():
            blob.delete()

    def list(self, prefix: str) -> List[str]:
        return [blob.name for blob in self.bucket.list_blobs(prefix=prefix)]

    def path_for_url(self, url: str) -> Optional[str]:
        marker = f"/{self.bucket.name}/"
        if marker not in url:
            return None
        return url.split(marker, 1)[1]


__all__ = [
    "BlobStorage",
    "LocalBlobStorage",
    "FirebaseBlobStorage",
    "ImageVariants",
    "derive_image_variants",
]
