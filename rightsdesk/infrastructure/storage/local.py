from __future__ import annotations

import logging
import re
import uuid
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ...domain.security.sanitize import MAX_UPLOAD_BYTES, validate_file_upload
from ...domain.shared.models import StoredBlob
from ...domain.shared.repositories import BlobStorage
from ..metrics import metrics

logger = logging.getLogger(__name__)

AVATAR_SIZE = 256
BRANDING_MAX = 512
IMAGE_BUCKETS = ("avatars", "branding")

IMAGE_TYPES = ("image/png", "image/jpeg", "image/webp", "image/gif")
BUCKET_TYPES = {
    "avatars": IMAGE_TYPES,
    "branding": IMAGE_TYPES,
    "tax-forms": ("application/pdf",) + IMAGE_TYPES,
    "direct-deposit": ("application/pdf",) + IMAGE_TYPES,
}

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    name = _UNSAFE.sub("_", Path(filename or "").name).strip("._")
    return name[:100] or "file"


class LocalBlobStorage(BlobStorage):
    """Stores uploads under ``root/<bucket>/<owner_id>/``.

    Avatars are centre-cropped to a 256px PNG square and branding assets are
    shrunk to fit 512px. Tax and direct-deposit forms are kept byte for byte.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        public_base_url: str = "/files",
        max_bytes: int = MAX_UPLOAD_BYTES,
    ):
        self._root = Path(root)
        self._public_base = public_base_url.rstrip("/")
        self._max_bytes = max_bytes

    @metrics.wrap_async("storage:upload", source="storage")
    async def upload(
        self,
        bucket: str,
        owner_id: int,
        filename: str,
        data: bytes,
        content_type: str,
    ) -> StoredBlob:
        if bucket not in BUCKET_TYPES:
            raise ValueError(f"Unknown storage bucket: {bucket}")
        errors = validate_file_upload(
            filename, len(data), content_type, allowed_types=BUCKET_TYPES[bucket], max_size=self._max_bytes
        )
        if errors:
            raise ValueError("; ".join(errors))
        name = safe_filename(filename)
        if bucket in IMAGE_BUCKETS:
            data = self._normalize_image(bucket, data)
            name = f"{Path(name).stem}.png"
            content_type = "image/png"
        relative = f"{bucket}/{owner_id}/{uuid.uuid4().hex}-{name}"
        target = self._root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Stored %s (%s bytes)", relative, len(data))
        return StoredBlob(
            bucket=bucket,
            path=relative,
            public_url=self.public_url(relative),
            size=len(data),
            content_type=content_type,
        )

    @metrics.wrap_async("storage:delete", source="storage")
    async def delete(self, path: str) -> bool:
        target = (self._root / path).resolve()
        if self._root.resolve() not in target.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        if not target.exists():
            return False
        target.unlink()
        return True

    def public_url(self, path: str) -> str:
        return f"{self._public_base}/{path}"

    def _normalize_image(self, bucket: str, data: bytes) -> bytes:
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ValueError("Uploaded file is not a readable image") from exc

        img = img.convert("RGBA")
        if bucket == "avatars":
            img = self._square(img).resize((AVATAR_SIZE, AVATAR_SIZE), Image.LANCZOS)
        else:
            img.thumbnail((BRANDING_MAX, BRANDING_MAX), Image.LANCZOS)

        buffer = BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    @staticmethod
    def _square(img: Image.Image) -> Image.Image:
        width, height = img.size
        side = min(width, height)
        left = (width - side) // 2
        top = (height - side) // 2
        return img.crop((left, top, left + side, top + side))
