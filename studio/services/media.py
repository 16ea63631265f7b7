"""
Media Store
Processor-facing seam over blob storage and image metadata records.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from studio.core.errors import NotFoundError, TransportError
from studio.models import Image, ImageSource
from studio.services.storage import StorageService

logger = logging.getLogger(__name__)


def detect_mime_type(data: bytes) -> str:
    """Sniff the image format from magic bytes. Defaults to JPEG."""
    if data.startswith(b'\x89PNG\r\n\x1a\n'):
        return "image/png"
    elif data.startswith(b'\xff\xd8'):
        return "image/jpeg"
    elif data.startswith(b'RIFF') and data[8:12] == b'WEBP':
        return "image/webp"
    return "image/jpeg"


def generate_image_id() -> str:
    return f"img_{uuid.uuid4().hex[:12]}"


def timestamp_ms() -> int:
    return int(datetime.utcnow().timestamp() * 1000)


@dataclass
class ImagePayload:
    """Downloaded image bytes plus the metadata needed to send them to the model."""
    image_id: str
    data: bytes
    mime_type: str


class MediaStore:
    """Download stored images and upload generated ones."""

    def __init__(self, db: Session, storage: Optional[StorageService] = None):
        self.db = db
        self.storage = storage or StorageService()

    def get_image(self, image_id: str, owner_id: str) -> Image:
        image = self.db.query(Image).filter(Image.id == image_id).first()
        if not image or image.owner_id != owner_id:
            raise NotFoundError(f"Image not found: {image_id}")
        return image

    async def download(self, image_id: str, owner_id: str) -> ImagePayload:
        """Fetch the bytes of an image owned by ``owner_id``."""
        image = self.get_image(image_id, owner_id)
        try:
            data = await self.storage.get_file(image.storage_key)
        except Exception as e:
            logger.error(f"[Media] Download failed for {image_id} ({image.storage_key}): {e}")
            raise TransportError(f"Failed to download image {image_id}") from e

        mime_type = image.mime_type or detect_mime_type(data)
        return ImagePayload(image_id=image.id, data=data, mime_type=mime_type)

    async def upload(self, owner_id: str, data: bytes, path: str) -> Image:
        """
        Store generated bytes under ``path`` and create the image record.

        The record is added to the session but not committed; the caller's
        transaction decides whether it survives.
        """
        mime_type = detect_mime_type(data)
        try:
            key = await self.storage.upload_bytes(data, path, mime_type)
        except Exception as e:
            logger.error(f"[Media] Upload failed for {path}: {e}")
            raise TransportError(f"Failed to upload image to {path}") from e

        image = Image(
            id=generate_image_id(),
            owner_id=owner_id,
            storage_bucket=self.storage.bucket_name,
            storage_key=key,
            mime_type=mime_type,
            source=ImageSource.AI_GENERATED,
        )
        self.db.add(image)
        self.db.flush()
        logger.info(f"[Media] Created image {image.id} at {key}")
        return image
