"""
Storage Service
Handles media object storage - supports Google Cloud Storage, S3, and local filesystem.
"""

import logging
from pathlib import Path

from studio.core.config import settings

logger = logging.getLogger(__name__)


class StorageService:
    """Service for media object storage operations. Objects are addressed by key."""

    def __init__(self):
        # Priority: GCS > Local > S3
        self.use_gcs = settings.USE_GCS
        self.use_local = settings.USE_LOCAL_STORAGE and not self.use_gcs

        if self.use_gcs:
            from google.cloud import storage
            self.gcs_client = storage.Client(project=settings.GCP_PROJECT_ID)
            self.bucket_name = settings.GCS_BUCKET_MEDIA
            self.bucket_media = self.gcs_client.bucket(settings.GCS_BUCKET_MEDIA)
            logger.info(f"[Storage] Using Google Cloud Storage: {settings.GCS_BUCKET_MEDIA}")

        elif self.use_local:
            self.bucket_name = "media"
            self.base_path = Path(settings.LOCAL_STORAGE_PATH)
            self.base_path.mkdir(parents=True, exist_ok=True)
            logger.info(f"[Storage] Using local storage: {self.base_path}")

        else:
            import boto3
            from botocore.config import Config
            self.s3 = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT or None,
                aws_access_key_id=settings.S3_ACCESS_KEY,
                aws_secret_access_key=settings.S3_SECRET_KEY,
                region_name=settings.S3_REGION,
                config=Config(signature_version="s3v4")
            )
            self.bucket_name = settings.S3_BUCKET
            logger.info(f"[Storage] Using S3: {self.bucket_name}")

    async def upload_bytes(self, data: bytes, path: str, content_type: str = "image/jpeg") -> str:
        """Upload bytes and return the storage key."""
        if self.use_gcs:
            blob = self.bucket_media.blob(path)
            blob.upload_from_string(data, content_type=content_type)
        elif self.use_local:
            file_path = self.base_path / path
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "wb") as f:
                f.write(data)
        else:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=path,
                Body=data,
                ContentType=content_type
            )
        logger.info(f"[Storage] Stored {path} ({len(data)} bytes)")
        return path

    async def get_file(self, path: str) -> bytes:
        """Get object contents by key."""
        if self.use_gcs:
            blob = self.bucket_media.blob(path)
            return blob.download_as_bytes()
        elif self.use_local:
            file_path = self.base_path / path
            with open(file_path, "rb") as f:
                return f.read()
        else:
            response = self.s3.get_object(Bucket=self.bucket_name, Key=path)
            return response["Body"].read()
