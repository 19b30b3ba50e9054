"""Storage service with provider interface (GCS/S3) for car images."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Iterable, Optional
from urllib.parse import unquote, urlparse
import uuid

from fastapi.concurrency import run_in_threadpool

from app.core.config import get_settings, StorageProvider

logger = logging.getLogger(__name__)

settings = get_settings()


class StorageProviderInterface(ABC):
    """Abstract interface for storage providers."""

    @abstractmethod
    async def generate_presigned_upload_url(
        self,
        object_path: str,
        mime_type: str,
        max_size_bytes: int,
        ttl_seconds: int,
    ) -> tuple[str, datetime]:
        """Generate a presigned PUT URL for direct upload.

        Returns:
            Tuple of (presigned_url, expires_at)
        """
        pass

    @abstractmethod
    def public_url(self, object_path: str) -> str:
        """Public URL under which an uploaded object is served."""
        pass

    @abstractmethod
    async def delete_object(self, object_path: str) -> bool:
        """Delete an object from storage."""
        pass


class GCSStorageProvider(StorageProviderInterface):
    """Google Cloud Storage provider."""

    def __init__(self, bucket_name: str, project_id: Optional[str] = None):
        self.bucket_name = bucket_name
        self.project_id = project_id
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client(project=self.project_id)
        return self._client

    @property
    def bucket(self):
        return self.client.bucket(self.bucket_name)

    async def generate_presigned_upload_url(
        self,
        object_path: str,
        mime_type: str,
        max_size_bytes: int,
        ttl_seconds: int,
    ) -> tuple[str, datetime]:
        blob = self.bucket.blob(object_path)
        expires_at = datetime.utcnow() + timedelta(seconds=ttl_seconds)

        url = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(seconds=ttl_seconds),
            method="PUT",
            content_type=mime_type,
        )

        return url, expires_at

    def public_url(self, object_path: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket_name}/{object_path}"

    def _delete_blob(self, object_path: str) -> bool:
        blob = self.bucket.blob(object_path)
        if blob.exists():
            blob.delete()
            return True
        return False

    async def delete_object(self, object_path: str) -> bool:
        # google-cloud-storage is blocking
        return await run_in_threadpool(self._delete_blob, object_path)


class S3StorageProvider(StorageProviderInterface):
    """AWS S3 storage provider."""

    def __init__(
        self,
        bucket_name: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self._client = None
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
        return self._client

    async def generate_presigned_upload_url(
        self,
        object_path: str,
        mime_type: str,
        max_size_bytes: int,
        ttl_seconds: int,
    ) -> tuple[str, datetime]:
        expires_at = datetime.utcnow() + timedelta(seconds=ttl_seconds)

        url = self.client.generate_presigned_url(
            "put_object",
            Params={
                "Bucket": self.bucket_name,
                "Key": object_path,
                "ContentType": mime_type,
            },
            ExpiresIn=ttl_seconds,
        )

        return url, expires_at

    def public_url(self, object_path: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{object_path}"

    async def delete_object(self, object_path: str) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            await run_in_threadpool(self.client.delete_object, Bucket=self.bucket_name, Key=object_path)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"[STORAGE] S3 delete failed for {object_path}: {e}")
            return False


class StorageService:
    """High-level storage service wrapping provider interface."""

    ALLOWED_MIME_TYPES = {
        "image/jpeg",
        "image/png",
        "image/webp",
    }

    def __init__(self, provider: StorageProviderInterface, prefix: str = "car-images"):
        self.provider = provider
        self.prefix = prefix.strip("/")

    def generate_object_path(self, file_name: str) -> str:
        """Generate a unique object path for a car image."""
        file_uuid = uuid.uuid4()
        ext = file_name.split(".")[-1].lower() if "." in file_name else "bin"
        return f"{self.prefix}/{file_uuid}.{ext}"

    def object_path_from_url(self, image_url: str) -> Optional[str]:
        """Recover the object path from a stored public URL.

        The path starts at the car images prefix segment; URLs without that
        segment are not ours to delete.
        """
        parsed = urlparse(image_url)
        if not parsed.scheme or not parsed.path:
            return None
        parts = [unquote(p) for p in parsed.path.split("/") if p]
        if self.prefix not in parts:
            return None
        index = parts.index(self.prefix)
        if index + 1 >= len(parts):
            return None
        return "/".join(parts[index:])

    async def create_presigned_upload(
        self,
        file_name: str,
        mime_type: str,
        file_size_bytes: int,
    ) -> tuple[str, str, datetime]:
        """Create presigned upload URL with validation.

        Returns:
            Tuple of (upload_url, object_path, expires_at)
        """
        if mime_type not in self.ALLOWED_MIME_TYPES:
            raise ValueError(f"Unsupported mime type: {mime_type}")

        max_size = settings.max_upload_size_mb * 1024 * 1024
        if file_size_bytes > max_size:
            raise ValueError(f"File size exceeds maximum of {settings.max_upload_size_mb}MB")

        object_path = self.generate_object_path(file_name)

        url, expires_at = await self.provider.generate_presigned_upload_url(
            object_path=object_path,
            mime_type=mime_type,
            max_size_bytes=file_size_bytes,
            ttl_seconds=settings.presign_ttl_seconds,
        )

        return url, object_path, expires_at

    def public_url(self, object_path: str) -> str:
        return self.provider.public_url(object_path)

    async def delete_images(self, image_urls: Iterable[str]) -> list[str]:
        """Delete every distinct image URL from storage, one call per image.

        Returns one error message per image that could not be deleted; an
        empty list means every deletion succeeded.
        """
        errors: list[str] = []
        unique_urls = list(dict.fromkeys(u.strip() for u in image_urls if u and u.strip()))

        for image_url in unique_urls:
            object_path = self.object_path_from_url(image_url)
            if object_path is None:
                logger.warning(f"[STORAGE] Could not determine storage path for {image_url}")
                errors.append(f"Unrecognised image URL: {image_url}")
                continue
            try:
                deleted = await self.provider.delete_object(object_path)
            except Exception as e:
                logger.error(f"[STORAGE] Delete error for {object_path}: {e}")
                errors.append(f"{object_path}: {e}")
                continue
            if not deleted:
                errors.append(f"{object_path}: not deleted")

        if unique_urls:
            logger.info(
                f"[STORAGE] Image cleanup: {len(unique_urls) - len(errors)}/{len(unique_urls)} deleted"
            )
        return errors


def get_storage_service() -> StorageService:
    """Factory function to get storage service based on config."""
    if settings.storage_provider == StorageProvider.GCS:
        provider = GCSStorageProvider(
            bucket_name=settings.bucket_name,
            project_id=settings.gcs_project_id,
        )
    else:
        provider = S3StorageProvider(
            bucket_name=settings.bucket_name,
            region=settings.aws_region or "us-east-1",
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )

    return StorageService(provider, prefix=settings.car_images_prefix)
