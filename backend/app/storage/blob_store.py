"""
Blob storage for uploaded medical files.

Objects live in an S3-compatible object store (MinIO in development) and are
accessed through the ``minio`` client. Private objects are shared through
presigned GET URLs issued by the store itself.
"""
import asyncio
import io
import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Optional

from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from app.config import settings


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
NOT_FOUND_CODES = ("NoSuchKey", "NoSuchObject", "NoSuchBucket", "ResourceNotFound")


class BlobStoreError(Exception):
    """Storage operation failed."""


class ObjectNotFoundError(BlobStoreError):
    """Requested object does not exist."""


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    size: int

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding)


def _normalize_path(path: str) -> str:
    """Reject absolute paths and parent references; return a clean object key."""
    if not path or path.startswith("/") or "\\" in path:
        raise ValueError(f"Invalid object path: {path!r}")
    parts = PurePosixPath(path).parts
    if not parts or any(part in ("..", ".") for part in parts):
        raise ValueError(f"Invalid object path: {path!r}")
    return "/".join(parts)


def _endpoint_host(endpoint: str) -> str:
    # Minio wants host:port (no scheme)
    return endpoint.replace("http://", "").replace("https://", "").strip("/")


class S3BlobStore:
    """
    Bucket store on top of the ``minio`` client.

    The client is synchronous, so every call runs in a worker thread. Client
    and transport failures surface as ``BlobStoreError``.
    """

    def __init__(self, client: Optional[Minio] = None):
        self.client = client or Minio(
            endpoint=_endpoint_host(settings.S3_ENDPOINT),
            access_key=settings.S3_ACCESS_KEY,
            secret_key=settings.S3_SECRET_KEY,
            secure=settings.S3_ENDPOINT.startswith("https"),
            region=settings.S3_REGION,
        )

    async def _call(self, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except S3Error as e:
            if e.code in NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object not found: {e.message}") from e
            raise BlobStoreError(f"Storage error {e.code}: {e.message}") from e
        except (MinioException, HTTPError, OSError) as e:
            raise BlobStoreError(f"Storage request failed: {e}") from e

    # =========================================================================
    # Buckets
    # =========================================================================

    async def ensure_bucket(self, bucket: str) -> None:
        """Create the bucket if it does not exist yet (call on startup)."""
        if not await self._call(self.client.bucket_exists, bucket):
            await self._call(self.client.make_bucket, bucket)
            logger.info(f"Created bucket {bucket}")

    # =========================================================================
    # Object operations
    # =========================================================================

    async def exists(self, bucket: str, path: str) -> bool:
        try:
            await self._call(self.client.stat_object, bucket, _normalize_path(path))
        except ObjectNotFoundError:
            return False
        return True

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False
    ) -> str:
        """
        Store an object and return its normalized key.

        Raises:
            BlobStoreError: if the object already exists and upsert is False
        """
        key = _normalize_path(path)
        if not upsert and await self.exists(bucket, key):
            raise BlobStoreError(f"The resource already exists: {bucket}/{key}")

        await self._call(
            self.client.put_object,
            bucket_name=bucket,
            object_name=key,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
        )
        logger.info(f"Stored {bucket}/{key} ({len(data)} bytes)")
        return key

    async def download(self, bucket: str, path: str) -> StoredObject:
        """Read an object; raises ObjectNotFoundError when missing."""
        key = _normalize_path(path)

        def _read():
            response = self.client.get_object(bucket, key)
            try:
                content_type = response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
                return response.read(), content_type
            finally:
                response.close()
                response.release_conn()

        data, content_type = await self._call(_read)
        return StoredObject(data=data, content_type=content_type, size=len(data))

    # =========================================================================
    # Signed URLs
    # =========================================================================

    async def create_signed_url(
        self,
        bucket: str,
        path: str,
        expires_in: Optional[int] = None
    ) -> str:
        """Presigned, time-limited download URL for an existing object."""
        key = _normalize_path(path)
        await self._call(self.client.stat_object, bucket, key)

        expires_in = expires_in or settings.SIGNED_URL_EXPIRE_SECONDS
        return await self._call(
            self.client.presigned_get_object,
            bucket,
            key,
            expires=timedelta(seconds=expires_in),
        )


@lru_cache()
def get_blob_store() -> S3BlobStore:
    return S3BlobStore()
