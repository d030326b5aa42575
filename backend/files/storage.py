"""
Blob store adapter.

A thin wrapper around the MinIO client that exposes exactly the operations
the staging and report services need: put / get / copy / delete / exists /
presign on a named object in a named bucket.  Every client failure is
re-raised as ``core.domain.exceptions.StorageError`` so callers only deal
with domain exceptions.

Two clients are built from settings:

* the *internal* client talks to the MinIO service over the private network;
* the *external* client is only used to sign presigned URLs, because the
  signature covers the host name the browser will use.

Usage::

    from files.storage import get_blob_store

    store = get_blob_store()
    store.put(settings.MINIO_REPORT_BUCKET, "temp/abc/photo.png", data, "image/png")
"""

from __future__ import annotations

import functools
import io
import logging
from datetime import timedelta

from django.conf import settings
from minio import Minio
from minio.commonconfig import CopySource
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from core.domain.exceptions import StorageError

logger = logging.getLogger(__name__)

# S3 error codes meaning "the object is simply not there".
_MISSING_CODES = frozenset({"NoSuchKey", "NoSuchObject", "NotFound", "ResourceNotFound"})

# minio-py lets transport failures (connection reset, retries exhausted)
# escape as urllib3 or socket errors rather than MinioException.
_CLIENT_ERRORS = (MinioException, HTTPError, OSError)


class MinioBlobStore:
    """Key/value blob store backed by MinIO (or any S3-compatible service)."""

    def __init__(self, client: Minio, presign_client: Minio | None = None) -> None:
        self.client = client
        self.presign_client = presign_client or client

    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            self.client.put_object(
                bucket,
                key,
                io.BytesIO(data),
                len(data),
                content_type=content_type,
            )
        except _CLIENT_ERRORS as exc:
            raise StorageError(f"Could not store object '{key}' in bucket '{bucket}': {exc}") from exc
        return key

    def get(self, bucket: str, key: str) -> bytes:
        try:
            response = self.client.get_object(bucket, key)
        except _CLIENT_ERRORS as exc:
            raise StorageError(f"Could not read object '{key}' from bucket '{bucket}': {exc}") from exc
        try:
            return response.read()
        except _CLIENT_ERRORS as exc:
            raise StorageError(f"Could not read object '{key}' from bucket '{bucket}': {exc}") from exc
        finally:
            response.close()
            response.release_conn()

    def copy(self, bucket: str, src_key: str, dst_key: str) -> None:
        """
        Server-side copy inside one bucket.

        The default metadata directive is COPY, so the source object's
        ``Content-Type`` travels with it.
        """
        try:
            self.client.copy_object(bucket, dst_key, CopySource(bucket, src_key))
        except _CLIENT_ERRORS as exc:
            raise StorageError(
                f"Could not copy '{src_key}' to '{dst_key}' in bucket '{bucket}': {exc}"
            ) from exc

    def delete(self, bucket: str, key: str) -> None:
        try:
            self.client.remove_object(bucket, key)
        except _CLIENT_ERRORS as exc:
            raise StorageError(f"Could not delete object '{key}' from bucket '{bucket}': {exc}") from exc

    def exists(self, bucket: str, key: str) -> bool:
        try:
            self.client.stat_object(bucket, key)
        except S3Error as exc:
            if exc.code in _MISSING_CODES:
                return False
            raise StorageError(f"Could not stat object '{key}' in bucket '{bucket}': {exc}") from exc
        except _CLIENT_ERRORS as exc:
            raise StorageError(f"Could not stat object '{key}' in bucket '{bucket}': {exc}") from exc
        return True

    def presign(self, bucket: str, key: str, ttl: timedelta) -> str:
        try:
            return self.presign_client.presigned_get_object(bucket, key, expires=ttl)
        except _CLIENT_ERRORS as exc:
            raise StorageError(f"Could not presign object '{key}' in bucket '{bucket}': {exc}") from exc

    def ensure_bucket(self, bucket: str) -> bool:
        """Create ``bucket`` if missing.  Returns ``True`` when it was created."""
        try:
            if self.client.bucket_exists(bucket):
                return False
            self.client.make_bucket(bucket)
        except _CLIENT_ERRORS as exc:
            raise StorageError(f"Could not create bucket '{bucket}': {exc}") from exc
        logger.info("Created bucket %s", bucket)
        return True


def bucket_for(category: str) -> str:
    """Map an upload category (``report`` / ``profile``) to its bucket name."""
    if category == "profile":
        return settings.MINIO_PROFILE_BUCKET
    return settings.MINIO_REPORT_BUCKET


@functools.lru_cache(maxsize=1)
def get_blob_store() -> MinioBlobStore:
    """Build the process-wide blob store from Django settings."""
    client = Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_USE_SSL,
        region=settings.MINIO_REGION,
    )
    presign_client = None
    if settings.MINIO_EXTERNAL_ENDPOINT != settings.MINIO_ENDPOINT:
        # Region is pinned so signing never needs a round-trip to the host.
        presign_client = Minio(
            settings.MINIO_EXTERNAL_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_EXTERNAL_USE_SSL,
            region=settings.MINIO_REGION,
        )
    return MinioBlobStore(client, presign_client)
