from __future__ import annotations

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath

from domain.errors import BlobStoreError, BucketAlreadyExistsError, ObjectRejectedError
from domain.models import BucketInfo, BucketOptions, StoredObject
from infrastructure.blob_store.provider import BlobStore
from infrastructure.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageResult:
    success: bool
    message: str
    bucket: BucketInfo | None = None


def receipt_bucket_options(settings: Settings) -> BucketOptions:
    return BucketOptions(
        public=True,
        size_limit=settings.receipt_max_bytes,
        allowed_types=tuple(settings.receipt_allowed_types),
    )


def ensure_bucket_exists(store: BlobStore, bucket_name: str, options: BucketOptions | None = None) -> StorageResult:
    """Create `bucket_name` unless it is already there. An existing bucket counts as success.

    Store failures come back as ``success=False``; an unacceptable bucket name
    raises ObjectRejectedError since retrying cannot fix it.
    """
    logger.info("Checking if bucket exists bucket=%s", bucket_name)
    try:
        existing = store.find_bucket(bucket_name)
    except BlobStoreError as exc:
        logger.error("Error listing buckets: %s", exc)
        return StorageResult(success=False, message=f"Error checking buckets: {exc}")

    if existing is not None:
        logger.info("Bucket already exists bucket=%s", bucket_name)
        return StorageResult(success=True, message=f"Bucket '{bucket_name}' already exists", bucket=existing)

    try:
        created = store.create_bucket(bucket_name, options)
    except BucketAlreadyExistsError:
        # Created concurrently between the listing and the create call.
        logger.info("Bucket appeared during creation bucket=%s", bucket_name)
        return StorageResult(
            success=True,
            message=f"Bucket '{bucket_name}' already exists",
            bucket=store.find_bucket(bucket_name),
        )
    except ObjectRejectedError:
        raise
    except BlobStoreError as exc:
        logger.error("Error creating bucket=%s: %s", bucket_name, exc)
        return StorageResult(success=False, message=f"Failed to create bucket: {exc}")

    return StorageResult(success=True, message=f"Bucket '{bucket_name}' created successfully", bucket=created)


def _receipt_extension(filename: str | None, content_type: str | None) -> str:
    suffix = PurePosixPath(filename or "").suffix.lower()
    if suffix:
        return suffix
    guessed = mimetypes.guess_extension(content_type or "") if content_type else None
    return guessed or ""


def upload_receipt(
    store: BlobStore,
    settings: Settings,
    data: bytes,
    *,
    filename: str | None = None,
    content_type: str | None = None,
) -> StoredObject:
    """Store a receipt image under a fresh name in the receipts bucket."""
    if not data:
        raise ObjectRejectedError("Receipt upload is empty")

    result = ensure_bucket_exists(store, settings.receipts_bucket, receipt_bucket_options(settings))
    if not result.success:
        raise BlobStoreError(result.message)

    path = f"receipts/{uuid.uuid4().hex}{_receipt_extension(filename, content_type)}"
    stored = store.put_object(settings.receipts_bucket, path, data, content_type=content_type)
    logger.info("Uploaded receipt bucket=%s path=%s bytes=%d", stored.bucket, stored.path, stored.size)
    return stored
