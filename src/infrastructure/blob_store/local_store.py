from __future__ import annotations

import json
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any

from domain.errors import BlobStoreError, BucketAlreadyExistsError, ObjectRejectedError
from domain.models import BucketInfo, BucketOptions, StoredObject
from infrastructure.blob_store.provider import BlobStore

logger = logging.getLogger(__name__)

METADATA_FILE = ".bucket.json"
_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]{1,62}$")


class LocalBlobStore(BlobStore):
    """Filesystem object store: one directory per bucket under `root`."""

    name = "local"

    def __init__(self, root: Path | str, public_base_url: str = "/storage") -> None:
        self._root = Path(root)
        self._public_base_url = public_base_url.rstrip("/")

    def list_buckets(self) -> list[BucketInfo]:
        if not self._root.is_dir():
            return []
        buckets = []
        for entry in sorted(self._root.iterdir()):
            meta_path = entry / METADATA_FILE
            if entry.is_dir() and meta_path.is_file():
                buckets.append(self._read_metadata(entry.name, meta_path))
        return buckets

    def create_bucket(self, name: str, options: BucketOptions | None = None) -> BucketInfo:
        if not _BUCKET_NAME_RE.match(name or ""):
            raise ObjectRejectedError(f"Invalid bucket name: {name!r}")
        options = options or BucketOptions()
        bucket_dir = self._root / name
        meta_path = bucket_dir / METADATA_FILE
        if meta_path.exists():
            raise BucketAlreadyExistsError(f"Bucket already exists: {name}")

        info = BucketInfo(
            name=name,
            public=options.public,
            size_limit=options.size_limit,
            allowed_types=tuple(options.allowed_types),
        )
        payload = {
            "public": info.public,
            "size_limit": info.size_limit,
            "allowed_types": list(info.allowed_types),
        }
        try:
            bucket_dir.mkdir(parents=True, exist_ok=True)
            with open(meta_path, "x", encoding="utf-8") as f:
                json.dump(payload, f)
        except FileExistsError as exc:
            raise BucketAlreadyExistsError(f"Bucket already exists: {name}") from exc
        except OSError as exc:
            raise BlobStoreError(f"Unable to create bucket {name}: {exc}") from exc

        logger.info("Local blob store created bucket=%s public=%s size_limit=%s", name, info.public, info.size_limit)
        return info

    def put_object(self, bucket: str, path: str, data: bytes, content_type: str | None = None) -> StoredObject:
        bucket_dir = self._root / bucket
        meta_path = bucket_dir / METADATA_FILE
        if not meta_path.is_file():
            raise BlobStoreError(f"Bucket not found: {bucket}")
        info = self._read_metadata(bucket, meta_path)

        relative = self._safe_path(path)
        if info.size_limit is not None and len(data) > info.size_limit:
            raise ObjectRejectedError(
                f"Object exceeds bucket size limit: {len(data)} > {info.size_limit} bytes"
            )
        if info.allowed_types and (content_type or "") not in info.allowed_types:
            raise ObjectRejectedError(f"Content type not allowed in bucket {bucket}: {content_type!r}")

        target = bucket_dir.joinpath(*relative.parts)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise BlobStoreError(f"Unable to write object {bucket}/{relative}: {exc}") from exc

        url = f"{self._public_base_url}/{bucket}/{relative.as_posix()}"
        logger.info("Local blob store stored object bucket=%s path=%s bytes=%d", bucket, relative, len(data))
        return StoredObject(bucket=bucket, path=relative.as_posix(), url=url, size=len(data), content_type=content_type)

    def _safe_path(self, path: str) -> PurePosixPath:
        relative = PurePosixPath(str(path or "").strip())
        if not relative.parts or relative.is_absolute() or ".." in relative.parts:
            raise ObjectRejectedError(f"Invalid object path: {path!r}")
        if relative.name == METADATA_FILE:
            raise ObjectRejectedError(f"Reserved object path: {path!r}")
        return relative

    def _read_metadata(self, name: str, meta_path: Path) -> BucketInfo:
        try:
            payload: dict[str, Any] = json.loads(meta_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise BlobStoreError(f"Unreadable metadata for bucket {name}: {exc}") from exc
        return BucketInfo(
            name=name,
            public=bool(payload.get("public", True)),
            size_limit=payload.get("size_limit"),
            allowed_types=tuple(payload.get("allowed_types") or ()),
        )
