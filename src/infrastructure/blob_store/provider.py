from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import BucketInfo, BucketOptions, StoredObject


class BlobStore(ABC):
    """Base contract for object storage holding receipt images."""

    name: str = "blob_store"

    @abstractmethod
    def list_buckets(self) -> list[BucketInfo]:
        raise NotImplementedError

    @abstractmethod
    def create_bucket(self, name: str, options: BucketOptions | None = None) -> BucketInfo:
        """Create a bucket; raises BucketAlreadyExistsError when it is already present."""
        raise NotImplementedError

    @abstractmethod
    def put_object(self, bucket: str, path: str, data: bytes, content_type: str | None = None) -> StoredObject:
        raise NotImplementedError

    def find_bucket(self, name: str) -> BucketInfo | None:
        return next((bucket for bucket in self.list_buckets() if bucket.name == name), None)
