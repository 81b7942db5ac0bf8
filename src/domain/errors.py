from __future__ import annotations


class FinanceTrackerError(Exception):
    """Base exception for finance tracker errors."""


class ValidationError(FinanceTrackerError, ValueError):
    """Invalid report period or transaction payload."""


class ConfigurationError(FinanceTrackerError):
    pass


class RecordStoreError(FinanceTrackerError):
    pass


class RecordNotFoundError(RecordStoreError):
    pass


class BlobStoreError(FinanceTrackerError):
    pass


class BucketAlreadyExistsError(BlobStoreError):
    pass


class ObjectRejectedError(BlobStoreError):
    """The upload itself is unacceptable: empty, too large, wrong type or bad name."""
