"""
Exceptions raised by the metadata cache and its stores.
"""

from __future__ import annotations

from typing import Optional


class FileCacheError(Exception):
    """Base exception for metadata cache operations."""


class StoreError(FileCacheError):
    """Raised when a persistent store operation fails."""


class StoreUnavailable(StoreError):
    """Raised when the persistent store cannot be reached."""


class DuplicateRecordError(StoreError):
    """Raised when an insert would duplicate (remote_path, account)."""

    def __init__(self, remote_path: str, account: str):
        super().__init__(f"duplicate_record:{account}:{remote_path}")
        self.remote_path = remote_path
        self.account = account


class BatchApplyFailure(FileCacheError):
    """Raised when an atomic batch apply reports an error."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class LocalContentMissing(FileCacheError):
    """Raised when a record's local path no longer exists on disk."""

    def __init__(self, remote_path: str, local_path: str):
        super().__init__(f"local_content_missing:{remote_path}:{local_path}")
        self.remote_path = remote_path
        self.local_path = local_path


class InvariantViolation(FileCacheError):
    """Raised when a record would break a structural invariant of the cache."""
