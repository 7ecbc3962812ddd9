from .errors import (
    BatchApplyFailure,
    DuplicateRecordError,
    FileCacheError,
    InvariantViolation,
    LocalContentMissing,
    StoreError,
    StoreUnavailable,
)
from .manager import FileStorageManager
from .memory import MemoryStore
from .db import SqliteStore
from .models import ROOT_PARENT_ID, UNSET_ID, FileRecord
from .store import BatchResult, InsertOp, PersistentStore, UpdateOp

__all__ = [
    "BatchApplyFailure",
    "BatchResult",
    "DuplicateRecordError",
    "FileCacheError",
    "FileRecord",
    "FileStorageManager",
    "InsertOp",
    "InvariantViolation",
    "LocalContentMissing",
    "MemoryStore",
    "PersistentStore",
    "ROOT_PARENT_ID",
    "SqliteStore",
    "StoreError",
    "StoreUnavailable",
    "UNSET_ID",
    "UpdateOp",
]
