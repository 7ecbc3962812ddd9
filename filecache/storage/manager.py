from __future__ import annotations

from typing import List, Optional, Sequence, Union

from .binder import LocalContentBinder
from .db import SqliteStore, init_db
from .deletion import DeletionService
from .directory import DirectoryIndex
from .engine import DEFAULT_MAX_CASCADE_DEPTH, Reconciler
from .lookup import RecordLookup
from .models import FileRecord
from .store import PersistentStore


class FileStorageManager:
    """Entry point used by the sync client and the browsing read paths.

    Every call names the owner account explicitly; the manager itself holds
    no account state and can be shared between callers.
    """

    def __init__(
        self,
        store: PersistentStore,
        download_root: str,
        max_cascade_depth: int = DEFAULT_MAX_CASCADE_DEPTH,
    ):
        self.store = store
        self.binder = LocalContentBinder(download_root)
        self.lookup = RecordLookup(store, self.binder)
        self.directory = DirectoryIndex(store, self.binder)
        self.reconciler = Reconciler(store, self.lookup, self.directory, max_cascade_depth)
        self.deletion = DeletionService(store)

    @classmethod
    def from_config(cls, cfg) -> "FileStorageManager":
        init_db(cfg.database.path)
        return cls(
            SqliteStore(cfg.database.path),
            cfg.cache.download_root,
            max_cascade_depth=cfg.cache.max_cascade_depth,
        )

    def find_by_path(self, account: str, path: str) -> Optional[FileRecord]:
        return self.lookup.find_by_path(account, path)

    def find_by_id(self, account: str, record_id: int) -> Optional[FileRecord]:
        return self.lookup.find_by_id(account, record_id)

    def exists(self, account: str, key: Union[str, int]) -> bool:
        return self.lookup.exists(account, key)

    def upsert_one(self, account: str, record: FileRecord) -> bool:
        return self.reconciler.upsert_one(account, record)

    def upsert_many(self, account: str, records: Sequence[FileRecord]):
        self.reconciler.upsert_many(account, records)

    def list_children(self, account: str, directory: FileRecord) -> List[FileRecord]:
        return self.directory.list_children(account, directory)

    def remove(self, account: str, record: FileRecord, delete_local_copy: bool = False):
        self.deletion.remove(account, record, delete_local_copy)
