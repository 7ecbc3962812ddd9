from __future__ import annotations

import json
import logging
from typing import Any, Optional, Union

from .binder import LocalContentBinder
from .errors import StoreUnavailable
from .models import FileRecord
from .store import PersistentStore

logger = logging.getLogger(__name__)


class RecordLookup:
    """Account-scoped lookups by path or id.

    An unreachable store reads as "absent": lookups return None and
    existence checks return False, so write paths fall back to inserts
    rather than clobbering unrelated rows.
    """

    def __init__(self, store: PersistentStore, binder: LocalContentBinder):
        self.store = store
        self.binder = binder

    def _first(self, account: str, **criteria: Any) -> Optional[FileRecord]:
        try:
            rows = self.store.query(account, **criteria)
        except StoreUnavailable as e:
            logger.warning(
                "lookup_failed %s",
                json.dumps({"account": account, "criteria": criteria, "error": str(e)}, ensure_ascii=False),
            )
            return None
        if not rows:
            return None
        return self.binder.bind(account, FileRecord.from_row(rows[0]))

    def find_by_path(self, account: str, path: str) -> Optional[FileRecord]:
        return self._first(account, remote_path=path)

    def find_by_id(self, account: str, record_id: int) -> Optional[FileRecord]:
        return self._first(account, id=record_id)

    def exists(self, account: str, key: Union[str, int]) -> bool:
        """Existence by remote path (str) or record id (int)."""
        if isinstance(key, bool):
            raise TypeError("exists() key must be a path or an id")
        criteria = {"id": key} if isinstance(key, int) else {"remote_path": key}
        try:
            return bool(self.store.query(account, **criteria))
        except StoreUnavailable as e:
            logger.warning(
                "exists_check_failed assuming_absent %s",
                json.dumps({"account": account, "criteria": criteria, "error": str(e)}, ensure_ascii=False),
            )
            return False
