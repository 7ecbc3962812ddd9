from __future__ import annotations

import json
import logging
from typing import List

from .binder import LocalContentBinder
from .errors import StoreUnavailable
from .models import FileRecord
from .store import PersistentStore

logger = logging.getLogger(__name__)


class DirectoryIndex:
    def __init__(self, store: PersistentStore, binder: LocalContentBinder):
        self.store = store
        self.binder = binder

    def list_children(self, account: str, directory: FileRecord) -> List[FileRecord]:
        """Children of a persisted directory, ordered by remote path.

        Anything other than a persisted directory yields an empty list, as
        does a store that cannot be reached.
        """
        if directory is None or not directory.is_directory or not directory.is_persisted:
            return []

        try:
            rows = self.store.query(account, parent_id=directory.id)
        except StoreUnavailable as e:
            logger.warning(
                "list_children_failed %s",
                json.dumps({"account": account, "directory": directory.remote_path, "error": str(e)}, ensure_ascii=False),
            )
            return []

        children = [self.binder.bind(account, FileRecord.from_row(row)) for row in rows]
        children.sort(key=lambda r: r.remote_path)
        return children
