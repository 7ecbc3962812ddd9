from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import FileRecord
from .store import PersistentStore

logger = logging.getLogger(__name__)


class DeletionService:
    def __init__(self, store: PersistentStore):
        self.store = store

    def remove(self, account: str, record: FileRecord, delete_local_copy: bool = False):
        # One delete per call; children of a directory are the caller's concern.
        affected = self.store.delete(record.id, account)
        logger.info(
            "record_removed %s",
            json.dumps(
                {"account": account, "remote_path": record.remote_path, "id": record.id, "affected": affected},
                ensure_ascii=False,
            ),
        )

        if delete_local_copy and record.is_down:
            Path(record.local_path).unlink(missing_ok=True)
            logger.info("local_content_removed %s", record.local_path)
