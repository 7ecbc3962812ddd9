from __future__ import annotations

import json
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .directory import DirectoryIndex
from .errors import BatchApplyFailure, FileCacheError, StoreError
from .lookup import RecordLookup
from .models import FileRecord
from .store import InsertOp, PersistentStore, StoreOperation, UpdateOp

logger = logging.getLogger(__name__)

DEFAULT_MAX_CASCADE_DEPTH = 64


class Reconciler:
    """Merges incoming remote descriptions into the cached records.

    An incoming record whose path is already cached takes over the cached
    id, and keeps the cached local path unless it carries one of its own.
    Directories flagged with `needs_updating` have their current children
    saved again after the directory itself.
    """

    def __init__(
        self,
        store: PersistentStore,
        lookup: RecordLookup,
        directory: DirectoryIndex,
        max_cascade_depth: int = DEFAULT_MAX_CASCADE_DEPTH,
    ):
        self.store = store
        self.lookup = lookup
        self.directory = directory
        self.max_cascade_depth = max_cascade_depth

    def _adopt_existing(self, account: str, incoming: FileRecord, existing: FileRecord):
        if incoming.local_path is None and existing.local_path is not None and not incoming.is_directory:
            incoming.local_path = existing.local_path
        if incoming.is_persisted and incoming.id != existing.id:
            logger.warning(
                "identity_reused %s",
                json.dumps(
                    {
                        "account": account,
                        "remote_path": incoming.remote_path,
                        "incoming_id": incoming.id,
                        "existing_id": existing.id,
                    },
                    ensure_ascii=False,
                ),
            )
        incoming.id = existing.id

    def _cascade_children(self, account: str, parent: FileRecord, trail: Tuple[int, ...]) -> List[FileRecord]:
        if len(trail) >= self.max_cascade_depth:
            logger.warning(
                "cascade_depth_exceeded %s",
                json.dumps({"account": account, "remote_path": parent.remote_path, "depth": len(trail)}, ensure_ascii=False),
            )
            return []

        children = []
        for child in self.directory.list_children(account, parent):
            if child.id == parent.id or child.id in trail:
                logger.warning(
                    "cascade_cycle_skipped %s",
                    json.dumps(
                        {"account": account, "parent": parent.remote_path, "child": child.remote_path, "id": child.id},
                        ensure_ascii=False,
                    ),
                )
                continue
            children.append(child)
        return children

    def upsert_one(self, account: str, incoming: FileRecord) -> bool:
        """Save one record; True when it replaced an existing cached record."""
        return self._upsert_one(account, incoming, ())

    def _upsert_one(self, account: str, incoming: FileRecord, trail: Tuple[int, ...]) -> bool:
        existing = self.lookup.find_by_path(account, incoming.remote_path)
        if existing is not None:
            self._adopt_existing(account, incoming, existing)
            incoming.check_invariants()
            self.store.update(incoming.id, incoming.to_attributes(account), account)
            overridden = True
        else:
            incoming.check_invariants()
            incoming.id = self.store.insert(incoming.to_attributes(account))
            overridden = False

        if incoming.is_directory and incoming.needs_updating:
            for child in self._cascade_children(account, incoming, trail):
                self._upsert_one(account, child, trail + (incoming.id,))

        return overridden

    def upsert_many(self, account: str, records: Sequence[FileRecord]):
        """Save many records in one atomic batch.

        Raises `BatchApplyFailure` when the batch could not be applied; the
        records then carry the ids and local paths they had before the call.
        Children refreshed for flagged directories go in later batches whose
        failures are logged, not raised.
        """
        self._upsert_many(account, list(records), ())

    def _upsert_many(self, account: str, records: List[FileRecord], trail: Tuple[int, ...]):
        if not records:
            return

        snapshot = [(r.id, r.local_path) for r in records]
        operations: List[StoreOperation] = []
        try:
            for record in records:
                existing = self.lookup.find_by_path(account, record.remote_path)
                if existing is not None:
                    self._adopt_existing(account, record, existing)
                    record.check_invariants()
                    operations.append(UpdateOp(record.id, record.to_attributes(account), account))
                else:
                    record.check_invariants()
                    operations.append(InsertOp(record.to_attributes(account)))
        except FileCacheError:
            _restore(records, snapshot)
            raise

        try:
            results = self.store.batch_apply(operations)
        except StoreError as e:
            _restore(records, snapshot)
            raise BatchApplyFailure(f"batch_apply_failed:{e}") from e

        failure = _first_failure(results, len(operations))
        if failure is not None:
            failed_index, error = failure
            _restore(records, snapshot)
            logger.error(
                "batch_apply_failed %s",
                json.dumps({"account": account, "index": failed_index, "error": error}, ensure_ascii=False),
            )
            raise BatchApplyFailure(f"batch_apply_failed:{error}", index=failed_index)

        inserted = 0
        for record, op, result in zip(records, operations, results):
            if isinstance(op, InsertOp) and result.generated_id is not None:
                record.id = result.generated_id
                inserted += 1
        logger.debug(
            "batch_applied %s",
            json.dumps({"account": account, "total": len(operations), "inserted": inserted}, ensure_ascii=False),
        )

        # The batch above is committed; a failed child refresh must not undo its ids.
        for record in records:
            if record.is_directory and record.needs_updating:
                children = self._cascade_children(account, record, trail)
                try:
                    self._upsert_many(account, children, trail + (record.id,))
                except FileCacheError as e:
                    logger.warning(
                        "cascade_refresh_failed %s",
                        json.dumps(
                            {"account": account, "remote_path": record.remote_path, "children": len(children), "error": str(e)},
                            ensure_ascii=False,
                        ),
                    )


def _restore(records: Iterable[FileRecord], snapshot: List[Tuple[int, Optional[str]]]):
    for record, (record_id, local_path) in zip(records, snapshot):
        record.id = record_id
        record.local_path = local_path


def _first_failure(results, expected: int) -> Optional[Tuple[int, str]]:
    for index, result in enumerate(results):
        if not result.ok:
            return index, result.error
    if len(results) != expected:
        return min(len(results), expected), "result_count_mismatch"
    return None
