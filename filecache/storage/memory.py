from __future__ import annotations

import threading
from collections import ChainMap
from typing import Any, Dict, List, MutableMapping, Sequence

from .errors import DuplicateRecordError
from .store import BatchResult, InsertOp, PersistentStore, StoreOperation, UpdateOp, check_criteria

ROW_DEFAULTS = {
    "file_name": None,
    "parent_id": None,
    "mime_type": None,
    "length": 0,
    "created_at": 0,
    "modified_at": 0,
    "last_synced_at": 0,
    "keep_in_sync": 0,
    "local_path": None,
}


class MemoryStore(PersistentStore):
    """Process-local `PersistentStore` with the same constraints as sqlite.

    Rows live in a dict keyed by id. A batch writes into an overlay in front
    of the table, merged in only when every operation succeeded. Rows are
    replaced on update, never mutated, so the overlay holds just the rows the
    batch touched.
    """

    def __init__(self):
        self._rows: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def _find_duplicate(self, rows: MutableMapping[int, Dict[str, Any]], attributes: Dict[str, Any], skip_id: int = -1):
        for row_id, row in rows.items():
            if row_id == skip_id:
                continue
            if row["remote_path"] == attributes.get("remote_path") and row["account"] == attributes.get("account"):
                return row_id
        return None

    def _insert_into(self, rows: MutableMapping[int, Dict[str, Any]], attributes: Dict[str, Any]) -> int:
        if self._find_duplicate(rows, attributes) is not None:
            raise DuplicateRecordError(attributes.get("remote_path", ""), attributes.get("account", ""))
        row_id = self._next_id
        self._next_id += 1
        row = dict(ROW_DEFAULTS)
        row.update(attributes)
        row["id"] = row_id
        rows[row_id] = row
        return row_id

    def _update_in(self, rows: MutableMapping[int, Dict[str, Any]], record_id: int, attributes: Dict[str, Any], account: str) -> int:
        row = rows.get(record_id)
        if row is None or row["account"] != account:
            return 0
        merged = dict(row)
        merged.update(attributes)
        if self._find_duplicate(rows, merged, skip_id=record_id) is not None:
            raise DuplicateRecordError(merged["remote_path"], account)
        rows[record_id] = merged
        return 1

    def query(self, account: str, **criteria: Any) -> List[Dict[str, Any]]:
        check_criteria(criteria)
        with self._lock:
            out = []
            for row_id in sorted(self._rows):
                row = self._rows[row_id]
                if row["account"] != account:
                    continue
                if all(row.get(k) == v for k, v in criteria.items()):
                    out.append(dict(row))
            return out

    def insert(self, attributes: Dict[str, Any]) -> int:
        with self._lock:
            return self._insert_into(self._rows, attributes)

    def update(self, record_id: int, attributes: Dict[str, Any], account: str) -> int:
        with self._lock:
            return self._update_in(self._rows, record_id, attributes, account)

    def delete(self, record_id: int, account: str) -> int:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None or row["account"] != account:
                return 0
            del self._rows[record_id]
            return 1

    def batch_apply(self, operations: Sequence[StoreOperation]) -> List[BatchResult]:
        with self._lock:
            staged = ChainMap({}, self._rows)
            next_id = self._next_id
            results: List[BatchResult] = []
            for index, op in enumerate(operations):
                try:
                    if isinstance(op, InsertOp):
                        results.append(BatchResult(generated_id=self._insert_into(staged, op.attributes), affected=1))
                    elif isinstance(op, UpdateOp):
                        results.append(BatchResult(affected=self._update_in(staged, op.record_id, op.attributes, op.account)))
                    else:
                        raise ValueError(f"unknown_operation:{type(op).__name__}")
                except (DuplicateRecordError, ValueError) as e:
                    self._next_id = next_id
                    failed = [BatchResult() for _ in range(index)]
                    failed.append(BatchResult(error=str(e)))
                    return failed
            self._rows.update(staged.maps[0])
            return results
