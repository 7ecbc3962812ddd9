import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .errors import DuplicateRecordError, StoreUnavailable
from .store import BatchResult, InsertOp, PersistentStore, StoreOperation, UpdateOp, check_criteria

logger = logging.getLogger(__name__)

COLUMNS = (
    "remote_path",
    "file_name",
    "parent_id",
    "mime_type",
    "length",
    "created_at",
    "modified_at",
    "last_synced_at",
    "keep_in_sync",
    "local_path",
    "account",
)


def get_conn(db_path: str):
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str):
    conn = get_conn(db_path)
    cur = conn.cursor()

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS files (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          remote_path TEXT NOT NULL,
          file_name TEXT,
          parent_id INTEGER,
          mime_type TEXT,
          length INTEGER DEFAULT 0,
          created_at INTEGER DEFAULT 0,
          modified_at INTEGER DEFAULT 0,
          last_synced_at INTEGER DEFAULT 0,
          keep_in_sync INTEGER DEFAULT 0,
          local_path TEXT,
          account TEXT NOT NULL,
          UNIQUE(remote_path, account)
        )
        """
    )

    cur.execute("CREATE INDEX IF NOT EXISTS idx_files_parent ON files(parent_id, account)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_files_path ON files(remote_path, account)")

    conn.commit()
    conn.close()


def _columns(attributes: Dict[str, Any]) -> List[str]:
    unknown = set(attributes) - set(COLUMNS)
    if unknown:
        raise ValueError(f"unsupported_columns:{','.join(sorted(unknown))}")
    return [c for c in COLUMNS if c in attributes]


def _insert_sql(attributes: Dict[str, Any]):
    cols = _columns(attributes)
    placeholders = ",".join("?" for _ in cols)
    return f"INSERT INTO files({','.join(cols)}) VALUES ({placeholders})", [attributes[c] for c in cols]


def _update_sql(record_id: int, attributes: Dict[str, Any], account: str):
    cols = _columns(attributes)
    assignments = ", ".join(f"{c}=?" for c in cols)
    params = [attributes[c] for c in cols] + [record_id, account]
    return f"UPDATE files SET {assignments} WHERE id=? AND account=?", params


class SqliteStore(PersistentStore):
    """`PersistentStore` on a local sqlite database, one connection per call."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    @contextmanager
    def _db(self):
        try:
            conn = get_conn(self.db_path)
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailable(f"store_connect_failed:{e}") from e
        try:
            yield conn
        finally:
            conn.close()

    def query(self, account: str, **criteria: Any) -> List[Dict[str, Any]]:
        check_criteria(criteria)
        clauses = ["account=?"]
        params: List[Any] = [account]
        for key, value in criteria.items():
            if value is None:
                clauses.append(f"{key} IS NULL")
            else:
                clauses.append(f"{key}=?")
                params.append(value)

        with self._db() as conn:
            try:
                rows = conn.execute(
                    f"SELECT * FROM files WHERE {' AND '.join(clauses)} ORDER BY id",
                    params,
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"store_query_failed:{e}") from e
        return [dict(r) for r in rows]

    def insert(self, attributes: Dict[str, Any]) -> int:
        sql, params = _insert_sql(attributes)
        with self._db() as conn:
            try:
                cur = conn.execute(sql, params)
                conn.commit()
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError(attributes.get("remote_path", ""), attributes.get("account", "")) from e
            except sqlite3.Error as e:
                raise StoreUnavailable(f"store_insert_failed:{e}") from e
            return int(cur.lastrowid)

    def update(self, record_id: int, attributes: Dict[str, Any], account: str) -> int:
        sql, params = _update_sql(record_id, attributes, account)
        with self._db() as conn:
            try:
                cur = conn.execute(sql, params)
                conn.commit()
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError(attributes.get("remote_path", ""), account) from e
            except sqlite3.Error as e:
                raise StoreUnavailable(f"store_update_failed:{e}") from e
            return cur.rowcount

    def delete(self, record_id: int, account: str) -> int:
        with self._db() as conn:
            try:
                cur = conn.execute("DELETE FROM files WHERE id=? AND account=?", (record_id, account))
                conn.commit()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"store_delete_failed:{e}") from e
            return cur.rowcount

    def batch_apply(self, operations: Sequence[StoreOperation]) -> List[BatchResult]:
        """Run every operation in one transaction.

        The first failing operation rolls the whole transaction back; the
        returned list then carries an error at that position and no ids.
        """
        results: List[BatchResult] = []
        with self._db() as conn:
            conn.isolation_level = None
            try:
                conn.execute("BEGIN")
            except sqlite3.Error as e:
                raise StoreUnavailable(f"store_begin_failed:{e}") from e

            for index, op in enumerate(operations):
                try:
                    if isinstance(op, InsertOp):
                        sql, params = _insert_sql(op.attributes)
                        cur = conn.execute(sql, params)
                        results.append(BatchResult(generated_id=int(cur.lastrowid), affected=1))
                    elif isinstance(op, UpdateOp):
                        sql, params = _update_sql(op.record_id, op.attributes, op.account)
                        cur = conn.execute(sql, params)
                        results.append(BatchResult(affected=cur.rowcount))
                    else:
                        raise ValueError(f"unknown_operation:{type(op).__name__}")
                except (sqlite3.Error, ValueError) as e:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    logger.warning("batch_rolled_back index=%s error=%s", index, e)
                    failed = [BatchResult() for _ in range(index)]
                    failed.append(BatchResult(error=str(e)))
                    return failed

            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise StoreUnavailable(f"store_commit_failed:{e}") from e
        return results
