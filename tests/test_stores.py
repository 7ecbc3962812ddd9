from pathlib import Path

import pytest

from filecache.storage import (
    DuplicateRecordError,
    InsertOp,
    MemoryStore,
    SqliteStore,
    StoreUnavailable,
    UpdateOp,
)


def _attrs(path: str, account: str = "alice", **extra):
    attrs = {"remote_path": path, "file_name": path.rstrip("/").rsplit("/", 1)[-1], "account": account}
    attrs.update(extra)
    return attrs


def test_query_is_scoped_by_account_and_ordered_by_id(store):
    first = store.insert(_attrs("/b.txt"))
    second = store.insert(_attrs("/a.txt"))
    store.insert(_attrs("/a.txt", account="bob"))

    rows = store.query("alice")

    assert [r["id"] for r in rows] == [first, second]
    assert [r["remote_path"] for r in store.query("alice", remote_path="/a.txt")] == ["/a.txt"]
    assert store.query("carol") == []


def test_insert_rejects_duplicate_path_for_same_account(store):
    store.insert(_attrs("/a.txt"))

    with pytest.raises(DuplicateRecordError):
        store.insert(_attrs("/a.txt"))


def test_update_and_delete_respect_account(store):
    record_id = store.insert(_attrs("/a.txt", length=1))

    assert store.update(record_id, {"length": 5}, "bob") == 0
    assert store.update(record_id, {"length": 5}, "alice") == 1
    assert store.query("alice", id=record_id)[0]["length"] == 5

    assert store.delete(record_id, "bob") == 0
    assert store.delete(record_id, "alice") == 1
    assert store.query("alice") == []


def test_query_rejects_unknown_fields(store):
    with pytest.raises(ValueError):
        store.query("alice", mime_type="text/plain")


def test_batch_apply_returns_results_in_submission_order(store):
    existing = store.insert(_attrs("/a.txt"))

    results = store.batch_apply(
        [
            InsertOp(_attrs("/b.txt")),
            UpdateOp(existing, {"length": 9}, "alice"),
            InsertOp(_attrs("/c.txt")),
        ]
    )

    assert [r.ok for r in results] == [True, True, True]
    assert results[0].generated_id is not None
    assert results[1].generated_id is None and results[1].affected == 1
    assert results[2].generated_id is not None
    by_path = {r["remote_path"]: r["id"] for r in store.query("alice")}
    assert by_path["/b.txt"] == results[0].generated_id
    assert by_path["/c.txt"] == results[2].generated_id


def test_batch_apply_is_all_or_nothing(store):
    store.insert(_attrs("/a.txt"))

    results = store.batch_apply([InsertOp(_attrs("/new.txt")), InsertOp(_attrs("/a.txt"))])

    assert results[-1].ok is False
    assert all(r.generated_id is None for r in results)
    assert [r["remote_path"] for r in store.query("alice")] == ["/a.txt"]


def test_failed_batch_leaves_updated_rows_untouched(store):
    existing = store.insert(_attrs("/a.txt", length=1))

    results = store.batch_apply([UpdateOp(existing, {"length": 9}, "alice"), InsertOp(_attrs("/a.txt"))])

    assert results[-1].ok is False
    assert store.query("alice", id=existing)[0]["length"] == 1


def test_batch_sees_its_own_earlier_writes(store):
    existing = store.insert(_attrs("/a.txt"))

    results = store.batch_apply(
        [
            UpdateOp(existing, {"remote_path": "/renamed.txt"}, "alice"),
            InsertOp(_attrs("/a.txt")),
            InsertOp(_attrs("/renamed.txt")),
        ]
    )

    assert len(results) == 3
    assert results[2].ok is False
    assert [r["remote_path"] for r in store.query("alice")] == ["/a.txt"]


def test_memory_store_ids_are_not_consumed_by_failed_batch():
    store = MemoryStore()
    store.insert(_attrs("/a.txt"))
    store.batch_apply([InsertOp(_attrs("/b.txt")), InsertOp(_attrs("/a.txt"))])

    assert store.insert(_attrs("/c.txt")) == 2


def test_sqlite_store_unreachable_path_raises_unavailable(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = SqliteStore(str(blocker / "cache.db"))

    with pytest.raises(StoreUnavailable):
        store.query("alice")
    with pytest.raises(StoreUnavailable):
        store.insert(_attrs("/a.txt"))


def test_sqlite_store_without_schema_raises_unavailable(tmp_path: Path):
    store = SqliteStore(str(tmp_path / "empty.db"))

    with pytest.raises(StoreUnavailable):
        store.query("alice", remote_path="/a.txt")
    with pytest.raises(StoreUnavailable):
        store.delete(1, "alice")

    results = store.batch_apply([UpdateOp(1, {"length": 1}, "alice")])
    assert results[0].ok is False
