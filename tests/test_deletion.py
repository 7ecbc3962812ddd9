from pathlib import Path

import pytest

from filecache.storage import FileRecord, FileStorageManager, MemoryStore, StoreUnavailable


def _downloaded(manager, tmp_path: Path, path: str = "/a.txt") -> FileRecord:
    content = tmp_path / "content" / path.lstrip("/")
    content.parent.mkdir(parents=True, exist_ok=True)
    content.write_text("payload", encoding="utf-8")
    record = FileRecord(path, local_path=str(content))
    manager.upsert_one("alice", record)
    return record


def test_remove_with_local_copy_deletes_row_and_file(manager, tmp_path: Path):
    record = _downloaded(manager, tmp_path)

    manager.remove("alice", record, delete_local_copy=True)

    assert manager.find_by_path("alice", "/a.txt") is None
    assert not Path(record.local_path).exists()


def test_remove_without_local_copy_keeps_file(manager, tmp_path: Path):
    record = _downloaded(manager, tmp_path)

    manager.remove("alice", record, delete_local_copy=False)

    assert manager.exists("alice", "/a.txt") is False
    assert Path(record.local_path).read_text(encoding="utf-8") == "payload"


def test_remove_tolerates_missing_local_content(manager, tmp_path: Path):
    record = _downloaded(manager, tmp_path)
    Path(record.local_path).unlink()

    manager.remove("alice", record, delete_local_copy=True)

    assert manager.exists("alice", record.id) is False


def test_remove_is_scoped_by_account(manager, tmp_path: Path):
    record = _downloaded(manager, tmp_path)

    manager.remove("bob", record, delete_local_copy=False)

    assert manager.exists("alice", "/a.txt") is True


def test_remove_directory_does_not_cascade(manager):
    docs = FileRecord.directory("/docs/")
    manager.upsert_one("alice", docs)
    manager.upsert_one("alice", FileRecord("/docs/a.txt", parent_id=docs.id))

    manager.remove("alice", docs, delete_local_copy=True)

    assert manager.exists("alice", "/docs/") is False
    assert manager.exists("alice", "/docs/a.txt") is True


def test_remove_surfaces_store_failure(tmp_path: Path):
    class _DownStore(MemoryStore):
        def delete(self, record_id, account):
            raise StoreUnavailable("store_down")

    content = tmp_path / "a.txt"
    content.write_text("payload", encoding="utf-8")
    manager = FileStorageManager(_DownStore(), str(tmp_path / "downloads"))

    with pytest.raises(StoreUnavailable):
        manager.remove("alice", FileRecord("/a.txt", id=1, local_path=str(content)), delete_local_copy=True)

    assert content.exists()
