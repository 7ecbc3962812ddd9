from pathlib import Path

import pytest

from filecache.storage import FileStorageManager, MemoryStore, SqliteStore
from filecache.storage.db import init_db


def build_store(kind: str, tmp_path: Path):
    if kind == "sqlite":
        db_path = str(tmp_path / "runtime" / "cache.db")
        init_db(db_path)
        return SqliteStore(db_path)
    return MemoryStore()


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path: Path):
    return build_store(request.param, tmp_path)


@pytest.fixture
def downloads(tmp_path: Path) -> Path:
    return tmp_path / "downloads"


@pytest.fixture
def manager(store, downloads: Path) -> FileStorageManager:
    return FileStorageManager(store, str(downloads))
