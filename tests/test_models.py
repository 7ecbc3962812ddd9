from pathlib import Path

import pytest

from filecache.storage import FileRecord, InvariantViolation, ROOT_PARENT_ID, UNSET_ID
from filecache.storage.models import parent_path


def test_directory_detected_from_trailing_separator_or_flag():
    assert FileRecord("/docs/").is_directory is True
    assert FileRecord.directory("/docs").is_directory is True
    assert FileRecord("/docs/a.txt", mime_type="text/plain").is_directory is False


def test_new_record_is_unpersisted_root_child():
    record = FileRecord("/a.txt")
    assert record.id == UNSET_ID
    assert record.parent_id == ROOT_PARENT_ID
    assert record.is_persisted is False


def test_file_name_and_parent_path():
    assert FileRecord("/").file_name == "/"
    assert FileRecord("/docs/").file_name == "docs"
    assert FileRecord("/docs/a.txt").file_name == "a.txt"
    assert parent_path("/") is None
    assert parent_path("/a.txt") == "/"
    assert parent_path("/docs/") == "/"
    assert parent_path("/docs/sub/a.txt") == "/docs/sub/"


def test_attributes_omit_local_path_for_directories():
    directory = FileRecord.directory("/docs/", local_path="/tmp/should-not-persist")
    attrs = directory.to_attributes("alice")

    assert "local_path" not in attrs
    assert attrs["account"] == "alice"
    assert attrs["parent_id"] is None


def test_attributes_round_trip_through_row():
    record = FileRecord(
        "/docs/a.txt",
        id=7,
        parent_id=3,
        mime_type="text/plain",
        length=42,
        created_at=1000,
        modified_at=2000,
        last_synced_at=3000,
        keep_in_sync=True,
        local_path="/local/a.txt",
    )
    row = dict(record.to_attributes("alice"), id=7)

    assert FileRecord.from_row(row) == record


def test_needs_updating_is_not_part_of_equality():
    assert FileRecord("/d/", needs_updating=True) == FileRecord("/d/")


def test_is_down_requires_existing_file(tmp_path: Path):
    content = tmp_path / "a.txt"
    record = FileRecord("/a.txt", local_path=str(content))
    assert record.is_down is False

    content.write_text("x", encoding="utf-8")
    assert record.is_down is True


def test_record_cannot_be_its_own_parent():
    with pytest.raises(InvariantViolation):
        FileRecord("/loop/", id=4, parent_id=4).check_invariants()
