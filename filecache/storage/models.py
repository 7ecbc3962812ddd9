from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import InvariantViolation

UNSET_ID = -1
ROOT_PARENT_ID = 0
ROOT_PATH = "/"
PATH_SEPARATOR = "/"
DIRECTORY_MIME_TYPE = "DIR"


@dataclass
class FileRecord:
    """Metadata of one remote file or directory and its local binding.

    `needs_updating` is transient: it asks the engine to refresh the children
    of a directory after saving it and is never persisted.
    """

    remote_path: str
    id: int = UNSET_ID
    parent_id: int = ROOT_PARENT_ID
    mime_type: str = ""
    length: int = 0
    created_at: int = 0
    modified_at: int = 0
    last_synced_at: int = 0
    keep_in_sync: bool = False
    local_path: Optional[str] = None
    needs_updating: bool = field(default=False, compare=False)

    @classmethod
    def directory(cls, remote_path: str, **kwargs: Any) -> "FileRecord":
        kwargs.setdefault("mime_type", DIRECTORY_MIME_TYPE)
        return cls(remote_path=remote_path, **kwargs)

    @property
    def is_directory(self) -> bool:
        return self.remote_path.endswith(PATH_SEPARATOR) or self.mime_type == DIRECTORY_MIME_TYPE

    @property
    def is_persisted(self) -> bool:
        return self.id != UNSET_ID

    @property
    def is_root(self) -> bool:
        return self.remote_path == ROOT_PATH

    @property
    def file_name(self) -> str:
        if self.is_root:
            return ROOT_PATH
        return self.remote_path.rstrip(PATH_SEPARATOR).rsplit(PATH_SEPARATOR, 1)[-1]

    @property
    def parent_path(self) -> Optional[str]:
        """Remote path of the containing directory, None for the root."""
        return parent_path(self.remote_path)

    @property
    def is_down(self) -> bool:
        """True when the bound local content exists on disk right now."""
        if self.is_directory or not self.local_path:
            return False
        return Path(self.local_path).is_file()

    def check_invariants(self):
        if self.is_persisted and self.parent_id == self.id:
            raise InvariantViolation(f"record_is_own_parent:{self.remote_path}:{self.id}")

    def to_attributes(self, account: str) -> Dict[str, Any]:
        attrs: Dict[str, Any] = {
            "remote_path": self.remote_path,
            "file_name": self.file_name,
            "parent_id": self.parent_id if self.parent_id != ROOT_PARENT_ID else None,
            "mime_type": self.mime_type,
            "length": self.length,
            "created_at": self.created_at,
            "modified_at": self.modified_at,
            "last_synced_at": self.last_synced_at,
            "keep_in_sync": 1 if self.keep_in_sync else 0,
            "account": account,
        }
        if not self.is_directory:
            attrs["local_path"] = self.local_path
        return attrs

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "FileRecord":
        record = cls(
            remote_path=row["remote_path"],
            id=int(row["id"]),
            parent_id=int(row["parent_id"]) if row["parent_id"] is not None else ROOT_PARENT_ID,
            mime_type=row["mime_type"] or "",
            length=int(row["length"] or 0),
            created_at=int(row["created_at"] or 0),
            modified_at=int(row["modified_at"] or 0),
            last_synced_at=int(row["last_synced_at"] or 0),
            keep_in_sync=bool(row["keep_in_sync"]),
        )
        if not record.is_directory:
            record.local_path = row["local_path"]
        return record


def parent_path(remote_path: str) -> Optional[str]:
    if remote_path == ROOT_PATH:
        return None
    head = remote_path.rstrip(PATH_SEPARATOR).rsplit(PATH_SEPARATOR, 1)[0]
    return head + PATH_SEPARATOR if head else ROOT_PATH
