from __future__ import annotations

import json
import logging
from pathlib import Path
from urllib.parse import quote

from .errors import LocalContentMissing
from .models import PATH_SEPARATOR, FileRecord

logger = logging.getLogger(__name__)


class LocalContentBinder:
    """Links cached records to content already downloaded for an account.

    Downloads live under `<download_root>/<account>/<remote path>`, so a
    record that lost its `local_path` can be rebound by probing that location.
    """

    def __init__(self, download_root: str):
        self.download_root = Path(download_root).expanduser()

    def save_path(self, account: str) -> Path:
        return self.download_root / quote(account, safe="@._-")

    def candidate_path(self, account: str, remote_path: str) -> Path:
        rel = remote_path.lstrip(PATH_SEPARATOR)
        return self.save_path(account) / rel

    def contains(self, account: str, path: Path) -> bool:
        """True when `path` resolves strictly inside the account's download directory."""
        base = self.download_root.resolve()
        root = self.save_path(account).resolve()
        if root == base or not root.is_relative_to(base):
            return False
        resolved = path.resolve()
        return resolved != root and resolved.is_relative_to(root)

    def verify(self, record: FileRecord):
        if record.local_path and not Path(record.local_path).exists():
            raise LocalContentMissing(record.remote_path, record.local_path)

    def bind(self, account: str, record: FileRecord) -> FileRecord:
        if record.is_directory:
            record.local_path = None
            return record

        if record.local_path:
            try:
                self.verify(record)
                return record
            except LocalContentMissing as e:
                logger.info(
                    "local_content_missing %s",
                    json.dumps({"account": account, "remote_path": e.remote_path, "local_path": e.local_path}, ensure_ascii=False),
                )

        candidate = self.candidate_path(account, record.remote_path)
        if not self.contains(account, candidate):
            logger.warning(
                "candidate_outside_download_root %s",
                json.dumps({"account": account, "remote_path": record.remote_path}, ensure_ascii=False),
            )
            return record
        if candidate.is_file():
            if record.local_path != str(candidate.absolute()):
                logger.debug("local_content_bound %s -> %s", record.remote_path, candidate)
            record.local_path = str(candidate.absolute())
        return record
