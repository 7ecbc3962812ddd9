import logging
from pathlib import Path

from filecache.core.logging_setup import setup_logging


def test_setup_logging_writes_to_file_without_console(tmp_path: Path):
    logfile = tmp_path / "runtime" / "filecache.log"

    root = setup_logging("debug", str(logfile), console=False)
    try:
        logging.getLogger("filecache.storage.lookup").warning("lookup_failed {}")
        for handler in root.handlers:
            handler.flush()

        assert root.level == logging.DEBUG
        assert [type(h) for h in root.handlers] == [logging.FileHandler]
        assert "[WARNING] [filecache.storage.lookup] lookup_failed" in logfile.read_text(encoding="utf-8")
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.WARNING)


def test_unknown_level_falls_back_to_info(tmp_path: Path):
    root = setup_logging("chatty", str(tmp_path / "x.log"))
    try:
        assert root.level == logging.INFO
        assert len(root.handlers) == 2
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.WARNING)
