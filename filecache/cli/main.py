from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from filecache.core.config import DEFAULT_CONFIG_PATH, load_config
from filecache.core.logging_setup import setup_logging
from filecache.storage import FileCacheError, FileRecord, FileStorageManager, StoreError
from filecache.storage.db import init_db
from filecache.storage.models import ROOT_PARENT_ID

app = typer.Typer(add_completion=False)
console = Console()


def _build_manager(config_path: Path = DEFAULT_CONFIG_PATH) -> FileStorageManager:
    cfg = load_config(config_path)
    setup_logging(cfg.logging.level, cfg.logging.file, console=False)
    return FileStorageManager.from_config(cfg)


def _fmt_ts(value: int) -> str:
    if not value:
        return "-"
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _record_from_item(item: dict[str, Any]) -> FileRecord:
    remote_path = str(item["remote_path"])
    kwargs = {
        "mime_type": item.get("mime_type") or "",
        "length": int(item.get("length") or 0),
        "created_at": int(item.get("created_at") or 0),
        "modified_at": int(item.get("modified_at") or 0),
        "last_synced_at": int(item.get("last_synced_at") or 0),
        "keep_in_sync": bool(item.get("keep_in_sync", False)),
        "needs_updating": bool(item.get("needs_updating", False)),
    }
    if item.get("is_directory"):
        if not remote_path.endswith("/"):
            remote_path += "/"
        return FileRecord.directory(remote_path, **kwargs)
    return FileRecord(remote_path=remote_path, **kwargs)


def _depth(record: FileRecord) -> int:
    return len([p for p in record.remote_path.split("/") if p])


def _resolve_parent(manager: FileStorageManager, account: str, record: FileRecord, saved: dict[str, FileRecord]):
    parent = record.parent_path
    if parent is None:
        record.parent_id = ROOT_PARENT_ID
        return
    known = saved.get(parent) or manager.find_by_path(account, parent)
    if known is None:
        raise FileCacheError(f"parent_not_cached:{parent}")
    record.parent_id = known.id


def _require(manager: FileStorageManager, account: str, path: str) -> FileRecord:
    record = manager.find_by_path(account, path)
    if record is None:
        console.print(f"[red]not cached:[/red] {path}")
        raise typer.Exit(2)
    return record


@app.command("config-show")
def config_show(config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config")):
    """Show current config.yaml."""
    cfg = load_config(config)
    print(json.dumps(cfg.model_dump(), ensure_ascii=False, indent=2))


@app.command("init-db")
def init_database(config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config")):
    """Create the cache database if missing."""
    cfg = load_config(config)
    init_db(cfg.database.path)
    print(f"OK: database={cfg.database.path}")


@app.command("import-listing")
def import_listing(
    account: str,
    listing: Path,
    one_by_one: bool = typer.Option(False, "--one-by-one", help="Save records individually instead of batching"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config"),
):
    """Reconcile a JSON remote listing into the cache.

    The listing is a list of objects with at least `remote_path`. Records are
    saved parents first, one batch per directory depth.
    """
    items = json.loads(listing.read_text(encoding="utf-8"))
    records = sorted((_record_from_item(item) for item in items), key=lambda r: (_depth(r), r.remote_path))
    manager = _build_manager(config)

    saved: dict[str, FileRecord] = {}
    summary = {"account": account, "total": len(records), "inserted": 0, "overridden": 0}
    try:
        levels: dict[int, list[FileRecord]] = {}
        for record in records:
            levels.setdefault(_depth(record), []).append(record)
        for depth in sorted(levels):
            level = levels[depth]
            for record in level:
                _resolve_parent(manager, account, record, saved)
            if one_by_one:
                for record in level:
                    overridden = manager.upsert_one(account, record)
                    summary["overridden" if overridden else "inserted"] += 1
            else:
                known = sum(1 for record in level if manager.exists(account, record.remote_path))
                manager.upsert_many(account, level)
                summary["overridden"] += known
                summary["inserted"] += len(level) - known
            for record in level:
                saved[record.remote_path] = record
    except (FileCacheError, StoreError) as e:
        summary["error"] = str(e)
        print(json.dumps(summary, ensure_ascii=False, indent=2))
        raise typer.Exit(2)

    print(json.dumps(summary, ensure_ascii=False, indent=2))


@app.command("ls")
def list_directory(account: str, path: str = "/", config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config")):
    """List the cached children of a directory."""
    manager = _build_manager(config)
    directory = _require(manager, account, path)
    if not directory.is_directory:
        console.print(f"[red]not a directory:[/red] {path}")
        raise typer.Exit(2)

    table = Table(title=f"{account}:{directory.remote_path}")
    table.add_column("Id", justify="right")
    table.add_column("Name")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Local")
    for child in manager.list_children(account, directory):
        table.add_row(
            str(child.id),
            child.file_name + ("/" if child.is_directory and not child.file_name.endswith("/") else ""),
            "-" if child.is_directory else str(child.length),
            _fmt_ts(child.modified_at),
            "yes" if child.is_down else "no",
        )
    console.print(table)


@app.command("stat")
def stat(account: str, path: str, config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config")):
    """Show the cached metadata of one record."""
    manager = _build_manager(config)
    record = _require(manager, account, path)

    table = Table(title=f"{account}:{record.remote_path}")
    table.add_column("Key")
    table.add_column("Value")
    table.add_row("id", str(record.id))
    table.add_row("parent_id", str(record.parent_id))
    table.add_row("type", "directory" if record.is_directory else (record.mime_type or "file"))
    table.add_row("length", str(record.length))
    table.add_row("created", _fmt_ts(record.created_at))
    table.add_row("modified", _fmt_ts(record.modified_at))
    table.add_row("last_synced", _fmt_ts(record.last_synced_at))
    table.add_row("keep_in_sync", "yes" if record.keep_in_sync else "no")
    table.add_row("local_path", record.local_path or "(unbound)")
    table.add_row("downloaded", "yes" if record.is_down else "no")
    console.print(table)


@app.command("rm")
def remove(
    account: str,
    path: str,
    delete_local: bool = typer.Option(False, "--delete-local", help="Also delete the downloaded copy"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config"),
):
    """Remove one record from the cache."""
    manager = _build_manager(config)
    record = _require(manager, account, path)
    try:
        manager.remove(account, record, delete_local_copy=delete_local)
    except StoreError as e:
        console.print(f"[red]remove failed:[/red] {e}")
        raise typer.Exit(2)
    print(f"OK: removed {record.remote_path}")


def main():
    app()


if __name__ == "__main__":
    main()
