from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

PROJECT_ROOT = Path(os.environ.get("FILECACHE_HOME") or Path.home() / ".filecache")
RUNTIME_DIR = PROJECT_ROOT / "runtime"
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config.yaml"
DEFAULT_CONFIG_TEMPLATE_PATH = PROJECT_ROOT / "config.yaml.example"


def _expand(value: str) -> str:
    return str(Path(value).expanduser()) if value else value


class CacheConfig(BaseModel):
    # Downloaded content lives under <download_root>/<account>/<remote path>.
    download_root: str = str(PROJECT_ROOT / "downloads")
    # Upper bound on nested directory refreshes during one save.
    max_cascade_depth: int = Field(default=64, ge=1, le=4096)

    @field_validator("download_root")
    @classmethod
    def expand_download_root(cls, v: str) -> str:
        return _expand(v)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: str = str(RUNTIME_DIR / "filecache.log")

    @field_validator("file")
    @classmethod
    def expand_file(cls, v: str) -> str:
        return _expand(v)


class DatabaseConfig(BaseModel):
    path: str = str(RUNTIME_DIR / "filecache.db")

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        return _expand(v)


class AppConfig(BaseModel):
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)


def ensure_runtime_dirs(cfg: AppConfig):
    """Create the log and database parents and the download root."""
    for directory in (
        Path(cfg.logging.file).parent,
        Path(cfg.database.path).parent,
        Path(cfg.cache.download_root),
    ):
        directory.mkdir(parents=True, exist_ok=True)


def _dump(cfg: AppConfig) -> str:
    import yaml

    return yaml.safe_dump(cfg.model_dump(), allow_unicode=True, sort_keys=False)


def _parse(text: str) -> AppConfig:
    import yaml

    return AppConfig.model_validate(yaml.safe_load(text) or {})


def _first_run_config(path: Path) -> AppConfig:
    # Seed config.yaml from the template when it parses, from defaults otherwise.
    import yaml

    if DEFAULT_CONFIG_TEMPLATE_PATH.exists():
        template_text = DEFAULT_CONFIG_TEMPLATE_PATH.read_text(encoding="utf-8")
        try:
            cfg = _parse(template_text)
        except (yaml.YAMLError, ValidationError):
            pass
        else:
            path.write_text(template_text, encoding="utf-8")
            return cfg
    cfg = AppConfig()
    path.write_text(_dump(cfg), encoding="utf-8")
    return cfg


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    if path.exists():
        cfg = _parse(path.read_text(encoding="utf-8"))
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        cfg = _first_run_config(path)
    ensure_runtime_dirs(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path = DEFAULT_CONFIG_PATH):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_dump(cfg), encoding="utf-8")
