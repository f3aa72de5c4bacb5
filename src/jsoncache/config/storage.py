"""Where the cache keeps its SQLite database by default."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "jsoncache"
DEFAULT_DB_FILENAME: Final[str] = "jsoncache.db"
IN_MEMORY_URI: Final[str] = "sqlite+pysqlite:///:memory:"


def sqlite_uri(path: Path) -> str:
    return f"sqlite+pysqlite:///{path}"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self, *, ensure: bool = True) -> Path:
        """Absolute database path; creates the data directory unless ``ensure`` is off."""

        data_dir = self.data_dir.expanduser().resolve()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename

    def database_uri(self) -> str:
        return sqlite_uri(self.database_path())


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str

    @property
    def is_in_memory(self) -> bool:
        return self.uri.startswith("sqlite") and ":memory:" in self.uri


def _platform_data_home() -> Path:
    if os.name == "nt":
        local_app_data = os.getenv("LOCALAPPDATA")
        return Path(local_app_data) if local_app_data else Path.home() / "AppData" / "Local"
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    return Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("JSONCACHE_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def get_database_config(
    *, storage: StorageConfig | None = None, in_memory: bool = False
) -> DatabaseConfig:
    """Resolve the database: in-memory if asked, else ``DATABASE_URI``, else the data dir."""

    if in_memory:
        return DatabaseConfig(uri=IN_MEMORY_URI)
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    return DatabaseConfig(uri=(storage or get_storage_config()).database_uri())
