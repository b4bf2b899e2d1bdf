from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from zigupdate.common.errors import ConfigError, FilesystemError
from zigupdate.common.types import Archive

DEFAULT_INDEX_URL = "https://ziglang.org/download/index.json"
DEFAULT_TRUSTED_HOSTS: tuple[str, ...] = ("ziglang.org",)
CURRENT_LINK_NAME = "current"


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class InstallPaths:
    root: Path

    @classmethod
    def default(cls) -> "InstallPaths":
        override_root = os.environ.get("ZIGUP_DIR", "").strip()
        if override_root:
            return cls(root=Path(override_root).expanduser())
        return cls(root=Path.home() / ".zig")

    @property
    def current_link(self) -> Path:
        return self.root / CURRENT_LINK_NAME

    def archive_file(self, archive: Archive) -> Path:
        return self.root / archive.file_name

    def archive_dir(self, archive: Archive) -> Path:
        return self.root / archive.dir_name

    def ensure_layout(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Could not create install directory {self.root}: {exc}") from exc


@dataclass(frozen=True)
class RuntimeConfig:
    index_url: str = DEFAULT_INDEX_URL
    zig_executable: str = "zig"
    connect_timeout_seconds: float | None = None
    read_timeout_seconds: float | None = None
    max_retries: int = 0
    download_chunk_size: int = 1024 * 1024
    trusted_hosts: tuple[str, ...] = DEFAULT_TRUSTED_HOSTS
    allow_insecure_http: bool = False

    @property
    def timeout(self) -> tuple[float | None, float | None] | None:
        if self.connect_timeout_seconds is None and self.read_timeout_seconds is None:
            return None
        return (self.connect_timeout_seconds, self.read_timeout_seconds)

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        hosts_raw = os.environ.get("ZIGUP_TRUSTED_HOSTS", "")
        hosts = tuple(h.strip() for h in hosts_raw.split(",") if h.strip())
        return cls(
            index_url=os.environ.get("ZIGUP_INDEX_URL", DEFAULT_INDEX_URL),
            zig_executable=os.environ.get("ZIGUP_ZIG", "zig"),
            connect_timeout_seconds=_env_float("ZIGUP_CONNECT_TIMEOUT"),
            read_timeout_seconds=_env_float("ZIGUP_READ_TIMEOUT"),
            max_retries=_env_int("ZIGUP_MAX_RETRIES", 0),
            download_chunk_size=_env_int("ZIGUP_DOWNLOAD_CHUNK", 1024 * 1024),
            trusted_hosts=hosts or DEFAULT_TRUSTED_HOSTS,
            allow_insecure_http=_env_flag("ZIGUP_ALLOW_HTTP"),
        )
