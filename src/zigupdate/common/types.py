from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

MASTER_VERSION = "master"


@dataclass(frozen=True)
class ReleaseMeta:
    version: str
    date: date
    docs: str
    std_docs: str | None = None
    notes: str | None = None
    build_version: str | None = None


@dataclass(frozen=True)
class Archive:
    version: str
    platform: str
    size: int
    shasum: str
    url: str
    file_name: str
    dir_name: str
    unpack_command: tuple[str, ...]


@dataclass(frozen=True)
class Release:
    meta: ReleaseMeta
    platforms: dict[str, Archive] = field(default_factory=dict)


Releases = dict[str, Release]


@dataclass(frozen=True)
class Platform:
    arch: str
    os: str

    @property
    def key(self) -> str:
        return f"{self.arch}-{self.os}"


@dataclass(frozen=True)
class ZigEnv:
    zig_exe: str
    lib_dir: str
    std_dir: str
    global_cache_dir: str
    version: str
