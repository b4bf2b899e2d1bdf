from zigupdate.common.config import InstallPaths, RuntimeConfig
from zigupdate.common.types import Archive, Platform, Release, ReleaseMeta, Releases

__all__ = [
    "Archive",
    "InstallPaths",
    "Platform",
    "Release",
    "ReleaseMeta",
    "Releases",
    "RuntimeConfig",
]
