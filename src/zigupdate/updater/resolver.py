from __future__ import annotations

from zigupdate.common.errors import ResolutionError
from zigupdate.common.types import MASTER_VERSION, Archive, Platform, Release, Releases

LATEST = "latest"


def resolve_release(releases: Releases, selector: str) -> Release:
    """Pick a release by exact version, or ``latest`` for the first non-master entry."""

    if selector == LATEST:
        for release in releases.values():
            if release.meta.version != MASTER_VERSION:
                return release
        raise ResolutionError("No tagged release found in the index")
    release = releases.get(selector)
    if release is None:
        raise ResolutionError(f"Unknown version: {selector}")
    return release


def resolve_archive(releases: Releases, selector: str, platform: Platform) -> Archive:
    release = resolve_release(releases, selector)
    archive = release.platforms.get(platform.key)
    if archive is None:
        available = ", ".join(sorted(release.platforms)) or "none"
        raise ResolutionError(
            f"Version {release.meta.version} has no archive for {platform.key} (available: {available})"
        )
    return archive
