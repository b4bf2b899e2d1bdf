"""Fetch the Zig download index and parse it into release records."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import date
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import unquote, urlparse

import requests

from zigupdate.common.config import RuntimeConfig
from zigupdate.common.errors import ParseError
from zigupdate.common.http_session import build_session
from zigupdate.common.trust import validate_trusted_url
from zigupdate.common.types import Archive, Release, ReleaseMeta, Releases


log = logging.getLogger(__name__)

# Keys of a release entry that describe the release itself; every other key
# names a platform.
METADATA_KEYS = frozenset({"date", "docs", "stdDocs", "notes", "version"})
ARCHIVE_KEYS = ("tarball", "shasum", "size")


def _parse_url(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ParseError(f"{what} must be a string, got {type(value).__name__}")
    parsed = urlparse(value.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ParseError(f"{what} is not an absolute http(s) URL: {value!r}")
    return value.strip()


def _parse_optional_url(value: Any, what: str) -> str | None:
    if value is None or value == "":
        return None
    return _parse_url(value, what)


def _parse_date(value: Any, what: str) -> date:
    if not isinstance(value, str):
        raise ParseError(f"{what} must be a string, got {type(value).__name__}")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ParseError(f"{what} is not an ISO date: {value!r}") from exc


def _parse_size(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise ParseError(f"{what} is not a byte count: {value!r}")
    try:
        size = int(str(value).strip())
    except ValueError as exc:
        raise ParseError(f"{what} is not a byte count: {value!r}") from exc
    if size < 0:
        raise ParseError(f"{what} is negative: {size}")
    return size


def _parse_shasum(value: Any, what: str) -> str:
    text = str(value or "").strip().lower()
    if len(text) != 64 or any(ch not in "0123456789abcdef" for ch in text):
        raise ParseError(f"{what} is not a SHA-256 hex digest: {value!r}")
    return text


def archive_layout(file_name: str) -> tuple[str, tuple[str, ...]]:
    """Return the extracted directory name and unpack command for *file_name*.

    Tar archives of any compression are cut at the last ``.tar``; zip
    archives lose their ``.zip`` suffix.
    """

    i = file_name.rfind(".tar")
    if i != -1:
        dir_name, command = file_name[:i], ("tar", "xf")
    elif PurePosixPath(file_name).suffix == ".zip":
        dir_name, command = PurePosixPath(file_name).stem, ("unzip", "-q")
    else:
        raise ParseError(f"Unknown archive extension for {file_name}")
    if not dir_name:
        raise ParseError(f"Archive {file_name} has no name before its extension")
    return dir_name, command


def archive_from_raw(raw: Mapping[str, Any], version: str, platform: str) -> Archive:
    where = f"{version}/{platform}"
    missing = [k for k in ARCHIVE_KEYS if k not in raw]
    if missing:
        raise ParseError(f"Archive {where} missing fields: {missing}")

    url = _parse_url(raw["tarball"], f"{where} tarball")
    file_name = PurePosixPath(unquote(urlparse(url).path)).name
    if not file_name:
        raise ParseError(f"{where} tarball URL has no file name: {url}")
    dir_name, command = archive_layout(file_name)
    return Archive(
        version=version,
        platform=platform,
        size=_parse_size(raw["size"], f"{where} size"),
        shasum=_parse_shasum(raw["shasum"], f"{where} shasum"),
        url=url,
        file_name=file_name,
        dir_name=dir_name,
        unpack_command=command,
    )


def release_from_raw(version: str, raw: Mapping[str, Any]) -> Release:
    if not isinstance(raw, Mapping):
        raise ParseError(f"Release {version} is not an object")
    if "date" not in raw or "docs" not in raw:
        raise ParseError(f"Release {version} missing date or docs")

    build_version = raw.get("version")
    if build_version is not None and not isinstance(build_version, str):
        raise ParseError(f"Release {version} version must be a string")
    meta = ReleaseMeta(
        version=version,
        date=_parse_date(raw["date"], f"{version} date"),
        docs=_parse_url(raw["docs"], f"{version} docs"),
        std_docs=_parse_optional_url(raw.get("stdDocs"), f"{version} stdDocs"),
        notes=_parse_optional_url(raw.get("notes"), f"{version} notes"),
        build_version=build_version,
    )

    platforms: dict[str, Archive] = {}
    for platform, raw_archive in raw.items():
        if platform in METADATA_KEYS:
            continue
        if not isinstance(raw_archive, Mapping):
            raise ParseError(f"Platform entry {version}/{platform} is not an object")
        platforms[platform] = archive_from_raw(raw_archive, version, platform)
    return Release(meta=meta, platforms=platforms)


def parse_manifest(raw: str | bytes | Mapping[str, Any]) -> Releases:
    """Parse the download index into releases keyed by version.

    Manifest order is preserved, which is what ``latest`` resolution
    relies on.
    """

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ParseError(f"Manifest is not valid JSON: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ParseError("Manifest top level must be an object")
    return {version: release_from_raw(version, entry) for version, entry in raw.items()}


class ManifestService:
    def __init__(self, runtime: RuntimeConfig, session: requests.Session | None = None):
        self.runtime = runtime
        self.session = session if session is not None else build_session(runtime)

    def fetch_manifest(self) -> Releases:
        log.info("Fetching release index from %s", self.runtime.index_url)
        validate_trusted_url(
            self.runtime.index_url,
            self.runtime.trusted_hosts,
            allow_http=self.runtime.allow_insecure_http,
        )
        resp = self.session.get(self.runtime.index_url, timeout=self.runtime.timeout)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as exc:
            raise ParseError(f"Release index is not valid JSON: {exc}") from exc
        releases = parse_manifest(data)
        log.debug("Parsed %d releases", len(releases))
        return releases
