from __future__ import annotations

import logging

from zigupdate.common.hashing import sha256_bytes
from zigupdate.common.types import Archive


log = logging.getLogger(__name__)


def _check(verbose: bool, what: str, expected: object, actual: object) -> bool:
    if expected == actual:
        return True
    if verbose:
        log.warning("%s does not match: expecting %s, got %s", what, expected, actual)
    return False


def verify_archive(archive: Archive, data: bytes, *, verbose: bool = False) -> bool:
    """Check *data* against the size and SHA-256 the index declares for *archive*."""

    if not _check(verbose, f"{archive.file_name} size", archive.size, len(data)):
        return False
    return _check(verbose, f"{archive.file_name} shasum", archive.shasum.lower(), sha256_bytes(data).lower())
