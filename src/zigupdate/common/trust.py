from __future__ import annotations

from typing import Iterable
from urllib.parse import urlparse

from zigupdate.common.errors import UntrustedSourceError


def _normalize_host(host: str) -> str:
    return str(host or "").strip().lower().rstrip(".")


def _is_allowed_host(host: str, allowed_hosts: Iterable[str]) -> bool:
    normalized = _normalize_host(host)
    if not normalized:
        return False
    allowed = {_normalize_host(v) for v in allowed_hosts}
    if normalized in allowed:
        return True
    return any(normalized.endswith("." + entry) for entry in allowed)


def validate_trusted_url(url: str, allowed_hosts: Iterable[str], allow_http: bool = False) -> None:
    parsed = urlparse(str(url))
    scheme = (parsed.scheme or "").lower()
    if scheme != "https" and not (allow_http and scheme == "http"):
        raise UntrustedSourceError(f"Untrusted URL scheme for download: {url}")
    host = parsed.hostname or ""
    if not _is_allowed_host(host, allowed_hosts):
        raise UntrustedSourceError(f"Untrusted download host: {host or '<none>'}")
