from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from zigupdate import __version__ as ZIGUPDATE_VERSION
from zigupdate.common.config import RuntimeConfig


def build_session(runtime: RuntimeConfig) -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = f"zig-update/{ZIGUPDATE_VERSION}"
    retry = Retry(
        total=runtime.max_retries,
        connect=runtime.max_retries,
        read=runtime.max_retries,
        status=runtime.max_retries,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session
