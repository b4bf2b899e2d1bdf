from __future__ import annotations

import hashlib


def sha256_bytes(data: bytes, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha256()
    view = memoryview(data)
    for start in range(0, len(view), chunk_size):
        h.update(view[start : start + chunk_size])
    return h.hexdigest()
