from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StoredBlob:
    bucket: str
    path: str
    public_url: str
    size: int
    content_type: str
