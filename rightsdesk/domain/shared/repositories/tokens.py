from __future__ import annotations

from typing import Protocol


class TokenGenerator(Protocol):
    def token(self, nbytes: int = 32) -> str: ...

    def hex(self, nbytes: int = 4) -> str: ...
