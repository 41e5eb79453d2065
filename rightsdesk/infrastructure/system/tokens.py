from __future__ import annotations

import secrets

from ...domain.shared.repositories import TokenGenerator


class SystemTokenGenerator(TokenGenerator):
    def token(self, nbytes: int = 32) -> str:
        return secrets.token_urlsafe(nbytes)

    def hex(self, nbytes: int = 4) -> str:
        return secrets.token_hex(nbytes)
