from __future__ import annotations

import logging
from urllib.parse import urlparse

import aiohttp

from ...domain.shared.repositories import RemoteFetcher
from ..metrics import metrics

logger = logging.getLogger(__name__)


class AssetDownloader(RemoteFetcher):
    def __init__(
        self,
        *,
        allowed_hosts: set[str] | None = None,
        max_download_bytes: int = 2_000_000,
        session_timeout: int = 15,
    ):
        self.allowed_hosts = {host.lower() for host in allowed_hosts} if allowed_hosts else None
        self.max_download_bytes = max_download_bytes
        self._session_timeout = session_timeout
        self._session: aiohttp.ClientSession | None = None

    async def fetch(self, url: str) -> bytes | None:
        if not self.is_allowed_url(url):
            logger.info("Refusing to download %s", url)
            return None
        session = self._get_session()
        async with metrics.span_async("http:asset_fetch", source="http", extra={"host": urlparse(url).hostname}):
            try:
                async with session.get(url) as resp:
                    if resp.status != 200:
                        logger.info("Asset %s answered %s", url, resp.status)
                        return None
                    buffer = bytearray()
                    async for chunk in resp.content.iter_chunked(64 * 1024):
                        buffer.extend(chunk)
                        if len(buffer) > self.max_download_bytes:
                            logger.info("Asset %s exceeds %s bytes", url, self.max_download_bytes)
                            return None
            except (aiohttp.ClientError, TimeoutError) as exc:
                logger.warning("Asset download failed for %s: %s", url, exc)
                return None
        return bytes(buffer)

    def is_allowed_url(self, url: str) -> bool:
        if not url:
            return False
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"}:
            return False
        host = (parsed.hostname or "").lower()
        if not host:
            return False
        if self.allowed_hosts and host not in self.allowed_hosts:
            return False
        return True

    def _get_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._session_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
