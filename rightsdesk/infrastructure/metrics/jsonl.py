from __future__ import annotations

import functools
import json
import logging
import time
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar

from ...domain.security.sanitize import sanitize_log_data

T = TypeVar("T")


class MetricsClient:
    def __init__(self, logger_name: str = "metrics.actions"):
        self._logger = logging.getLogger(logger_name)

    def configure(self, logger: logging.Logger | None = None) -> None:
        if logger:
            self._logger = logger

    def _write(self, payload: dict[str, Any]) -> None:
        self._logger.info(json.dumps(payload, ensure_ascii=False, default=str))

    def _emit(self, action: str, duration_ms: float, success: bool, *, source: str | None, extra: dict | None) -> None:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "duration_ms": round(duration_ms, 3),
            "success": success,
        }
        if source:
            payload["source"] = source
        if extra:
            payload.update(sanitize_log_data(extra))
        self._write(payload)

    def event(self, name: str, *, source: str | None = None, data: dict | None = None) -> None:
        """Single record without timing, used for audit-style entries."""
        payload: dict[str, Any] = {"ts": datetime.now(timezone.utc).isoformat(), "event": name}
        if source:
            payload["source"] = source
        if data:
            payload.update(sanitize_log_data(data))
        self._write(payload)

    @contextmanager
    def span(self, action: str, *, source: str | None = None, extra: dict | None = None):
        start = time.perf_counter()
        success = True
        try:
            yield
        except Exception:
            success = False
            raise
        finally:
            duration = (time.perf_counter() - start) * 1000
            self._emit(action, duration, success, source=source, extra=extra)

    @asynccontextmanager
    async def span_async(self, action: str, *, source: str | None = None, extra: dict | None = None):
        start = time.perf_counter()
        success = True
        try:
            yield
        except Exception:
            success = False
            raise
        finally:
            duration = (time.perf_counter() - start) * 1000
            self._emit(action, duration, success, source=source, extra=extra)

    def wrap_async(
        self,
        action: str,
        *,
        source: str | None = None,
        extra_fn: Callable[..., dict | None] | None = None,
    ):
        def decorator(func: Callable[..., Awaitable[T]]):
            @functools.wraps(func)
            async def wrapper(*args, **kwargs):
                extra = extra_fn(*args, **kwargs) if extra_fn else None
                async with self.span_async(action, source=source, extra=extra):
                    return await func(*args, **kwargs)

            return wrapper

        return decorator


metrics = MetricsClient()
security_log = MetricsClient("security.events")
