from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path


class ReopeningTimedRotatingFileHandler(TimedRotatingFileHandler):
    """
    Daily-rotating handler that reopens its file when the target disappears,
    e.g. after a host-side cleanup of a bind-mounted log directory.
    """

    def emit(self, record):
        if self.stream and not Path(self.baseFilename).exists():
            try:
                self.stream.close()
            except OSError:
                pass
            self.stream = self._open()
        super().emit(record)


def configure_jsonl_logger(
    path: str,
    *,
    logger_name: str,
    when: str = "midnight",
    backups: int = 30,
) -> logging.Logger:
    """
    Point ``logger_name`` at a JSON-lines file. Records are written verbatim,
    so callers are expected to pass already serialised JSON.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    existing = [h for h in logger.handlers if getattr(h, "baseFilename", None) == str(target.resolve())]
    if existing and len(existing) == len(logger.handlers):
        return logger
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    handler = ReopeningTimedRotatingFileHandler(
        filename=target,
        when=when,
        backupCount=backups,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def configure_metrics_logger(path: str, **kwargs) -> logging.Logger:
    return configure_jsonl_logger(path, logger_name="metrics.actions", **kwargs)


def configure_security_logger(path: str, **kwargs) -> logging.Logger:
    return configure_jsonl_logger(path, logger_name="security.events", **kwargs)
