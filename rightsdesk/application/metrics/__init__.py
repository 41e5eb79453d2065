from .logger import configure_jsonl_logger, configure_metrics_logger, configure_security_logger

__all__ = ["configure_jsonl_logger", "configure_metrics_logger", "configure_security_logger"]
