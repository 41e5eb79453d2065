from .jsonl import MetricsClient, metrics, security_log

__all__ = ["MetricsClient", "metrics", "security_log"]
