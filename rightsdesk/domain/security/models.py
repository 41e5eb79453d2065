from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class RateLimitEntry:
    identifier: str
    action_type: str
    attempt_count: int
    first_attempt: datetime
    last_attempt: datetime
    blocked_until: datetime | None = None

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and self.blocked_until > now


@dataclass(frozen=True)
class SecurityEvent:
    id: int
    event_type: str
    severity: Severity
    created_at: datetime
    user_id: int | None = None
    event_data: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
