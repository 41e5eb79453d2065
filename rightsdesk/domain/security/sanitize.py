from __future__ import annotations

import re
import secrets
from typing import Any, Iterable, Mapping

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DANGEROUS_EXTENSIONS = (".exe", ".bat", ".cmd", ".scr", ".vbs", ".js", ".jar")
SENSITIVE_FIELDS = (
    "password",
    "token",
    "key",
    "secret",
    "email",
    "phone",
    "ssn",
    "credit_card",
    "auth",
    "jwt",
    "session",
    "api_key",
    "private",
    "access_token",
    "refresh_token",
    "bearer",
    "authorization",
)

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
_WEAK_PATTERNS = (
    re.compile(r"(.)\1{2,}"),
    re.compile(r"123456"),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"qwerty", re.IGNORECASE),
    re.compile(r"admin", re.IGNORECASE),
)
_SQL_PATTERNS = (
    re.compile(r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|UNION)\b", re.IGNORECASE),
    re.compile(r"(-{2}|/\*|\*/)"),
    re.compile(r"\b(OR|AND)\b.*?[=<>]", re.IGNORECASE),
    re.compile(r"[;|&]"),
)


def sanitize_input(value: str | None, max_length: int = 200) -> str:
    if not value or not isinstance(value, str):
        return ""
    cleaned = _SCRIPT_RE.sub("", value)
    cleaned = _JS_PROTOCOL_RE.sub("", cleaned)
    cleaned = _HANDLER_RE.sub("", cleaned)
    cleaned = cleaned.replace("<", "").replace(">", "").strip()
    return cleaned[:max_length]


def validate_email(email: str | None) -> bool:
    if not email:
        return False
    return bool(_EMAIL_RE.match(email.strip()))


def validate_password(password: str | None) -> list[str]:
    password = password or ""
    errors: list[str] = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if len(password) > 128:
        errors.append("Password must be less than 128 characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not _SPECIAL_RE.search(password):
        errors.append("Password must contain at least one special character")
    if any(pattern.search(password) for pattern in _WEAK_PATTERNS):
        errors.append("Password contains weak patterns")
    return errors


def mask_sensitive_data(value: Any, visible: int = 4) -> str:
    text = "" if value is None else str(value)
    if len(text) <= visible:
        return "***"
    return text[:visible] + "*" * (len(text) - visible)


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(field in lowered for field in SENSITIVE_FIELDS)


def sanitize_log_data(data: Any) -> Any:
    if isinstance(data, Mapping):
        result: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, (Mapping, list, tuple)):
                result[key] = sanitize_log_data(value)
            elif _is_sensitive(str(key)):
                result[key] = mask_sensitive_data(value)
            else:
                result[key] = value
        return result
    if isinstance(data, (list, tuple)):
        return [sanitize_log_data(item) for item in data]
    return data


def is_safe_sql_input(value: str) -> bool:
    return not any(pattern.search(value or "") for pattern in _SQL_PATTERNS)


def validate_file_upload(
    filename: str,
    size: int,
    content_type: str,
    *,
    allowed_types: Iterable[str] = (),
    max_size: int = MAX_UPLOAD_BYTES,
) -> list[str]:
    errors: list[str] = []
    allowed = tuple(allowed_types)
    if allowed and content_type not in allowed:
        errors.append(f"File type {content_type} is not allowed")
    if size > max_size:
        errors.append(f"File size {size} exceeds maximum allowed size of {max_size} bytes")
    if (filename or "").lower().endswith(DANGEROUS_EXTENSIONS):
        errors.append("File type is not allowed for security reasons")
    return errors


def generate_csrf_token() -> str:
    return secrets.token_hex(32)
