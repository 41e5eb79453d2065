from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping

from ..mappers import dump_json, to_iso


def encode_value(value: Any) -> Any:
    """Converts a domain value into something SQLite can bind."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return to_iso(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (list, tuple)):
        return dump_json([item.to_dict() if hasattr(item, "to_dict") else item for item in value])
    if isinstance(value, dict):
        return dump_json(value)
    if hasattr(value, "to_dict"):
        return dump_json(value.to_dict())
    return value


def pick_columns(fields: Mapping[str, Any], allowed: Iterable[str]) -> dict[str, Any]:
    allowed = set(allowed)
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown columns: {', '.join(sorted(unknown))}")
    return {key: encode_value(value) for key, value in fields.items()}


def insert_sql(table: str, values: Mapping[str, Any]) -> tuple[str, tuple]:
    columns = list(values)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})", tuple(values.values())


def update_sql(table: str, values: Mapping[str, Any], key: str, key_value: Any) -> tuple[str, tuple]:
    assignments = ", ".join(f"{column}=?" for column in values)
    return f"UPDATE {table} SET {assignments} WHERE {key}=?", (*values.values(), key_value)


def in_clause(column: str, ids: Iterable[int]) -> tuple[str, tuple]:
    ids = tuple(ids)
    if not ids:
        return "0", ()
    return f"{column} IN ({', '.join('?' for _ in ids)})", ids


def utc_now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))
