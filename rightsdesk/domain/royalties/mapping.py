"""Maps raw statement rows from collecting societies and platforms to standard fields."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

HeaderSpec = Union[str, Sequence[str]]
MappingTable = dict[str, dict[str, HeaderSpec]]

SOURCES = ("BMI", "ASCAP", "SESAC", "YouTube", "SoundExchange", "Generic PRO")
UNKNOWN_SOURCE = "Unknown"

DEFAULT_MAPPING: MappingTable = {
    "Work ID": {
        "BMI": "Work ID",
        "ASCAP": "Work Number",
        "SESAC": "Title #",
        "YouTube": "",
        "SoundExchange": "ISRC",
        "Generic PRO": ["Work ID", "Title ID", "Song ID"],
    },
    "Song Title": {
        "BMI": "Work Title",
        "ASCAP": "Title",
        "SESAC": "Title Name",
        "YouTube": "Asset Title",
        "SoundExchange": "Sound Recording Title",
        "Generic PRO": ["Work Title", "Title", "Song Title", "Title Name"],
    },
    "ISWC": {
        "BMI": "ISWC",
        "ASCAP": "ISWC",
        "SESAC": "",
        "YouTube": "",
        "SoundExchange": "",
        "Generic PRO": "ISWC",
    },
    "Client Name": {
        "BMI": "IP Name",
        "ASCAP": "Writer Name",
        "SESAC": "Participant Name",
        "YouTube": "Channel Name",
        "SoundExchange": "Featured Artist",
        "Generic PRO": ["Writer Name", "Participant Name", "IP Name", "Client Name"],
    },
    "Client Role": {
        "BMI": "IP Role",
        "ASCAP": "Role",
        "SESAC": "W OR P",
        "YouTube": "Owner",
        "SoundExchange": "Artist Type",
        "Generic PRO": ["Role", "Type", "W OR P"],
    },
    "Source": {
        "BMI": "Source",
        "ASCAP": "Source",
        "SESAC": "Perf Source",
        "YouTube": "Platform",
        "SoundExchange": "Service",
        "Generic PRO": ["Source", "Platform", "Service"],
    },
    "Royalty Type": {
        "BMI": "Performance Type",
        "ASCAP": "Survey",
        "SESAC": "Use Code",
        "YouTube": "Revenue Type",
        "SoundExchange": "Royalty Type",
        "Generic PRO": ["Performance Type", "Use Code", "Revenue Type"],
    },
    "Share %": {
        "BMI": "Share %",
        "ASCAP": "Writer Share",
        "SESAC": "Participant %",
        "YouTube": "Share",
        "SoundExchange": "Share Percentage",
        "Generic PRO": ["Share %", "Participant %", "Writer Share", "Share"],
    },
    "Gross Amount": {
        "BMI": [
            "Current Quarter Royalties",
            "Amount",
            "Royalty",
            "Payment",
            "Total Amount",
            "Quarter Royalties",
        ],
        "ASCAP": ["Amount Paid", "Amount", "Royalty", "Payment", "Total", "Total Amount", "Quarter Royalties"],
        "SESAC": ["Royalty Amount", "Current Activity Amt"],
        "YouTube": "Earnings",
        "SoundExchange": "Royalty",
        "Generic PRO": ["Amount", "Royalty", "Payment", "Total", "Earnings"],
    },
    "Period Start": {
        "BMI": "Period",
        "ASCAP": "Start Date",
        "SESAC": "Perf Period",
        "YouTube": "Revenue Start",
        "SoundExchange": "Usage Period Start",
        "Generic PRO": ["Period", "Start Date", "Period Start"],
    },
    "Period End": {
        "BMI": "Period",
        "ASCAP": "End Date",
        "SESAC": "Perf Period",
        "YouTube": "Revenue End",
        "SoundExchange": "Usage Period End",
        "Generic PRO": ["Period", "End Date", "Period End"],
    },
    "Payment Date": {
        "BMI": "Payment Date",
        "ASCAP": "Payment Date",
        "SESAC": "",
        "YouTube": "Payment Date",
        "SoundExchange": "Distribution Date",
        "Generic PRO": ["Payment Date", "Distribution Date"],
    },
}

REQUIRED_FIELDS = ("Song Title", "Client Name", "Gross Amount")
DATE_FIELDS = ("Period Start", "Period End", "Payment Date")
TEXT_FIELDS = ("Song Title", "Client Name")
AMOUNT_LIMIT = 1_000_000
OUTLIER_FACTOR = 50
DETECTION_THRESHOLD = 0.3

_CURRENCY_RE = re.compile(r"[$,€£¥]")
_WHITESPACE_RE = re.compile(r"\s+")
_UNUSUAL_RE = re.compile(r"[^\w\s\-.,'&()]")
_DATE_SPLIT_RE = re.compile(r"[/\-.]")


@dataclass(frozen=True)
class MappedResult:
    source: str
    rows: list[dict[str, Any]] = field(default_factory=list)
    unmapped_fields: list[str] = field(default_factory=list)
    validation_errors: list[str] = field(default_factory=list)

    @property
    def validation_status(self) -> str:
        if not self.validation_errors:
            return "valid"
        if any("Missing required field" in e for e in self.validation_errors):
            return "errors"
        return "warnings"


def _headers(spec: HeaderSpec | None) -> list[str]:
    if not spec:
        return []
    if isinstance(spec, str):
        return [spec]
    return [h for h in spec if h]


def _parse_number(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def normalize_date(text: str) -> Optional[str]:
    """ISO dates and datetimes pass through; otherwise MM/DD/YYYY is assumed."""
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass
    parts = _DATE_SPLIT_RE.split(text)
    if len(parts) == 3:
        try:
            if len(parts[0]) == 4:
                year, month, day = (int(p) for p in parts)
            else:
                month, day, year = (int(p) for p in parts)
            return date(year, month, day).isoformat()
        except ValueError:
            return text
    return text


def normalize_value(value: Any, field_name: str) -> Any:
    if value is None:
        return None
    text = str(value).strip()
    if text == "":
        return None
    if field_name == "Gross Amount":
        return _parse_number(_CURRENCY_RE.sub("", text))
    if field_name == "Share %":
        return _parse_number(text.replace("%", ""))
    if field_name in DATE_FIELDS:
        return normalize_date(text)
    if field_name in TEXT_FIELDS:
        return _WHITESPACE_RE.sub(" ", text).strip()
    return text


def _is_iso_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class StatementMapper:
    def __init__(self, mapping: MappingTable | None = None, *, today: date | None = None):
        self._mapping: MappingTable = {k: dict(v) for k, v in (mapping or DEFAULT_MAPPING).items()}
        self._today = today

    @property
    def mapping(self) -> MappingTable:
        return self._mapping

    def update_mapping(self, overrides: Mapping[str, Mapping[str, HeaderSpec]]) -> None:
        for standard_field, sources in overrides.items():
            self._mapping.setdefault(standard_field, {}).update(sources)

    def mapping_for_source(self, source: str) -> dict[str, HeaderSpec]:
        return {f: spec[source] for f, spec in self._mapping.items() if spec.get(source)}

    def detect_source(self, headers: Iterable[str]) -> tuple[str, float]:
        """Returns the source whose headers best cover the statement, with a 0..1 confidence."""
        present = {h.strip() for h in headers if h}
        best, best_score = UNKNOWN_SOURCE, 0.0
        for source in SOURCES:
            fields = self.mapping_for_source(source)
            if not fields:
                continue
            hits = sum(1 for spec in fields.values() if any(h in present for h in _headers(spec)))
            score = hits / len(fields)
            if score > best_score:
                best, best_score = source, score
        if best_score < DETECTION_THRESHOLD:
            return UNKNOWN_SOURCE, best_score
        return best, round(best_score, 4)

    def map_rows(self, rows: Sequence[Mapping[str, Any]], source: str) -> MappedResult:
        errors: list[str] = []
        headers = list(rows[0].keys()) if rows else []
        known = {h for spec in self.mapping_for_source(source).values() for h in _headers(spec)}
        unmapped = [h for h in headers if h not in known]

        self._validate_structure(rows, errors)

        mapped_rows: list[dict[str, Any]] = []
        for index, row in enumerate(rows):
            mapped: dict[str, Any] = {"Statement Source": source}
            for standard_field, spec in self._mapping.items():
                for header in _headers(spec.get(source)):
                    value = row.get(header)
                    if value is not None and value != "":
                        mapped[standard_field] = normalize_value(value, standard_field)
                        break
            self._validate_row(mapped, index + 1, errors)
            mapped["_row_index"] = index
            mapped_rows.append(mapped)

        self._validate_aggregate(mapped_rows, errors)
        return MappedResult(source=source, rows=mapped_rows, unmapped_fields=unmapped, validation_errors=errors)

    def _validate_structure(self, rows: Sequence[Mapping[str, Any]], errors: list[str]) -> None:
        if not rows:
            errors.append("No data rows found in the statement")
            return
        headers = list(rows[0].keys())
        stripped = [str(h).strip() for h in headers]
        if len(set(stripped)) != len(stripped):
            errors.append("Duplicate column headers detected in the data")
        empty = [h for h in stripped if not h]
        if empty:
            errors.append(f"{len(empty)} empty column headers found")
        inconsistent = [i + 1 for i, row in enumerate(rows) if len(row) != len(headers)]
        if inconsistent:
            more = " and more" if len(inconsistent) > 5 else ""
            errors.append(
                f"Inconsistent column count in rows: {', '.join(str(i) for i in inconsistent[:5])}{more}"
            )

    def _validate_row(self, mapped: dict[str, Any], row_num: int, errors: list[str]) -> None:
        for name in REQUIRED_FIELDS:
            if mapped.get(name) in (None, ""):
                errors.append(f"Row {row_num}: Missing required field '{name}'")

        # unparseable amounts are already coerced to 0.0
        amount = mapped.get("Gross Amount")
        if isinstance(amount, (int, float)):
            if amount < 0:
                errors.append(f"Row {row_num}: Negative amount detected ({amount:g})")
            if amount > AMOUNT_LIMIT:
                errors.append(f"Row {row_num}: Unusually high amount detected ({amount:g}) - please verify")

        share = mapped.get("Share %")
        if isinstance(share, (int, float)) and (share < 0 or share > 100):
            errors.append(f"Row {row_num}: Share percentage ({share:g}%) outside valid range (0-100%)")

        today = self._today or date.today()
        for name in DATE_FIELDS:
            value = mapped.get(name)
            if not value:
                continue
            parsed = _is_iso_date(value)
            if parsed is None:
                errors.append(f"Row {row_num}: Invalid date format in '{name}': {value}")
            elif name == "Period End" and parsed > today:
                errors.append(f"Row {row_num}: Period End date is in the future: {value}")

        for name in TEXT_FIELDS:
            value = mapped.get(name)
            if not isinstance(value, str) or not value:
                continue
            if len(value) < 2:
                errors.append(f'Row {row_num}: {name} seems too short: "{value}"')
            if _UNUSUAL_RE.search(value):
                errors.append(f'Row {row_num}: {name} contains unusual characters: "{value}"')

        if not any(v not in (None, "") for k, v in mapped.items() if k != "Statement Source"):
            errors.append(f"Row {row_num}: No valid data found in this row")

    def _validate_aggregate(self, rows: list[dict[str, Any]], errors: list[str]) -> None:
        if not rows:
            return
        entries: dict[tuple, list[int]] = {}
        for index, row in enumerate(rows, start=1):
            key = (row.get("Song Title"), row.get("Client Name"), row.get("Period Start"))
            entries.setdefault(key, []).append(index)
        for key, row_numbers in entries.items():
            if len(row_numbers) > 1:
                errors.append(
                    f'Potential duplicate entries found for "{key[0]}" in rows: '
                    f"{', '.join(str(n) for n in row_numbers)}"
                )

        amounts = [r["Gross Amount"] for r in rows if isinstance(r.get("Gross Amount"), (int, float))]
        if amounts:
            total = sum(amounts)
            average = total / len(amounts)
            if total == 0:
                errors.append("Total royalty amount is zero - please verify the data")
            outliers = [a for a in amounts if average > 0 and a > average * OUTLIER_FACTOR]
            if outliers:
                errors.append(
                    f"Found {len(outliers)} entries with amounts significantly higher than average - please verify"
                )

        for index, row in enumerate(rows, start=1):
            start = _is_iso_date(row.get("Period Start") or "")
            end = _is_iso_date(row.get("Period End") or "")
            if start and end and start > end:
                errors.append(f"Row {index}: Period Start date is after Period End date")

        complete = sum(
            1
            for r in rows
            if r.get("Song Title") and r.get("Client Name") and r.get("Gross Amount") is not None
        )
        if complete < len(rows) * 0.5:
            errors.append(
                f"Only {complete} out of {len(rows)} rows contain complete data - please review the mapping"
            )