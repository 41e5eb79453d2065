from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from ..models import RIGHT_TYPES


@dataclass(frozen=True)
class CWRRule:
    field: str
    required: bool = False
    max_length: Optional[int] = None
    min_length: Optional[int] = None
    pattern: Optional[re.Pattern] = None
    allowed_values: Optional[tuple[str, ...]] = None
    validator: Optional[Callable[[Any], bool]] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class FieldValidation:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ComplianceScores:
    cwr21: float
    ddex: float
    format: float


@dataclass(frozen=True)
class CWRValidationResult:
    errors: list[str]
    warnings: list[str]
    compliance: ComplianceScores

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _is_valid_duration(value: Any) -> bool:
    if not value:
        return True
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 < value <= 86400


def _is_valid_share(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 100


CWR_VALIDATION_RULES: dict[str, CWRRule] = {
    "HDR.SENDER_TYPE": CWRRule(
        "sender_type", required=True, max_length=2,
        allowed_values=("SO", "PB", "WR", "AD"),
        message="Sender type must be SO, PB, WR, or AD",
    ),
    "HDR.SENDER_ID": CWRRule(
        "sender_id", required=True, max_length=9,
        pattern=re.compile(r"^[A-Z0-9]{2,9}$"),
        message="Sender ID must be 2-9 alphanumeric characters",
    ),
    "HDR.CREATION_DATE": CWRRule(
        "creation_date", required=True, max_length=8,
        pattern=re.compile(r"^\d{8}$"),
        message="Creation date must be CCYYMMDD format",
    ),
    "HDR.CREATION_TIME": CWRRule(
        "creation_time", required=True, max_length=6,
        pattern=re.compile(r"^\d{6}$"),
        message="Creation time must be HHMMSS format",
    ),
    "NWR.WORK_TITLE": CWRRule(
        "work_title", required=True, max_length=60, min_length=1,
        message="Work title is required and cannot exceed 60 characters",
    ),
    "NWR.ISWC": CWRRule(
        "iswc", max_length=15,
        pattern=re.compile(r"^T-?\d{9}-?\d$"),
        message="ISWC must follow format T-123456789-0",
    ),
    "NWR.LANGUAGE_CODE": CWRRule(
        "language_code", max_length=2,
        allowed_values=("EN", "ES", "FR", "DE", "IT", "PT", "JA", "KO", "ZH"),
        message="Language code must be a valid ISO 639-1 code",
    ),
    "NWR.WORK_TYPE": CWRRule(
        "work_type", required=True, max_length=3,
        allowed_values=("ORI", "ARR", "ADP", "TRA", "COM"),
        message="Work type must be ORI, ARR, ADP, TRA, or COM",
    ),
    "NWR.DURATION": CWRRule(
        "duration_seconds", validator=_is_valid_duration,
        message="Duration must be between 1 and 86400 seconds",
    ),
    "SWR.WRITER_FIRST_NAME": CWRRule(
        "writer_first_name", required=True, max_length=30,
        message="Writer first name is required and cannot exceed 30 characters",
    ),
    "SWR.WRITER_LAST_NAME": CWRRule(
        "writer_last_name", required=True, max_length=45,
        message="Writer last name is required and cannot exceed 45 characters",
    ),
    "SWR.IPI_NUMBER": CWRRule(
        "ipi_number", max_length=11,
        pattern=re.compile(r"^\d{9,11}$"),
        message="IPI number must be 9-11 digits",
    ),
    "SWR.WRITER_ROLE": CWRRule(
        "writer_role", required=True, max_length=2,
        allowed_values=("CA", "A ", "C ", "AR", "TR", "AD"),
        message="Writer role must be CA, A, C, AR, TR, or AD",
    ),
    "SWR.WRITER_SHARE": CWRRule(
        "ownership_percentage", required=True, validator=_is_valid_share,
        message="Writer share must be between 0 and 100",
    ),
    "PWR.PUBLISHER_NAME": CWRRule(
        "publisher_name", required=True, max_length=45,
        message="Publisher name is required and cannot exceed 45 characters",
    ),
    "PWR.PUBLISHER_TYPE": CWRRule(
        "publisher_role", required=True, max_length=2,
        allowed_values=("E ", "ES", "PA", "SE"),
        message="Publisher type must be E, ES, PA, or SE",
    ),
    "TER.TERRITORY_CODE": CWRRule(
        "territory_code", required=True, max_length=2,
        pattern=re.compile(r"^[A-Z]{2}$"),
        message="Territory code must be a valid ISO 3166-1 alpha-2 code",
    ),
    "TER.INCLUSION_EXCLUSION": CWRRule(
        "inclusion_exclusion", required=True, max_length=1,
        allowed_values=("I", "E"),
        message="Inclusion/Exclusion indicator must be I or E",
    ),
    "REC.ISRC": CWRRule(
        "isrc", max_length=12,
        pattern=re.compile(r"^[A-Z]{2}[A-Z0-9]{3}\d{7}$"),
        message="ISRC must follow format CC-XXX-YY-NNNNN",
    ),
    "REC.RECORDING_TITLE": CWRRule("recording_title", max_length=60),
    "REC.ARTIST_NAME": CWRRule("artist_name", max_length=60),
}


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def validate_cwr_field(path: str, value: Any) -> FieldValidation:
    rule = CWR_VALIDATION_RULES.get(path)
    if rule is None:
        return FieldValidation(warnings=[f"No validation rule found for field: {path}"])

    if _is_empty(value):
        if rule.required:
            return FieldValidation(errors=[rule.message or f"{rule.field} is required"])
        return FieldValidation()

    errors: list[str] = []
    if rule.max_length and isinstance(value, str) and len(value) > rule.max_length:
        errors.append(f"{rule.field} exceeds maximum length of {rule.max_length} characters")
    if rule.min_length and isinstance(value, str) and len(value) < rule.min_length:
        errors.append(f"{rule.field} must be at least {rule.min_length} characters")
    if rule.pattern is not None and isinstance(value, str) and not rule.pattern.match(value):
        errors.append(rule.message or f"{rule.field} format is invalid")
    if rule.allowed_values is not None and value not in rule.allowed_values:
        errors.append(f"{rule.field} must be one of: {', '.join(rule.allowed_values)}")
    if rule.validator is not None and not rule.validator(value):
        errors.append(rule.message or f"{rule.field} failed custom validation")
    return FieldValidation(errors=errors)


def _share(party: Any, right: str) -> float:
    if isinstance(party, Mapping):
        return float(party.get(f"{right.lower()}_share") or 0.0)
    return party.share_for(right)


def validate_rights_ownership(writers: Sequence[Any], publishers: Sequence[Any], right: str) -> FieldValidation:
    if right not in RIGHT_TYPES:
        return FieldValidation(warnings=[f"No validation rules for rights type: {right}"])
    total = round(sum(_share(w, right) for w in writers) + sum(_share(p, right) for p in publishers), 4)
    if total > 100:
        return FieldValidation(errors=[f"{right} rights ownership exceeds 100% (current: {total:g}%)"])
    if total < 100:
        return FieldValidation(warnings=[f"{right} rights ownership is less than 100% (current: {total:g}%)"])
    return FieldValidation()


def compliance_scores(error_count: int, warning_count: int) -> ComplianceScores:
    error_penalty = error_count * 5
    warning_penalty = warning_count * 2
    return ComplianceScores(
        cwr21=max(0.0, 100 - error_penalty - warning_penalty),
        ddex=max(0.0, 100 - error_penalty - warning_penalty * 0.5),
        format=max(0.0, 100 - error_penalty * 1.5),
    )


def validate_cwr_compliance(work, writers=(), publishers=(), recordings=()) -> CWRValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    def collect(result: FieldValidation, prefix: str = "") -> None:
        errors.extend(f"{prefix}{e}" for e in result.errors)
        warnings.extend(f"{prefix}{w}" for w in result.warnings)

    collect(validate_cwr_field("NWR.WORK_TITLE", work.work_title))
    if work.iswc:
        collect(validate_cwr_field("NWR.ISWC", work.iswc))
    collect(validate_cwr_field("NWR.WORK_TYPE", work.work_type))
    if work.language_code:
        collect(validate_cwr_field("NWR.LANGUAGE_CODE", work.language_code))
    collect(validate_cwr_field("NWR.DURATION", work.duration_seconds))

    if not writers:
        errors.append("At least one writer is required for CWR compliance")
    for index, writer in enumerate(writers, start=1):
        prefix = f"Writer {index}: "
        first_name = (writer.writer_name or "").split(" ")[0]
        collect(validate_cwr_field("SWR.WRITER_FIRST_NAME", first_name), prefix)
        collect(validate_cwr_field("SWR.WRITER_SHARE", writer.ownership_percentage), prefix)
        if writer.ipi_number:
            collect(validate_cwr_field("SWR.IPI_NUMBER", writer.ipi_number), prefix)

    for index, publisher in enumerate(publishers, start=1):
        collect(validate_cwr_field("PWR.PUBLISHER_NAME", publisher.publisher_name), f"Publisher {index}: ")

    for index, recording in enumerate(recordings, start=1):
        if recording.isrc:
            collect(validate_cwr_field("REC.ISRC", recording.isrc), f"Recording {index}: ")

    for right in RIGHT_TYPES:
        collect(validate_rights_ownership(writers, publishers, right))

    return CWRValidationResult(
        errors=errors,
        warnings=warnings,
        compliance=compliance_scores(len(errors), len(warnings)),
    )
