from .export import export_cwr
from .rules import (
    CWR_VALIDATION_RULES,
    ComplianceScores,
    CWRRule,
    CWRValidationResult,
    FieldValidation,
    compliance_scores,
    validate_cwr_compliance,
    validate_cwr_field,
    validate_rights_ownership,
)

__all__ = [
    "CWR_VALIDATION_RULES",
    "CWRRule",
    "CWRValidationResult",
    "ComplianceScores",
    "FieldValidation",
    "compliance_scores",
    "export_cwr",
    "validate_cwr_compliance",
    "validate_cwr_field",
    "validate_rights_ownership",
]
