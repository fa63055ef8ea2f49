from .content import (
    FIELD_NAMES,
    FIELD_SCHEMA,
    FIELDS_BY_NAME,
    REQUIRED_FIELDS,
    SHADOW_COLUMNS,
    FieldResult,
    FieldSpec,
    GateDecision,
    GateOutcome,
    KeywordSet,
    RecordResult,
    RecordState,
    ShapeKind,
    is_complete,
    missing_required,
)

__all__ = [
    "FIELD_NAMES",
    "FIELD_SCHEMA",
    "FIELDS_BY_NAME",
    "REQUIRED_FIELDS",
    "SHADOW_COLUMNS",
    "FieldResult",
    "FieldSpec",
    "GateDecision",
    "GateOutcome",
    "KeywordSet",
    "RecordResult",
    "RecordState",
    "ShapeKind",
    "is_complete",
    "missing_required",
]
