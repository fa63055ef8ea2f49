"""
Content data model: the translatable field table, keyword sets, and the
per-field / per-record results passed between pipeline stages.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field


class ShapeKind(str, Enum):
    """Declared structural type of a content field."""

    SCALAR_STRING = "scalar-string"
    LIST_OF_STRINGS = "list-of-strings"
    LIST_OF_OBJECTS = "list-of-structured-objects"


@dataclass(frozen=True)
class FieldSpec:
    """One translatable column of medicines_details."""

    name: str
    shape: ShapeKind
    protected_keys: Tuple[str, ...] = ()
    keeps_tags: bool = False

    def shape_instruction(self) -> str:
        """Instruction line describing the expected output shape."""
        if self.shape is ShapeKind.SCALAR_STRING:
            text = "return in string"
            if self.keeps_tags:
                text += " with attached tags"
        elif self.shape is ShapeKind.LIST_OF_STRINGS:
            text = "return in an array of strings"
        else:
            text = "return in an array of objects"
            if self.protected_keys:
                keys = ", ".join(f"'{k}'" for k in self.protected_keys)
                text += f" (do not translate the value of the {keys} key)"
        return f"{self.name}: {text}."


S = ShapeKind.SCALAR_STRING
L = ShapeKind.LIST_OF_STRINGS
O = ShapeKind.LIST_OF_OBJECTS

# Declared order is the translation order.
FIELD_SCHEMA: Tuple[FieldSpec, ...] = (
    FieldSpec("name", S),
    FieldSpec("company", S),
    FieldSpec("composition", S),
    FieldSpec("sku_packaging", S),
    FieldSpec("introduction", S, keeps_tags=True),
    FieldSpec("benefits", L),
    FieldSpec("how_to_use", L),
    FieldSpec("how_it_works", S),
    FieldSpec("uses", L),
    FieldSpec("side_effects", L),
    FieldSpec("safety_advice", O, protected_keys=("risk",)),
    FieldSpec("storage_advice", L),
    FieldSpec("special_precautions", L),
    FieldSpec("missed_a_dose", S, keeps_tags=True),
    FieldSpec("drug_interaction", L),
    FieldSpec("food_interaction", L),
    FieldSpec("disease_explanation", S),
    FieldSpec("health_and_lifestyle", S),
    FieldSpec("sources", L),
    FieldSpec("disease_interaction", S, keeps_tags=True),
    FieldSpec("meta_title", S),
    FieldSpec("meta_description", S),
    FieldSpec("patient_concern", O),
    FieldSpec("usage", S),
    FieldSpec("patient_also_ask", O),
    FieldSpec("product_information", S),
    FieldSpec("tips", L),
    FieldSpec("fact_box", S, keeps_tags=True),
    FieldSpec("storage", S, keeps_tags=True),
    FieldSpec("dosage", L),
    FieldSpec("synopsis", S, keeps_tags=True),
)

del S, L, O

FIELDS_BY_NAME: Dict[str, FieldSpec] = {spec.name: spec for spec in FIELD_SCHEMA}
FIELD_NAMES: Tuple[str, ...] = tuple(spec.name for spec in FIELD_SCHEMA)

# Completeness predicate for both source and target rows.
REQUIRED_FIELDS: Tuple[str, ...] = (
    "introduction",
    "how_it_works",
    "how_to_use",
    "benefits",
    "side_effects",
)

# Shadow column -> base field. Written alongside the base field on commit.
SHADOW_COLUMNS: Dict[str, str] = {
    "gpt_introduction": "introduction",
    "gpt_how_to_use": "how_to_use",
    "gpt_how_it_works": "how_it_works",
    "gpt_safety_advice": "safety_advice",
}


def is_complete(row: Optional[Mapping[str, Any]]) -> bool:
    """True when every required field of the row is non-null."""
    if not row:
        return False
    return all(row.get(name) is not None for name in REQUIRED_FIELDS)


def missing_required(row: Optional[Mapping[str, Any]]) -> List[str]:
    if not row:
        return list(REQUIRED_FIELDS)
    return [name for name in REQUIRED_FIELDS if row.get(name) is None]


class KeywordSet(BaseModel):
    """Language-specific keyword hints for one (route key, language)."""

    primary: List[str] = Field(default_factory=list)
    secondary: List[str] = Field(default_factory=list)
    mostly_searched: List[str] = Field(default_factory=list)

    @classmethod
    def from_json(cls, raw: Any) -> Optional["KeywordSet"]:
        """
        Parse the stored meta_keywords value.

        The column may hold a JSON string or an already-decoded dict (JSONB).
        Returns None for missing or unparseable values.
        """
        if raw is None or raw == "":
            return None
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                return None
        if not isinstance(raw, dict):
            return None
        return cls(
            primary=[str(k) for k in raw.get("primary") or []],
            secondary=[str(k) for k in raw.get("secondary") or []],
            mostly_searched=[str(k) for k in raw.get("mostly_searched") or []],
        )

    def to_json(self) -> str:
        return json.dumps(
            {
                "primary": self.primary,
                "secondary": self.secondary,
                "mostly_searched": self.mostly_searched,
            },
            ensure_ascii=False,
        )

    def is_empty(self) -> bool:
        return not (self.primary or self.secondary or self.mostly_searched)

    def prompt_hint(self) -> str:
        """Keyword block injected into translation prompts."""
        return (
            "Keywords to use where they fit naturally: "
            f"primary: {', '.join(self.primary)}; "
            f"secondary: {', '.join(self.secondary)}; "
            f"mostly searched: {', '.join(self.mostly_searched)}"
        )


class GateOutcome(str, Enum):
    READY = "ready"
    SKIP_NO_ROUTE = "skip_no_route"
    SKIP_SOURCE_INCOMPLETE = "skip_source_incomplete"
    SKIP_TARGET_COMPLETE = "skip_target_complete"


@dataclass
class GateDecision:
    """Result of the completeness gate for one route key."""

    outcome: GateOutcome
    route_key: str
    source_record: Optional[Dict[str, Any]] = None
    missing: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.outcome is GateOutcome.READY


@dataclass
class FieldResult:
    """Outcome of translating one field: a value or a failure reason."""

    field: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RecordState(str, Enum):
    """Terminal states of the per-record state machine."""

    DONE = "done"
    SKIPPED = "skipped"
    ABORTED = "aborted"


@dataclass
class RecordResult:
    """Result of processing a single route key."""

    route_key: str
    state: RecordState
    reason: Optional[str] = None
    failed_field: Optional[str] = None
    fields_translated: int = 0
    gate: Optional[GateOutcome] = None
