"""
Completeness gate: decide whether a route key should be translated.

The source row is checked first so a record with incomplete source data never
reaches the translator, even when its target row is empty. A complete target
row is never touched again, which is what makes reruns resumable.
"""

from __future__ import annotations

from typing import Optional

from ..db_utils import get_source_record, get_target_status
from ..errors import MedtransError, RouteLookupMiss, SourceIncomplete
from ..models.content import GateDecision, GateOutcome, is_complete, missing_required


class CompletenessGate:
    """Read-only gate over medicines_details."""

    def __init__(self, conn, source_language: str, target_language: str):
        self.conn = conn
        self.source_language = source_language
        self.target_language = target_language

    def evaluate(self, route_key: str) -> GateDecision:
        source = get_source_record(self.conn, route_key, self.source_language)
        if source is None:
            return GateDecision(GateOutcome.SKIP_NO_ROUTE, route_key)

        missing = missing_required(source)
        if missing:
            return GateDecision(
                GateOutcome.SKIP_SOURCE_INCOMPLETE, route_key, missing=missing
            )

        target = get_target_status(self.conn, route_key, self.target_language)
        if is_complete(target):
            return GateDecision(GateOutcome.SKIP_TARGET_COMPLETE, route_key)

        return GateDecision(GateOutcome.READY, route_key, source_record=source)

    def skip_error(self, decision: GateDecision) -> Optional[MedtransError]:
        """The error a skip stands for; None when the record is ready or already done."""
        if decision.outcome is GateOutcome.SKIP_NO_ROUTE:
            return RouteLookupMiss(
                f"No {self.source_language} record for {decision.route_key}"
            )
        if decision.outcome is GateOutcome.SKIP_SOURCE_INCOMPLETE:
            return SourceIncomplete(
                f"{self.source_language} record for {decision.route_key} "
                f"is missing: {', '.join(decision.missing)}"
            )
        return None
