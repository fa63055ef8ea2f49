#!/usr/bin/env python3
"""
Per-record translation orchestrator.

Drives each candidate route key through:

    Candidate -> Gated -> KeywordResolved -> Translating(field) -> Persisted -> Done

with Skipped / Aborted as the other terminal states. Fields are translated one
at a time in FIELD_SCHEMA order; the first field that fails translation or
format validation aborts the record, nothing is written for it, and an
incident entry names the field. Failures never leave the record boundary, so
one bad record does not stop the run.

Usage:
    # Translate every candidate in a CSV into Hindi
    python -m medtrans.orchestrator translate --input files/medicines.csv --language hindi

    # List candidates whose English content is incomplete
    python -m medtrans.orchestrator report-incomplete --input files/medicines.csv

    # Generate meta title/description for translated records
    python -m medtrans.orchestrator meta --input files/meta.csv --language hindi

Environment:
    DATABASE_URL: PostgreSQL connection string (required)
    OPENAI_API_KEY: Generation service credential
    URL_CHATGPT: Chat-completions endpoint (optional)
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import psycopg2

from .config import Settings, get_config
from .data_utils import Candidate, read_rows, resolve_candidates
from .db_utils import (
    commit_translation,
    get_db_connection,
    get_incomplete_source_routes,
    lookup_route_keys,
)
from .errors import (
    FieldTranslationFailure,
    KeywordGenerationFailure,
    MedtransError,
    PersistenceFailure,
)
from .ledger import IncidentLedger, UsageLedger, append_safely
from .logging_utils import log
from .models.content import (
    FIELD_SCHEMA,
    FieldResult,
    FieldSpec,
    GateOutcome,
    KeywordSet,
    RecordResult,
    RecordState,
)
from .reporting import write_incomplete_report
from .services.generation_client import GenerationClient
from .services.keyword_service import KeywordProvider
from .services.meta_service import MetaGenerator
from .services.translation_service import Translator, is_empty_value
from .validators.completeness_gate import CompletenessGate
from .validators.format_validator import validate_format

# Gate outcomes that put a route key on the incomplete-source report.
REPORTABLE_OUTCOMES = (GateOutcome.SKIP_NO_ROUTE, GateOutcome.SKIP_SOURCE_INCOMPLETE)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class RunContext:
    """Everything a run shares: one connection, one client, the ledgers."""

    conn: Any
    settings: Settings
    language: str
    client: GenerationClient
    usage_ledger: UsageLedger
    incident_ledger: IncidentLedger

    @classmethod
    def create(
        cls,
        language: str,
        settings: Optional[Settings] = None,
        conn=None,
        client: Optional[GenerationClient] = None,
    ) -> "RunContext":
        settings = settings or get_config()
        if conn is None:
            conn = get_db_connection(settings.database_url)
        return cls(
            conn=conn,
            settings=settings,
            language=language,
            client=client or GenerationClient(settings),
            usage_ledger=UsageLedger(settings.log_dir),
            incident_ledger=IncidentLedger(settings.log_dir, language),
        )

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None


@dataclass
class RunStats:
    """Aggregate stats for a run."""

    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    incomplete: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


# ============================================================================
# Record Processing
# ============================================================================

class RecordOrchestrator:
    """Per-record state machine over the gate, keywords, translator and store."""

    def __init__(
        self,
        ctx: RunContext,
        gate: Optional[CompletenessGate] = None,
        keywords: Optional[KeywordProvider] = None,
        translator: Optional[Translator] = None,
    ):
        source = ctx.settings.source_language
        self.ctx = ctx
        self.gate = gate or CompletenessGate(ctx.conn, source, ctx.language)
        self.keywords = keywords or KeywordProvider(
            ctx.conn, ctx.client, ctx.usage_ledger, source_language=source
        )
        self.translator = translator or Translator(
            ctx.client, ctx.usage_ledger, ctx.language, source_language=source
        )

    def process(self, route_key: str) -> RecordResult:
        """Run one route key to a terminal state. Never raises for record errors."""
        try:
            return self._process(route_key)
        except (MedtransError, psycopg2.Error) as e:
            self._rollback()
            return RecordResult(route_key, RecordState.ABORTED, reason=str(e))

    def _process(self, route_key: str) -> RecordResult:
        decision = self.gate.evaluate(route_key)
        if not decision.ready:
            error = self.gate.skip_error(decision)
            reason = str(error) if error else f"{self.ctx.language} content already complete"
            return RecordResult(
                route_key, RecordState.SKIPPED, reason=reason, gate=decision.outcome
            )

        try:
            keywords = self.keywords.resolve(route_key, self.ctx.language)
        except KeywordGenerationFailure as e:
            return RecordResult(
                route_key, RecordState.ABORTED, reason=f"keywords: {e}", gate=decision.outcome
            )

        source = decision.source_record or {}
        translated: Dict[str, Any] = {}
        calls = 0
        for spec in FIELD_SCHEMA:
            value = source.get(spec.name)
            result = self.translate_field(spec, value, keywords, route_key)
            if not result.ok:
                append_safely(
                    lambda: self.ctx.incident_ledger.append(route_key, spec.name, result.error),
                    f"incident entry for {route_key}",
                )
                return RecordResult(
                    route_key,
                    RecordState.ABORTED,
                    reason=f"{spec.name}: {result.error}",
                    failed_field=spec.name,
                    gate=decision.outcome,
                )
            translated[spec.name] = result.value
            if not is_empty_value(value):
                calls += 1

        try:
            commit_translation(self.ctx.conn, route_key, self.ctx.language, translated)
        except PersistenceFailure as e:
            return RecordResult(
                route_key, RecordState.ABORTED, reason=str(e), gate=decision.outcome
            )

        return RecordResult(
            route_key, RecordState.DONE, fields_translated=calls, gate=decision.outcome
        )

    def translate_field(
        self, spec: FieldSpec, value: Any, keywords: KeywordSet, route_key: str
    ) -> FieldResult:
        """Translate and validate a single field into a FieldResult."""
        if is_empty_value(value):
            return FieldResult(spec.name, value)
        try:
            translated = self.translator.translate(spec.name, value, keywords, route_key)
        except FieldTranslationFailure as e:
            return FieldResult(spec.name, error=e.reason)
        if not validate_format(value, translated, spec.protected_keys):
            return FieldResult(spec.name, error="format mismatch")
        return FieldResult(spec.name, translated)

    def _rollback(self) -> None:
        try:
            self.ctx.conn.rollback()
        except psycopg2.Error as e:
            log(f"Warning: rollback failed: {e}")


# ============================================================================
# Run Loop
# ============================================================================

def run_pipeline(
    ctx: RunContext,
    candidates: List[Candidate],
    orchestrator: Optional[RecordOrchestrator] = None,
    report_path: Optional[str] = None,
) -> RunStats:
    """
    Process candidates strictly in order, one at a time.

    Returns:
        RunStats with per-outcome counts and the incomplete-source route keys
    """
    orchestrator = orchestrator or RecordOrchestrator(ctx)
    stats = RunStats(total=len(candidates))

    log(f"Translating {len(candidates)} candidates into {ctx.language}...")
    done = 0
    for candidate in candidates:
        if not candidate.route_key:
            stats.skipped += 1
            log(f"Route name not found for: {candidate.identifier}")
            continue

        result = orchestrator.process(candidate.route_key)
        if result.state is RecordState.DONE:
            done += 1
            stats.success += 1
            log(f"{done}) {result.route_key} content updated successfully.")
        elif result.state is RecordState.SKIPPED:
            stats.skipped += 1
            if result.gate in REPORTABLE_OUTCOMES:
                stats.incomplete.append(result.route_key)
            log(f"Skipped {result.route_key}: {result.reason}")
        else:
            stats.failed += 1
            stats.errors.append(f"{result.route_key}: {result.reason}")
            log(f"Failed {result.route_key}: {result.reason}")

    # Always rewritten so a clean run clears the previous list.
    path = report_path or ctx.settings.incomplete_report_path
    write_incomplete_report(path, stats.incomplete, ctx.settings.medicine_url_base)
    log(f"Saved {len(stats.incomplete)} incomplete route names to {path}")

    log("")
    log("=" * 50)
    log("RUN SUMMARY")
    log("=" * 50)
    log(f"Total:   {stats.total}")
    log(f"Success: {stats.success}")
    log(f"Failed:  {stats.failed}")
    log(f"Skipped: {stats.skipped}")
    if stats.errors:
        log("")
        log("Errors:")
        for error in stats.errors[:10]:
            log(f"  - {error}")
        if len(stats.errors) > 10:
            log(f"  ... and {len(stats.errors) - 10} more")

    return stats


def load_candidates(conn, input_path: str) -> List[Candidate]:
    rows = read_rows(input_path)
    return resolve_candidates(rows, code_lookup=lambda codes: lookup_route_keys(conn, codes))


def run_incomplete_report(
    conn, settings: Settings, candidates: List[Candidate], report_path: Optional[str] = None
) -> List[str]:
    """Query-only report of candidates whose source content is incomplete."""
    route_keys = [c.route_key for c in candidates if c.route_key]
    if not route_keys:
        log("No valid route names found in input.")
        return []
    incomplete = get_incomplete_source_routes(conn, route_keys, settings.source_language)
    if not incomplete:
        log(f"All {settings.source_language} content is complete.")
    path = report_path or settings.incomplete_report_path
    urls = write_incomplete_report(path, incomplete, settings.medicine_url_base)
    log(f"Saved {len(urls)} incomplete route names to {path}")
    return urls


def run_meta(ctx: RunContext, candidates: List[Candidate]) -> RunStats:
    generator = MetaGenerator(
        ctx.conn,
        ctx.client,
        ctx.usage_ledger,
        ctx.language,
        source_language=ctx.settings.source_language,
    )
    stats = RunStats(total=len(candidates))
    for index, candidate in enumerate(candidates):
        if not candidate.route_key:
            stats.skipped += 1
            log(f"[{index}] No route name for: {candidate.identifier}")
            continue
        try:
            if generator.process(candidate.route_key):
                stats.success += 1
                log(f"[{index}] Meta description saved for: {candidate.route_key}")
            else:
                stats.skipped += 1
                log(f"[{index}] No meta description generated for {candidate.route_key}")
        except (MedtransError, psycopg2.Error) as e:
            stats.failed += 1
            stats.errors.append(f"{candidate.route_key}: {e}")
            log(f"[{index}] Error processing {candidate.route_key}: {e}")
    return stats


# ============================================================================
# CLI Entry Point
# ============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Medicine content translation pipeline")
    sub = parser.add_subparsers(dest="command", required=True)

    p_translate = sub.add_parser("translate", help="Translate candidates into a language")
    p_translate.add_argument("--input", required=True, help="CSV of item codes or URLs")
    p_translate.add_argument("--language", required=True, help="Target language tag, e.g. hindi")
    p_translate.add_argument("--report", help="Path for the incomplete-source JSON report")

    p_report = sub.add_parser("report-incomplete", help="List candidates with incomplete source")
    p_report.add_argument("--input", required=True, help="CSV of item codes or URLs")
    p_report.add_argument("--report", help="Output JSON path")

    p_meta = sub.add_parser("meta", help="Generate meta title/description")
    p_meta.add_argument("--input", required=True, help="CSV of item codes or URLs")
    p_meta.add_argument("--language", required=True, help="Target language tag")

    args = parser.parse_args(argv)
    settings = get_config()

    if args.command == "report-incomplete":
        conn = get_db_connection(settings.database_url)
        try:
            run_incomplete_report(conn, settings, load_candidates(conn, args.input), args.report)
        finally:
            conn.close()
        return 0

    ctx = RunContext.create(args.language, settings=settings)
    try:
        candidates = load_candidates(ctx.conn, args.input)
        if args.command == "meta":
            stats = run_meta(ctx, candidates)
        else:
            stats = run_pipeline(ctx, candidates, report_path=args.report)
    finally:
        ctx.close()

    return 1 if stats.failed > 0 else 0


if __name__ == "__main__":
    sys.exit(main())
