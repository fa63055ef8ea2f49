"""
Database access for the translation pipeline.

Tables:
    medicines(pos_item_code, route_name)
    medicines_details(route_name, language, <content columns>, meta_keywords,
                      gpt_* shadow columns), unique on (route_name, language)

All functions take an explicit psycopg2 connection opened with
``RealDictCursor`` (see ``get_db_connection``). Writes commit on success and
roll back on failure.

Usage:
    from medtrans.db_utils import get_db_connection, get_source_record

    conn = get_db_connection()
    row = get_source_record(conn, 'augmentin-625-duo-tablet-10s', 'english')
"""

from __future__ import annotations

import os
from typing import Any, Dict, Iterable, List, Mapping, Optional

import psycopg2
from psycopg2.extras import Json, RealDictCursor

from .errors import PersistenceFailure
from .logging_utils import log
from .models.content import (
    FIELD_NAMES,
    REQUIRED_FIELDS,
    SHADOW_COLUMNS,
    KeywordSet,
)

_FIELD_COLUMNS = ", ".join(FIELD_NAMES)
_REQUIRED_COLUMNS = ", ".join(REQUIRED_FIELDS)


def _strip_nul(value: Any) -> Any:
    """
    PostgreSQL rejects NUL (0x00) characters in text fields.

    Strip them from strings, list items and dict values so a single stray
    character doesn't lose a fully translated record.
    """
    if isinstance(value, str):
        return value.replace("\x00", "")
    if isinstance(value, list):
        return [_strip_nul(v) for v in value]
    if isinstance(value, dict):
        return {k: _strip_nul(v) for k, v in value.items()}
    return value


def _adapt(value: Any) -> Any:
    """Wrap structured values for JSONB columns."""
    value = _strip_nul(value)
    if isinstance(value, (list, dict)):
        return Json(value)
    return value


def get_db_connection(database_url: Optional[str] = None):
    """
    Get PostgreSQL connection from DATABASE_URL.

    Returns:
        psycopg2 connection object

    Raises:
        RuntimeError: If no database URL is configured
    """
    database_url = database_url or os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable not set")
    return psycopg2.connect(database_url, cursor_factory=RealDictCursor)


def lookup_route_keys(conn, codes: Iterable[str]) -> Dict[str, str]:
    """Map item codes to route keys via the medicines table."""
    codes = [c for c in codes if c]
    if not codes:
        return {}
    cursor = conn.cursor()
    cursor.execute(
        "SELECT pos_item_code, route_name FROM medicines WHERE pos_item_code = ANY(%s::text[])",
        (codes,),
    )
    return {row["pos_item_code"]: row["route_name"] for row in cursor.fetchall()}


def get_source_record(conn, route_key: str, language: str) -> Optional[Dict[str, Any]]:
    """
    Load every translatable field of a record.

    Returns:
        Dict keyed by field name (declared order), or None if no row exists
    """
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT {_FIELD_COLUMNS} FROM medicines_details "
        "WHERE route_name = %s AND language = %s LIMIT 1",
        (route_key, language),
    )
    row = cursor.fetchone()
    if not row:
        return None
    return {name: row.get(name) for name in FIELD_NAMES}


def get_target_status(conn, route_key: str, language: str) -> Optional[Dict[str, Any]]:
    """Load the required fields of a target row (None if the row is absent)."""
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT {_REQUIRED_COLUMNS} FROM medicines_details "
        "WHERE route_name = %s AND language = %s LIMIT 1",
        (route_key, language),
    )
    row = cursor.fetchone()
    return dict(row) if row else None


def get_keywords(conn, route_key: str, language: str) -> Optional[KeywordSet]:
    """Read and parse meta_keywords for (route key, language)."""
    cursor = conn.cursor()
    cursor.execute(
        "SELECT meta_keywords FROM medicines_details "
        "WHERE route_name = %s AND language = %s LIMIT 1",
        (route_key, language),
    )
    row = cursor.fetchone()
    if not row:
        return None
    return KeywordSet.from_json(row.get("meta_keywords"))


def save_keywords(conn, route_key: str, language: str, keywords: KeywordSet) -> None:
    """
    Create or replace meta_keywords for (route key, language).

    Raises:
        PersistenceFailure: On any database error (transaction rolled back)
    """
    cursor = conn.cursor()
    try:
        cursor.execute(
            """
            INSERT INTO medicines_details (route_name, language, meta_keywords)
            VALUES (%s, %s, %s)
            ON CONFLICT (route_name, language)
            DO UPDATE SET meta_keywords = EXCLUDED.meta_keywords
            """,
            (route_key, language, keywords.to_json()),
        )
        conn.commit()
    except Exception as e:
        conn.rollback()
        raise PersistenceFailure(f"Error saving keywords for {route_key}: {e}") from e


def get_medicine_name(conn, route_key: str, languages: Iterable[str]) -> Optional[str]:
    """Return the first non-empty name among the given languages, in order."""
    cursor = conn.cursor()
    for language in languages:
        cursor.execute(
            "SELECT name FROM medicines_details WHERE route_name = %s AND language = %s LIMIT 1",
            (route_key, language),
        )
        row = cursor.fetchone()
        if row and row.get("name"):
            return row["name"]
    return None


def commit_translation(
    conn,
    route_key: str,
    language: str,
    fields: Mapping[str, Any],
) -> None:
    """
    Write every translated field (and its shadow columns) in one statement.

    Fields absent from ``fields`` are written as NULL, matching a source value
    of NULL. Callers only invoke this once every field validated.

    Raises:
        PersistenceFailure: On any database error (transaction rolled back)
    """
    columns = list(FIELD_NAMES) + list(SHADOW_COLUMNS)
    values = [_adapt(fields.get(name)) for name in FIELD_NAMES]
    values += [_adapt(fields.get(base)) for base in SHADOW_COLUMNS.values()]

    column_sql = ", ".join(columns)
    placeholders = ", ".join(["%s"] * len(columns))
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns)

    cursor = conn.cursor()
    try:
        cursor.execute(
            f"INSERT INTO medicines_details (route_name, language, {column_sql}) "
            f"VALUES (%s, %s, {placeholders}) "
            f"ON CONFLICT (route_name, language) DO UPDATE SET {updates}",
            [route_key, language] + values,
        )
        conn.commit()
    except Exception as e:
        conn.rollback()
        raise PersistenceFailure(f"Error saving translation for {route_key}: {e}") from e


def update_meta(
    conn, route_key: str, language: str, meta_title: str, meta_description: str
) -> bool:
    """Update meta title/description of an existing row."""
    cursor = conn.cursor()
    try:
        cursor.execute(
            "UPDATE medicines_details SET meta_title = %s, meta_description = %s "
            "WHERE route_name = %s AND language = %s",
            (meta_title, meta_description, route_key, language),
        )
        conn.commit()
        return cursor.rowcount > 0
    except Exception as e:
        conn.rollback()
        log(f"Error updating meta for {route_key}: {e}")
        raise


def get_incomplete_source_routes(
    conn, route_keys: Iterable[str], language: str
) -> List[str]:
    """
    Return route keys whose source row exists but misses a required field.

    Route keys with no source row at all are not included; the orchestrator
    reports those separately.
    """
    route_keys = list(route_keys)
    if not route_keys:
        return []
    null_checks = " OR ".join(f"{name} IS NULL" for name in REQUIRED_FIELDS)
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT route_name FROM medicines_details "
        f"WHERE language = %s AND route_name = ANY(%s) AND ({null_checks})",
        (language, route_keys),
    )
    incomplete = {row["route_name"] for row in cursor.fetchall()}
    return [key for key in dict.fromkeys(route_keys) if key in incomplete]

