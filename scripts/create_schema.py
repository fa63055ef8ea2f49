#!/usr/bin/env python3
"""
Create PostgreSQL schema for the medicine content tables.

This script creates the schema only (no data). Content columns are derived
from the field table so the DDL always matches what the pipeline writes:
scalar-string fields are TEXT, list fields are JSONB.

Usage:
    DATABASE_URL=postgresql://... python scripts/create_schema.py
"""

import psycopg2
import os
import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from medtrans.models.content import FIELD_SCHEMA, SHADOW_COLUMNS, FIELDS_BY_NAME, ShapeKind  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _column_type(shape):
    return "TEXT" if shape is ShapeKind.SCALAR_STRING else "JSONB"


def content_columns_sql():
    """Column definitions for every content field and shadow column."""
    lines = [f"{spec.name} {_column_type(spec.shape)}" for spec in FIELD_SCHEMA]
    for shadow, base in SHADOW_COLUMNS.items():
        lines.append(f"{shadow} {_column_type(FIELDS_BY_NAME[base].shape)}")
    return ",\n        ".join(lines)


def create_schema(conn):
    """Create medicines and medicines_details with their indexes."""
    cursor = conn.cursor()

    # Item code -> route key
    logger.info("Creating medicines table...")
    cursor.execute("""
    CREATE TABLE IF NOT EXISTS medicines (
        pos_item_code TEXT PRIMARY KEY,
        route_name TEXT NOT NULL
    );
    """)

    # One row per (route key, language)
    logger.info("Creating medicines_details table...")
    cursor.execute(f"""
    CREATE TABLE IF NOT EXISTS medicines_details (
        id SERIAL PRIMARY KEY,
        route_name TEXT NOT NULL,
        language TEXT NOT NULL,
        {content_columns_sql()},
        meta_keywords JSONB,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (route_name, language)
    );
    """)

    # Indexes
    logger.info("Creating indexes...")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_medicines_route_name ON medicines(route_name);")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_details_language ON medicines_details(language);")

    conn.commit()
    logger.info("Schema created successfully!")


def main():
    database_url = os.environ.get('DATABASE_URL')
    if not database_url:
        logger.error("DATABASE_URL environment variable is required")
        sys.exit(1)

    logger.info("Connecting to database...")
    try:
        conn = psycopg2.connect(database_url)
        create_schema(conn)

        # Verify
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM medicines_details;")
        count = cursor.fetchone()[0]
        logger.info(f"medicines_details rows: {count}")

        conn.close()
        logger.info("Done!")
    except psycopg2.Error as e:
        logger.error(f"Failed to create schema: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
