"""
Input enumeration: turn a candidate spreadsheet into ordered route keys.

The input CSV carries either item codes (``dd_item_code``), which are mapped
to route keys through the medicines table, or content URLs of the form
``.../medicine/<route-key>``.
"""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

CODE_COLUMN = "dd_item_code"
URL_COLUMNS = ("route_name", "url", "URL")

_ROUTE_RE = re.compile(r"/medicine/([^?#/]+)")


@dataclass
class Candidate:
    """One input row: the identifier as given and its route key (if resolved)."""

    identifier: str
    route_key: Optional[str] = None


def extract_route_key(url: str) -> Optional[str]:
    """Extract the route key from a ``/medicine/<route-key>`` URL."""
    if not url:
        return None
    match = _ROUTE_RE.search(url)
    if not match:
        return None
    route_key = match.group(1).strip()
    return route_key or None


def read_rows(path: Union[str, Path]) -> List[Dict[str, str]]:
    """Read the candidate file (CSV with a header row)."""
    with open(path, "r", encoding="utf-8-sig", newline="") as fh:
        return [dict(row) for row in csv.DictReader(fh)]


def _column_value(row: Dict[str, str], names: Iterable[str]) -> str:
    for name in names:
        value = row.get(name)
        if value:
            return value.strip()
    return ""


def resolve_candidates(rows: List[Dict[str, str]], code_lookup=None) -> List[Candidate]:
    """
    Convert input rows into ordered candidates.

    Args:
        rows: Parsed input rows
        code_lookup: Callable mapping a list of item codes to {code: route_key};
            required when rows carry item codes

    Returns:
        Candidates in input order; duplicates are dropped after their first
        occurrence. Unresolvable identifiers keep ``route_key=None``.
    """
    codes = [_column_value(row, [CODE_COLUMN]) for row in rows]
    route_map: Dict[str, str] = {}
    if any(codes):
        if code_lookup is None:
            raise ValueError("Input rows contain item codes but no code lookup was given")
        route_map = code_lookup([c for c in codes if c])

    candidates: List[Candidate] = []
    seen = set()
    for row, code in zip(rows, codes):
        if code:
            identifier = code
            route_key = route_map.get(code)
        else:
            identifier = _column_value(row, URL_COLUMNS)
            if not identifier:
                continue
            route_key = extract_route_key(identifier)
        key = route_key or identifier
        if key in seen:
            continue
        seen.add(key)
        candidates.append(Candidate(identifier=identifier, route_key=route_key))
    return candidates
