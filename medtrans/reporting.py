"""
Incomplete-source report.

A JSON array of content URLs whose source-language record is missing or
incomplete, handed to the content team for remediation.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, Union


def route_urls(route_keys: Iterable[str], base_url: str) -> List[str]:
    base = base_url.rstrip("/")
    return [f"{base}/{key}" for key in dict.fromkeys(route_keys)]


def write_incomplete_report(
    path: Union[str, Path], route_keys: Iterable[str], base_url: str
) -> List[str]:
    """
    Write the report and return the URLs written.

    The file is rewritten on every call so it always reflects the last run.
    """
    urls = route_urls(route_keys, base_url)
    out = Path(path)
    if out.parent and not out.parent.exists():
        out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(urls, indent=2, ensure_ascii=False), encoding="utf-8")
    return urls
