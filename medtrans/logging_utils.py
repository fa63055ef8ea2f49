"""
Progress logging for pipeline runs.

Pipeline runs are operated from a terminal, so progress lines go to stdout with
a short timestamp prefix. Library diagnostics use the standard ``logging``
module instead.
"""

from __future__ import annotations

import sys
from datetime import datetime


def log(message: str) -> None:
    """Print timestamped log message."""
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {message}", file=sys.stdout, flush=True)
