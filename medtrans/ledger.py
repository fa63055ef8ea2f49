"""
Append-only text ledgers for token usage and format incidents.

One file per category under the log directory (e.g. ``logs/hindi-content.txt``).
Entries are fixed-format blocks and are never rewritten. Appending is best
effort: ``append_safely`` turns an I/O failure into a log line so a ledger
problem never aborts a translation that already succeeded.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Union

from .logging_utils import log

SEPARATOR = "-------------------------------"


def _append_block(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.write_text(content, encoding="utf-8")
        return
    with path.open("a", encoding="utf-8") as fh:
        fh.write("\n" + content)


class UsageLedger:
    """Token consumption per external-service call."""

    def __init__(self, log_dir: Union[str, Path]):
        self.log_dir = Path(log_dir)

    def path_for(self, category: str) -> Path:
        return self.log_dir / f"{category}.txt"

    def append(self, category: str, route_key: str, tokens: int) -> None:
        content = (
            f"Route Name     : {route_key}\n"
            f"Language       : {category}\n"
            f"Total Tokens   : {int(tokens or 0)}\n"
            f"{SEPARATOR}\n"
        )
        _append_block(self.path_for(category), content)


class IncidentLedger:
    """Records whose translation was abandoned because a field failed."""

    def __init__(self, log_dir: Union[str, Path], language: str):
        self.log_dir = Path(log_dir)
        self.category = f"invalid-format-{language}"

    @property
    def path(self) -> Path:
        return self.log_dir / f"{self.category}.txt"

    def append(self, route_key: str, field: str, reason: str) -> None:
        # Reasons can carry model output; keep each entry on fixed lines.
        reason_line = " ".join(str(reason).split())
        content = (
            f"Route Name     : {route_key}\n"
            f"Language       : {self.category}\n"
            f"Field          : {field}\n"
            f"Reason         : {reason_line}\n"
            f"{SEPARATOR}\n"
        )
        _append_block(self.path, content)


def append_safely(write: Callable[[], None], what: str) -> bool:
    """Run a ledger append; on failure log it and carry on."""
    try:
        write()
        return True
    except (OSError, ValueError) as e:
        log(f"Warning: failed to append {what}: {e}")
        return False
