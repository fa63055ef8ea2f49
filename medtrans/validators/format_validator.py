"""
Structural validation of a translated field against its source value.

The check is driven by the runtime shape of the source value:

- str    -> translated must be str, must not gain wrapping brackets/braces and
            must not contain serialization markers (``json``, code fences, ...)
- list   -> translated must be a list whose items keep the source item kind;
            for lists of objects, protected subkeys must be copied verbatim
- dict   -> translated must be a dict with protected subkeys copied verbatim

Anything unexpected during the comparison counts as a failure.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED_KEYS: Tuple[str, ...] = ("risk",)

_OPENERS = ("[", "{")
_CLOSERS = ("]", "}")

FORMAT_MARKER_RE = re.compile(r"```|\bjson\b|\byaml\b|\bxml\b", re.IGNORECASE)


def _item_kind(item: Any) -> type:
    if isinstance(item, str):
        return str
    if isinstance(item, dict):
        return dict
    if isinstance(item, list):
        return list
    return type(item)


def _protected_equal(source: dict, translated: dict, keys: Iterable[str]) -> bool:
    for key in keys:
        if key in source and (key not in translated or translated[key] != source[key]):
            return False
    return True


def _validate_string(source: str, translated: str) -> bool:
    src = source.strip()
    out = translated.strip()
    if out.startswith(_OPENERS) and not src.startswith(_OPENERS):
        return False
    if out.endswith(_CLOSERS) and not src.endswith(_CLOSERS):
        return False
    if FORMAT_MARKER_RE.search(translated):
        return False
    return True


def _validate_list(source: list, translated: list, keys: Tuple[str, ...]) -> bool:
    if source and not translated:
        return False
    has_objects = any(isinstance(item, dict) for item in source)
    if has_objects and len(translated) != len(source):
        return False

    source_kinds = {_item_kind(item) for item in source}
    for index, item in enumerate(translated):
        if has_objects:
            src_item = source[index]
            if _item_kind(item) is not _item_kind(src_item):
                return False
            if isinstance(src_item, dict) and not _protected_equal(src_item, item, keys):
                return False
        elif source_kinds and _item_kind(item) not in source_kinds:
            return False
    return True


def validate_format(
    source: Any,
    translated: Any,
    protected_keys: Optional[Iterable[str]] = None,
) -> bool:
    """
    Check that ``translated`` keeps the structure of ``source``.

    Args:
        source: Source-language field value
        translated: Candidate translated value
        protected_keys: Subkeys that must be byte-identical inside structured
            items (defaults to ``("risk",)``)

    Returns:
        True if the translated value is structurally acceptable
    """
    keys = tuple(DEFAULT_PROTECTED_KEYS if protected_keys is None else protected_keys)
    try:
        if isinstance(source, list):
            return isinstance(translated, list) and _validate_list(source, translated, keys)
        if isinstance(source, dict):
            return isinstance(translated, dict) and _protected_equal(source, translated, keys)
        if isinstance(source, str):
            return isinstance(translated, str) and _validate_string(source, translated)
        # Scalars of any other type must come back unchanged in kind.
        return type(source) is type(translated)
    except Exception as e:
        logger.debug("Format validation raised: %s", e)
        return False
