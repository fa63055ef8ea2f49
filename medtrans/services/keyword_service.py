"""
Keyword resolution for translation prompts.

Each (route key, language) carries a small keyword set (primary, secondary and
frequently searched terms) in medicines_details.meta_keywords. When it is
missing, it is generated once through the generation service, stored, and
read back. A record without keywords is not translated.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from ..db_utils import get_keywords, get_medicine_name, save_keywords
from ..errors import (
    GenerationServiceError,
    KeywordGenerationFailure,
    PersistenceFailure,
)
from ..ledger import UsageLedger, append_safely
from ..logging_utils import log
from ..models.content import KeywordSet
from .generation_client import GenerationClient

KEYWORD_PROMPT = (
    "Generate primary keywords, secondary keywords, and mostly searched words "
    "related to the disease, problem, or use in {language} treated by the "
    'medicine "{name}". Write every keyword in {language}. '
    "Do not include explanations, comments, or extra text outside or inside the JSON object."
)


class KeywordResponse(BaseModel):
    """Structured keyword payload returned by the generation service."""

    primary_keywords: List[str]
    secondary_keywords: List[str]
    mostly_searched_words: List[str]

    def to_keyword_set(self) -> KeywordSet:
        return KeywordSet(
            primary=self.primary_keywords,
            secondary=self.secondary_keywords,
            mostly_searched=self.mostly_searched_words,
        )


def _string_arrays_format(name: str, keys: List[str]) -> Dict[str, Any]:
    """json_schema response format for an object of string arrays."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "strict": True,
            "schema": {
                "type": "object",
                "properties": {
                    key: {"type": "array", "items": {"type": "string"}} for key in keys
                },
                "required": keys,
                "additionalProperties": False,
            },
        },
    }


KEYWORD_RESPONSE_FORMAT = _string_arrays_format(
    "keywords", ["primary_keywords", "secondary_keywords", "mostly_searched_words"]
)


class KeywordProvider:
    """Resolve-or-create keyword sets for (route key, language)."""

    def __init__(
        self,
        conn,
        client: GenerationClient,
        usage_ledger: UsageLedger,
        source_language: str = "english",
    ):
        self.conn = conn
        self.client = client
        self.usage_ledger = usage_ledger
        self.source_language = source_language

    def resolve(self, route_key: str, language: str) -> KeywordSet:
        """
        Return the stored keyword set, generating and storing it if absent.

        Raises:
            KeywordGenerationFailure: If no usable keyword set can be produced
        """
        existing = get_keywords(self.conn, route_key, language)
        if existing is not None and not existing.is_empty():
            return existing

        generated = self.generate(route_key, language)
        try:
            save_keywords(self.conn, route_key, language, generated)
        except PersistenceFailure as e:
            raise KeywordGenerationFailure(
                f"Could not store keywords for {route_key}: {e}"
            ) from e

        stored = get_keywords(self.conn, route_key, language)
        if stored is None or stored.is_empty():
            raise KeywordGenerationFailure(
                f"Keywords for {route_key} ({language}) still empty after generation"
            )
        log(f"Keywords generated for {route_key} ({language})")
        return stored

    def generate(self, route_key: str, language: str) -> KeywordSet:
        """Ask the generation service for a keyword set (not stored)."""
        name = self._medicine_name(route_key, language)
        if not name:
            raise KeywordGenerationFailure(
                f"No medicine name found for {route_key}; cannot generate keywords"
            )

        prompt = KEYWORD_PROMPT.format(language=language, name=name)
        try:
            result = self.client.complete(
                prompt, response_format=KEYWORD_RESPONSE_FORMAT, temperature=0
            )
        except GenerationServiceError as e:
            raise KeywordGenerationFailure(f"Keyword generation failed: {e}") from e

        append_safely(
            lambda: self.usage_ledger.append(language, route_key, result.total_tokens),
            f"usage entry for {route_key}",
        )

        try:
            parsed = KeywordResponse.model_validate_json(result.text)
        except ValidationError as e:
            raise KeywordGenerationFailure(
                f"Malformed keyword response for {route_key}: {e.error_count()} error(s)"
            ) from e

        keywords = parsed.to_keyword_set()
        if keywords.is_empty():
            raise KeywordGenerationFailure(f"Keyword response for {route_key} was empty")
        return keywords

    def _medicine_name(self, route_key: str, language: str) -> Optional[str]:
        languages = [language]
        if self.source_language != language:
            languages.append(self.source_language)
        return get_medicine_name(self.conn, route_key, languages)
