"""
Field translation for medicine content records.

One generation call per non-empty field. The prompt carries the complete
shape contract from FIELD_SCHEMA so the model returns strings for string
fields, arrays for array fields and arrays of objects (with protected subkeys
untouched) for structured fields.
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import FieldTranslationFailure, GenerationServiceError
from ..ledger import UsageLedger, append_safely
from ..models.content import FIELD_SCHEMA, FIELDS_BY_NAME, FieldSpec, KeywordSet, ShapeKind
from .generation_client import GenerationClient

SYSTEM_PROMPT = (
    "Translate the given {source} content into {target} (use simple and commonly "
    "understandable words in regular {target} script), preserving natural {target} text flow. "
    "Maintain the structure of the original content.\n\n"
    "STRUCTURE RULES:\n"
    "- If the content is in string, return in string.\n"
    "- If the content is in an array, return in array.\n"
    "- If the content is in array of objects, return in array of objects with the same keys.\n"
    "{protected_rule}"
    "- Keep HTML tags and attributes exactly as they appear.\n\n"
    "Process and translate the following keys if they exist in the input:\n"
    "{shape_contract}\n\n"
    "OUTPUT RULES:\n"
    "- Do not explain any word, heading, or FAQ, and do not alter the meaning.\n"
    "- If a paragraph consists of a single word, translate it directly without adding anything.\n"
    "- Keywords must fit naturally in the translated text without changing the context.\n"
    "- Do not translate this prompt itself.\n"
    "- Do not add any other words like JSON or code fences or template literals before or after any content.\n"
    "- Do not add extra spaces or new lines.\n\n"
    "{keywords}\n\n"
    "Field: {field} ({field_rule})\n"
    "Text to Translate: {text}"
)


def _shape_contract() -> str:
    return "\n".join(spec.shape_instruction() for spec in FIELD_SCHEMA)


def _protected_rule() -> str:
    keys = sorted({key for spec in FIELD_SCHEMA for key in spec.protected_keys})
    if not keys:
        return ""
    quoted = ", ".join(f"'{k}'" for k in keys)
    return f"- Never translate the value of the {quoted} key; copy it exactly.\n"


def _display_language(language: str) -> str:
    return language.replace("-", " ").replace("_", " ").title()


def is_empty_value(value: Any) -> bool:
    """Null, empty string and empty containers are passed through untranslated."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def encode_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def decode_output(source: Any, text: str) -> Any:
    """
    Turn the raw model output back into the source's kind.

    String sources keep the text as-is. Structured sources are JSON-decoded;
    if decoding fails the raw text is returned and format validation rejects it.
    """
    if isinstance(source, str):
        return text
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text


class Translator:
    """Translate individual content fields into one target language."""

    def __init__(
        self,
        client: GenerationClient,
        usage_ledger: UsageLedger,
        target_language: str,
        source_language: str = "english",
    ):
        self.client = client
        self.usage_ledger = usage_ledger
        self.target_language = target_language
        self.source_language = source_language
        self.usage_category = f"{target_language}-content"

    def build_prompt(self, spec: FieldSpec, text: str, keywords: KeywordSet) -> str:
        return SYSTEM_PROMPT.format(
            source=_display_language(self.source_language),
            target=_display_language(self.target_language),
            protected_rule=_protected_rule(),
            shape_contract=_shape_contract(),
            keywords=keywords.prompt_hint(),
            field=spec.name,
            field_rule=spec.shape_instruction(),
            text=text,
        )

    def translate(
        self,
        field: str,
        source_value: Any,
        keywords: KeywordSet,
        route_key: str,
    ) -> Any:
        """
        Translate one field value.

        Args:
            field: Field name (must be declared in FIELD_SCHEMA)
            source_value: Source-language value (str, list, or dict)
            keywords: Keyword hints for the record
            route_key: Record route key (for usage accounting)

        Returns:
            Translated value in the source's kind, or the empty source value

        Raises:
            FieldTranslationFailure: If the generation service call fails
        """
        if is_empty_value(source_value):
            return source_value

        spec = self._spec(field, source_value)
        prompt = self.build_prompt(spec, encode_value(source_value), keywords)
        try:
            result = self.client.complete(prompt)
        except GenerationServiceError as e:
            raise FieldTranslationFailure(field, f"generation failed: {e}") from e

        append_safely(
            lambda: self.usage_ledger.append(
                self.usage_category, route_key, result.total_tokens
            ),
            f"usage entry for {route_key}",
        )
        return decode_output(source_value, result.text)

    @staticmethod
    def _spec(field: str, value: Any) -> FieldSpec:
        spec = FIELDS_BY_NAME.get(field)
        if spec is not None:
            return spec
        # Unknown keys keep their original format.
        if isinstance(value, str):
            return FieldSpec(field, ShapeKind.SCALAR_STRING)
        if isinstance(value, list) and any(isinstance(v, dict) for v in value):
            return FieldSpec(field, ShapeKind.LIST_OF_OBJECTS)
        return FieldSpec(field, ShapeKind.LIST_OF_STRINGS)
