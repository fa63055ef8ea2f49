"""
Meta title/description generation for translated records.

The description is produced by the generation service as a structured
``{"meta_description": ...}`` object; the title is assembled locally from the
target and source names.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ValidationError

from ..db_utils import get_medicine_name, update_meta
from ..errors import GenerationServiceError, MedtransError
from ..ledger import UsageLedger, append_safely
from ..logging_utils import log
from .generation_client import GenerationClient

META_PROMPT = (
    "Create a meta description in {language} (max 150-160 characters) for the "
    "medicine {name}. Use simple and clear {language}. Briefly mention:\n"
    "1. its main medical use,\n"
    "2. key benefits,\n"
    "3. important precautions.\n"
    "Make it suitable for {language}-speaking users searching for medicine information online."
)

META_RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {
        "name": "meta",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {"meta_description": {"type": "string"}},
            "required": ["meta_description"],
            "additionalProperties": False,
        },
    },
}


class MetaResponse(BaseModel):
    meta_description: str


def build_meta_title(target_name: str, source_name: str, language: str) -> str:
    return f"{target_name} ({source_name} uses in {language.title()})"


class MetaGenerator:
    """Generate and store meta title/description for one target language."""

    def __init__(
        self,
        conn,
        client: GenerationClient,
        usage_ledger: UsageLedger,
        language: str,
        source_language: str = "english",
    ):
        self.conn = conn
        self.client = client
        self.usage_ledger = usage_ledger
        self.language = language
        self.source_language = source_language

    def generate_meta_description(self, name: str) -> Optional[str]:
        """Return a generated description, or None if the service fails."""
        if not name:
            raise ValueError("Medicine name is required")
        prompt = META_PROMPT.format(language=self.language.title(), name=name)
        try:
            result = self.client.complete(
                prompt, response_format=META_RESPONSE_FORMAT, temperature=0.5
            )
        except GenerationServiceError as e:
            log(f"Meta description generation failed for {name}: {e}")
            return None

        append_safely(
            lambda: self.usage_ledger.append(
                f"{self.language}-meta-desc", name, result.total_tokens
            ),
            f"usage entry for {name}",
        )
        try:
            description = MetaResponse.model_validate_json(result.text).meta_description
        except ValidationError as e:
            log(f"Malformed meta description response for {name}: {e.error_count()} error(s)")
            return None
        return description.strip() or None

    def process(self, route_key: str) -> bool:
        """
        Generate and store meta fields for a route key.

        Returns:
            True if the row was updated
        """
        target_name = get_medicine_name(self.conn, route_key, [self.language])
        source_name = get_medicine_name(self.conn, route_key, [self.source_language])
        if not target_name or not source_name:
            raise MedtransError(f"No {self.language}/{self.source_language} name for {route_key}")

        description = self.generate_meta_description(target_name)
        if not description:
            return False
        title = build_meta_title(target_name, source_name, self.language)
        return update_meta(self.conn, route_key, self.language, title, description)
