"""
Exception hierarchy for the translation pipeline.

Every per-record failure derives from MedtransError so the orchestrator can
catch them at the record boundary without swallowing programming errors.
"""

from __future__ import annotations

from typing import Optional


class MedtransError(Exception):
    """Base class for pipeline errors."""

    pass


class RouteLookupMiss(MedtransError):
    """Candidate identifier does not resolve to a route key or source record."""

    pass


class SourceIncomplete(MedtransError):
    """Source-language record is missing one or more required fields."""

    pass


class KeywordGenerationFailure(MedtransError):
    """Keyword lookup/generation failed; the record cannot be translated."""

    pass


class FieldTranslationFailure(MedtransError):
    """A field could not be translated or failed format validation."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class PersistenceFailure(MedtransError):
    """Writing the translated record to the database failed."""

    pass


class GenerationServiceError(MedtransError):
    """Generation service error (non-retryable by default)."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status = status
        self.retryable = retryable


class GenerationRetryableError(GenerationServiceError):
    """Retryable service error (e.g., 429, 5xx, transient network, malformed body)."""

    def __init__(
        self, message: str, *, code: Optional[str] = None, status: Optional[int] = None
    ) -> None:
        super().__init__(message, code=code, status=status, retryable=True)


class GenerationFatalError(GenerationServiceError):
    """Fatal service error (e.g., invalid key, insufficient quota)."""

    def __init__(
        self, message: str, *, code: Optional[str] = None, status: Optional[int] = None
    ) -> None:
        super().__init__(message, code=code, status=status, retryable=False)
