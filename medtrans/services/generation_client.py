"""
HTTP client for the chat-completions generation service.

Every call sends a single system-role message and returns the generated text
together with the token usage reported by the service. Network errors, rate
limits, server errors and malformed bodies are retried a bounded number of
times; authentication and quota errors are fatal.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import Settings, get_config
from ..errors import (
    GenerationFatalError,
    GenerationRetryableError,
    GenerationServiceError,
)
from ..logging_utils import log

MAX_RESPONSE_PREVIEW = 256

# Error codes that will not go away by retrying.
FATAL_CODES = frozenset(
    {
        "invalid_api_key",
        "insufficient_quota",
        "invalid_credentials",
        "unauthorized",
        "payment_required",
    }
)


@dataclass
class GenerationResult:
    """Text produced by one generation call plus its reported token cost."""

    text: str
    total_tokens: int = 0


def classify_http_error(resp: requests.Response) -> Dict[str, Any]:
    """
    Extract status/code/message from an error response and decide retryability.

    Returns:
        Dict with 'status', 'code', 'message', 'retryable'
    """
    status = resp.status_code
    code: Optional[str] = None
    message = ""
    try:
        body = resp.json()
        err = body.get("error") if isinstance(body, dict) else None
        if isinstance(err, dict):
            code = err.get("code") or err.get("type")
            message = err.get("message") or ""
        elif isinstance(err, str):
            message = err
    except ValueError:
        message = (resp.text or "")[:MAX_RESPONSE_PREVIEW]

    if code is None:
        if status == 401:
            code = "unauthorized"
        elif status == 402:
            code = "payment_required"
        elif status == 429:
            code = "rate_limit"
        elif status >= 500:
            code = "server_error"
        else:
            code = f"http_{status}"

    code = str(code)
    if code in FATAL_CODES:
        retryable = False
    else:
        retryable = status == 429 or status >= 500 or status == 408

    return {
        "status": status,
        "code": code,
        "message": message or f"Generation service error {status}",
        "retryable": retryable,
    }


class GenerationClient:
    """
    Thin wrapper over the chat-completions endpoint.

    Thread Safety:
        Holds no mutable state beyond a requests.Session; the pipeline uses a
        single instance from a single thread.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or get_config()
        self.model = self.config.model
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        if not self.config.api_key:
            raise GenerationFatalError("OPENAI_API_KEY not set", code="invalid_api_key")
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    @retry(
        wait=wait_exponential(min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(GenerationRetryableError),
        reraise=True,
    )
    def complete(
        self,
        prompt: str,
        *,
        response_format: Optional[Dict[str, Any]] = None,
        temperature: Optional[float] = None,
    ) -> GenerationResult:
        """
        Send one system prompt and return the generated text.

        Args:
            prompt: Full instruction string (system role)
            response_format: Optional structured-output format
            temperature: Optional sampling temperature

        Returns:
            GenerationResult with stripped text and total token usage

        Raises:
            GenerationRetryableError: Network errors, 408/429/5xx, malformed bodies
            GenerationFatalError: Auth/quota errors
            GenerationServiceError: Other non-retryable HTTP errors
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "system", "content": prompt}],
        }
        if response_format is not None:
            payload["response_format"] = response_format
        if temperature is not None:
            payload["temperature"] = temperature

        headers = self._headers()
        try:
            resp = self.session.post(
                self.config.generation_url,
                headers=headers,
                data=json.dumps(payload),
                timeout=(
                    self.config.connect_timeout_seconds,
                    self.config.request_timeout_seconds,
                ),
            )
        except requests.RequestException as e:
            raise GenerationRetryableError(
                f"Network error: {e}", code="network_error"
            ) from e

        if not resp.ok:
            info = classify_http_error(resp)
            log(
                f"Generation service error: status={info['status']} "
                f"code={info['code']} message={info['message'][:MAX_RESPONSE_PREVIEW]}"
            )
            if info["retryable"]:
                raise GenerationRetryableError(
                    info["message"], code=info["code"], status=info["status"]
                )
            if info["code"] in FATAL_CODES:
                raise GenerationFatalError(
                    info["message"], code=info["code"], status=info["status"]
                )
            raise GenerationServiceError(
                info["message"], code=info["code"], status=info["status"]
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationRetryableError(
                "Malformed response from generation service (invalid JSON)",
                code="invalid_json",
            ) from e

        try:
            content = data["choices"][0]["message"]["content"]
            if not isinstance(content, str):
                raise TypeError(f"content is {type(content).__name__}")
            content = content.strip()
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationRetryableError(
                "Malformed response from generation service (missing content)",
                code="invalid_payload",
            ) from e

        if not content:
            raise GenerationRetryableError(
                "Malformed response from generation service (empty content)",
                code="empty_content",
            )

        usage = data.get("usage")
        total_tokens = 0
        if isinstance(usage, dict):
            try:
                total_tokens = int(usage.get("total_tokens") or 0)
            except (TypeError, ValueError):
                total_tokens = 0

        return GenerationResult(text=content, total_tokens=total_tokens)
