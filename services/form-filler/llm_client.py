"""HTTP client for the language-model extraction service (OpenAI Responses API).

Uses httpx with explicit timeouts. Sends exactly one request unless
EXTRACTION_RETRY_ATTEMPTS is raised, in which case tenacity retries transient
failures (connection errors, timeouts, 429, 5xx) with exponential backoff.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import settings
from errors import ServiceError
from parsing import find_output_text, parse_answer

logger = logging.getLogger(__name__)


class TransientServiceError(ServiceError):
    """Extraction service failure that may succeed on retry."""


class ExtractionClient:
    """Single-call prompt-in, JSON-object-out client."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
        retry_backoff: float | None = None,
    ):
        api_key = api_key or settings.OPENAI_API_KEY
        if not api_key:
            raise ValueError("OPENAI_API_KEY is not configured")

        self.model = model or settings.OPENAI_MODEL
        self._base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self._retry_attempts = retry_attempts if retry_attempts is not None else settings.EXTRACTION_RETRY_ATTEMPTS
        self._retry_delay = retry_delay if retry_delay is not None else settings.EXTRACTION_RETRY_DELAY
        self._retry_backoff = retry_backoff if retry_backoff is not None else settings.EXTRACTION_RETRY_BACKOFF

        read_timeout = timeout if timeout is not None else settings.EXTRACTION_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.EXTRACTION_CONNECT_TIMEOUT

        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout),
                write=30.0,
                pool=30.0,
            ),
        )

    def close(self):
        self._client.close()

    def extract(self, prompt: str) -> dict[str, Any]:
        """Send the prompt and return the parsed JSON object answer.

        Raises ServiceError (transport/HTTP), EmptyOutput (no answer text)
        or InvalidJSON (answer is not a JSON object).
        """
        envelope = self.complete(prompt)
        text = find_output_text(envelope)
        logger.info("Extraction answer received: %d chars", len(text))
        return parse_answer(text)

    def complete(self, prompt: str) -> Any:
        """Send one Responses API request and return the decoded envelope."""
        payload = {
            "model": self.model,
            "input": prompt,
            "temperature": 0,
            "text": {"format": {"type": "json_object"}},
        }
        return self._complete_with_retry(payload)

    def _complete_with_retry(self, payload: dict) -> Any:
        """Retry wrapper, configured dynamically based on settings."""

        @retry(
            retry=retry_if_exception_type(TransientServiceError),
            stop=stop_after_attempt(max(self._retry_attempts, 1)),
            wait=wait_exponential(
                multiplier=self._retry_delay,
                exp_base=self._retry_backoff,
                max=60,
            ),
            reraise=True,
            before_sleep=lambda state: logger.warning(
                "Extraction service unavailable, retrying in %.1fs (attempt %d/%d)",
                state.next_action.sleep,  # type: ignore[union-attr]
                state.attempt_number,
                self._retry_attempts,
            ),
        )
        def _do_complete() -> Any:
            return self._send(payload)

        return _do_complete()

    def _send(self, payload: dict) -> Any:
        """Send a single request to the extraction service."""
        logger.info("Calling extraction service: model=%s prompt=%d chars", self.model, len(payload["input"]))
        try:
            resp = self._client.post("/responses", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.warning("Extraction service connection failed: %s", e)
            raise TransientServiceError(f"Cannot connect to extraction service: {e}") from e
        except httpx.ReadTimeout as e:
            logger.warning("Extraction service read timeout: %s", e)
            raise TransientServiceError(f"Extraction service read timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Extraction service HTTP error: %s", e)
            raise ServiceError(f"Extraction service HTTP error: {e}") from e

        if resp.status_code == 429 or resp.status_code >= 500:
            detail = _error_detail(resp)
            logger.warning("Extraction service returned %d: %s", resp.status_code, detail)
            raise TransientServiceError(detail)

        if resp.status_code != 200:
            detail = _error_detail(resp)
            logger.error("Extraction service error %d: %s", resp.status_code, detail)
            raise ServiceError(detail)

        try:
            return resp.json()
        except ValueError as e:
            raise ServiceError("Extraction service returned a non-JSON body") from e

    def health(self) -> dict:
        """Report configuration only; the service has no cheap health probe."""
        return {"model": self.model, "base_url": self._base_url}


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"HTTP {resp.status_code}"
