"""HTTP client for the Mistral chat-completions and OCR APIs.

Uses httpx with configurable timeouts. OCR calls go through tenacity with
exponential backoff on rate limits, 5xx cold starts and connection errors;
chat calls are single-shot and let the caller decide what to do on failure.
"""

import logging
import re

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import settings
from errors import ConfigurationError, InvalidResponseError, ProviderUnavailable, TransportError

logger = logging.getLogger(__name__)

API_KEY_MIN_LENGTH = 20
_PLACEHOLDER_KEY = re.compile(r"placeholder|api[-_]key|^your[-_]|^replace", re.IGNORECASE)

RETRYABLE_STATUS = frozenset({429, 502, 503, 504})


def validate_api_key(api_key: str | None) -> str:
    """Reject blank, short or obviously placeholder keys before any request is sent."""
    key = (api_key or "").strip()
    if not key:
        raise ConfigurationError("MISTRAL_API_KEY is not set")
    if len(key) < API_KEY_MIN_LENGTH:
        raise ConfigurationError(f"Mistral API key must be at least {API_KEY_MIN_LENGTH} characters long")
    if _PLACEHOLDER_KEY.search(key):
        raise ConfigurationError("Mistral API key appears to be a placeholder value")
    return key


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        detail = body.get("message") or body.get("detail") or body.get("error")
        if detail:
            return str(detail)
    return f"HTTP {resp.status_code}"


def send_json(
    client: httpx.Client,
    path: str,
    payload: dict,
    provider: str,
    timeout: httpx.Timeout | None = None,
) -> dict:
    """POST *payload* and map every failure onto the scanner error taxonomy."""
    kwargs = {"timeout": timeout} if timeout is not None else {}
    try:
        resp = client.post(path, json=payload, **kwargs)
    except (httpx.ConnectError, httpx.ConnectTimeout) as e:
        logger.warning("%s connection failed: %s", provider, e)
        raise ProviderUnavailable(f"Cannot connect to {provider}: {e}") from e
    except httpx.TimeoutException as e:
        logger.warning("%s request timed out: %s", provider, e)
        raise ProviderUnavailable(f"{provider} request timed out: {e}") from e
    except httpx.HTTPError as e:
        logger.error("%s HTTP error: %s", provider, e)
        raise TransportError(f"{provider} HTTP error: {e}") from e

    if resp.status_code in RETRYABLE_STATUS:
        detail = _error_detail(resp)
        logger.warning("%s returned %d: %s", provider, resp.status_code, detail)
        raise ProviderUnavailable(f"{provider} unavailable ({resp.status_code}): {detail}")

    if resp.status_code >= 400:
        detail = _error_detail(resp)
        logger.error("%s error %d: %s", provider, resp.status_code, detail)
        raise TransportError(f"{provider} error ({resp.status_code}): {detail}")

    try:
        data = resp.json()
    except ValueError as e:
        raise InvalidResponseError(f"{provider} returned a non-JSON body") from e
    if not isinstance(data, dict):
        raise InvalidResponseError(f"{provider} returned an unexpected payload")
    return data


class MistralClient:
    """HTTP client for Mistral with retry and backoff on OCR."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        chat_model: str | None = None,
        ocr_model: str | None = None,
        timeout: float | None = None,
        ocr_timeout: float | None = None,
        connect_timeout: float | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
        retry_backoff: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        key = validate_api_key(api_key if api_key is not None else settings.MISTRAL_API_KEY)

        self.chat_model = chat_model or settings.MISTRAL_CHAT_MODEL
        self.ocr_model = ocr_model or settings.MISTRAL_OCR_MODEL
        self._retry_attempts = retry_attempts if retry_attempts is not None else settings.OCR_RETRY_ATTEMPTS
        self._retry_delay = retry_delay if retry_delay is not None else settings.OCR_RETRY_DELAY
        self._retry_backoff = retry_backoff if retry_backoff is not None else settings.OCR_RETRY_BACKOFF

        read_timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.CONNECT_TIMEOUT_SECONDS
        self._ocr_timeout = ocr_timeout if ocr_timeout is not None else settings.OCR_TIMEOUT_SECONDS

        self._client = httpx.Client(
            base_url=(base_url or settings.MISTRAL_BASE_URL).rstrip("/"),
            headers={"Authorization": f"Bearer {key}"},
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout),
                write=30.0,
                pool=30.0,
            ),
            transport=transport,
        )

    def close(self):
        self._client.close()

    def chat(self, messages: list[dict], response_format: dict | None = None) -> dict:
        """Run one chat completion and return the raw response body.

        Raises ProviderUnavailable, TransportError or InvalidResponseError.
        """
        payload = {
            "model": self.chat_model,
            "messages": messages,
            "temperature": 0,
        }
        if response_format is not None:
            payload["response_format"] = response_format
        return send_json(self._client, "/v1/chat/completions", payload, "Mistral chat")

    def ocr(self, document: dict, include_image_base64: bool = False) -> dict:
        """Run OCR on one ``image_url`` or ``document_url`` chunk."""
        payload = {
            "model": self.ocr_model,
            "document": document,
            "include_image_base64": include_image_base64,
        }
        return self._ocr_with_retry(payload)

    def _ocr_with_retry(self, payload: dict) -> dict:
        @retry(
            retry=retry_if_exception_type(ProviderUnavailable),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(
                multiplier=self._retry_delay,
                exp_base=self._retry_backoff,
                max=30,
            ),
            reraise=True,
            before_sleep=lambda state: logger.warning(
                "Mistral OCR unavailable, retrying in %.1fs (attempt %d/%d)",
                state.next_action.sleep,  # type: ignore[union-attr]
                state.attempt_number,
                self._retry_attempts,
            ),
        )
        def _do_ocr() -> dict:
            return self._send_ocr(payload)

        return _do_ocr()

    def _send_ocr(self, payload: dict) -> dict:
        timeout = httpx.Timeout(self._ocr_timeout, connect=self._client.timeout.connect)
        return send_json(self._client, "/v1/ocr", payload, "Mistral OCR", timeout=timeout)
