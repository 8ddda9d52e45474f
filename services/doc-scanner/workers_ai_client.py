"""HTTP client for Cloudflare Workers AI text generation."""

import logging

import httpx

from config import settings
from errors import ConfigurationError, InvalidResponseError, TransportError
from mistral_client import send_json

logger = logging.getLogger(__name__)


class WorkersAIClient:
    """Calls ``/accounts/{id}/ai/run/{model}`` on the Cloudflare REST API."""

    def __init__(
        self,
        account_id: str | None = None,
        api_token: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.account_id = account_id if account_id is not None else settings.CLOUDFLARE_ACCOUNT_ID
        token = api_token if api_token is not None else settings.CLOUDFLARE_API_TOKEN
        if not self.account_id or not token:
            raise ConfigurationError("CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN must be set")

        self.model = model or settings.CLOUDFLARE_MODEL
        read_timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.CONNECT_TIMEOUT_SECONDS

        self._client = httpx.Client(
            base_url=(base_url or settings.CLOUDFLARE_BASE_URL).rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
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

    def run(self, inputs: dict) -> dict:
        """Run the configured model and return the ``result`` object.

        Raises ProviderUnavailable, TransportError or InvalidResponseError.
        """
        path = f"/accounts/{self.account_id}/ai/run/{self.model}"
        body = send_json(self._client, path, inputs, "Workers AI")

        if body.get("success") is False:
            errors = body.get("errors") or []
            detail = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            logger.error("Workers AI reported failure: %s", detail or "unknown error")
            raise TransportError(f"Workers AI error: {detail or 'unknown error'}")

        result = body.get("result")
        if result is None:
            raise InvalidResponseError("Workers AI response has no result")
        if not isinstance(result, dict):
            return {"response": result}
        return result
