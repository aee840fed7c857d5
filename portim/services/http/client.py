"""Outbound HTTP client for webhook deliveries and control notifications."""

from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from portim.core.config import settings
from portim.core.exceptions import DeliveryError

logger = structlog.get_logger()


def _is_retryable(error: BaseException) -> bool:
    """Retry network failures and 5xx answers, never 4xx."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


class WebhookClient:
    """POSTs payloads to interface endpoints.

    Every call has a fixed timeout. Transport errors and 5xx responses are
    retried with an incrementing backoff (backoff, 2*backoff, ...); any
    other non-2xx answer fails at once. Failures raise ``DeliveryError``.
    """

    def __init__(
        self,
        timeout: float | None = None,
        retry_attempts: int | None = None,
        retry_backoff: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.retry_attempts = (
            retry_attempts if retry_attempts is not None else settings.http_retry_attempts
        )
        self.retry_backoff = (
            retry_backoff if retry_backoff is not None else settings.http_retry_backoff_seconds
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def post(
        self,
        url: str,
        content: bytes | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST to ``url`` and return the 2xx response.

        Raises:
            DeliveryError: when no 2xx answer was obtained
        """
        client = self._get_client()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts + 1),
            wait=wait_incrementing(start=self.retry_backoff, increment=self.retry_backoff),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info(
                            "Retrying HTTP request",
                            url=url,
                            attempt=attempt.retry_state.attempt_number,
                        )
                    response = await client.post(url, content=content, json=json, headers=headers)
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.info("HTTP error response", url=url, status_code=status_code)
            raise DeliveryError(
                e.response.reason_phrase or f"HTTP {status_code}",
                url=url,
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.info("HTTP request failed", url=url, error=str(e))
            raise DeliveryError(str(e) or "no response", url=url) from e

        return response

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Singleton instance
_webhook_client: WebhookClient | None = None


def get_webhook_client() -> WebhookClient:
    """Get or create the webhook client singleton."""
    global _webhook_client
    if _webhook_client is None:
        _webhook_client = WebhookClient()
    return _webhook_client
