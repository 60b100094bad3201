"""
Webhook notifier for feed relay.

Messages are posted as `{"text": ...}` JSON to the channel's notify URL.
Only HTTP 200 counts as delivered; anything else is a DeliveryError that
carries the response body for diagnostics.
"""
from typing import Optional

import httpx
import structlog

from feedrelay.config import NotifyConfig
from feedrelay.exceptions import DeliveryError

# Set up structured logger
logger = structlog.get_logger()


class WebhookNotifier:
    """Posts chat messages to incoming-webhook URLs."""

    def __init__(self, config: NotifyConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the notifier.

        Args:
            config: Notify configuration
            client: HTTP client to use; one is created (and owned) when omitted
        """
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=config.timeout_seconds,
            headers={"User-Agent": config.user_agent},
        )

    async def __aenter__(self) -> "WebhookNotifier":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this notifier created it."""
        if self._owns_client:
            await self.client.aclose()

    async def notify(self, url: str, text: str) -> None:
        """
        Post a message to a webhook.

        Args:
            url: Webhook URL
            text: Message text

        Raises:
            DeliveryError: On a transport failure or a non-200 response
        """
        try:
            response = await self.client.post(
                url,
                json={"text": text},
                timeout=self.config.timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Webhook request failed", error=str(e))
            raise DeliveryError(
                f"error making http request: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        if response.status_code != 200:
            body = response.text
            logger.warning(
                "Webhook rejected message",
                status_code=response.status_code,
                body=body[:500],
            )
            raise DeliveryError(
                f"response status: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=body,
            )

        logger.debug("Webhook accepted message", length=len(text))
