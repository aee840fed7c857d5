"""Outbound HTTP."""

from portim.services.http.client import WebhookClient, get_webhook_client

__all__ = ["WebhookClient", "get_webhook_client"]
