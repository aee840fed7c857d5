"""Message delivery."""

from portim.services.messages.pipeline import (
    MessageDeliveryPipeline,
    fingerprint,
    parse_payload,
    resolve_destination,
)

__all__ = ["MessageDeliveryPipeline", "fingerprint", "parse_payload", "resolve_destination"]
