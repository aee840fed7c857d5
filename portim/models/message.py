"""Message models - one directed delivery attempt."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class MessageStatus(str, Enum):
    """Delivery status of a message."""

    PENDING = "pending"  # Persisted, not forwarded yet
    DELIVERED = "delivered"  # Destination answered 2xx
    ERROR = "error"  # Forwarding failed


class Message(BaseModel):
    """A message routed through a session.

    ``content`` is a SHA-256 fingerprint of the body, never the body itself.
    """

    id: str = Field(..., description="Unique message identifier")
    session_id: str = Field(..., description="Parent session ID")
    sender: str = Field(..., description="Interface that produced the message")
    content: str = Field(..., description="Hex digest of the serialized body")

    status: MessageStatus = MessageStatus.PENDING
    error: str | None = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
