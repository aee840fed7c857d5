"""Interface models - registered endpoints taking part in conversations."""

from datetime import datetime

from pydantic import BaseModel, Field


class Interface(BaseModel):
    """A channel, bot or agent console that sends and receives messages.

    ``secret_token`` holds the AES ciphertext of the interface secret while
    stored. The registry replaces it with the plaintext when an authorized
    caller reads the interface back.
    """

    id: str = Field(..., description="Unique interface identifier")
    name: str
    project_id: str = Field(..., description="Project this interface belongs to")

    # Routing
    event_endpoint: str = Field(..., description="URL messages are forwarded to")
    control_endpoint: str | None = Field(
        default=None, description="URL notified when control is passed to this interface"
    )
    control: str | None = Field(
        default=None, description="Default target interface for new sessions"
    )
    external_id_field: str = Field(
        ..., description="Path expression locating the client id in inbound payloads"
    )
    allowed_ips: list[str] = Field(default_factory=list)

    # Credentials
    secret_hash: str = ""
    secret_salt: str = ""
    secret_token: str | None = None
    iv_token: str | None = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def has_control(self) -> bool:
        return bool(self.control)
