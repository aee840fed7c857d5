"""Session model - routing state for one conversation."""

from datetime import datetime

from pydantic import BaseModel, Field


class Session(BaseModel):
    """Binds one client to a source/target interface pair.

    ``source`` is the interface that received the first message and never
    changes. ``target`` is the interface currently responsible for
    answering and only moves through pass-control.
    """

    id: str = Field(..., description="Unique session identifier")
    source: str = Field(..., description="Interface that opened the session")
    target: str = Field(..., description="Interface currently in control")
    client_id: str

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def other_side(self, sender: str) -> str:
        """Get the interface on the opposite side of ``sender``."""
        if self.source == sender:
            return self.target
        return self.source
