"""Client model - end users identified by an external id."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class Client(BaseModel):
    """End-user identity scoped to a project."""

    id: str = Field(..., description="Unique client identifier")
    project_id: str
    external_id: str = Field(..., description="Identifier extracted from inbound payloads")
    metadata: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
