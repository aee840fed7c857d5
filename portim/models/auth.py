"""Authentication outcomes."""

from typing import Literal

from pydantic import BaseModel, Field


class UserPrincipal(BaseModel):
    """A user verified by the identity provider."""

    kind: Literal["user"] = "user"
    user_id: str
    projects: list[str] = Field(default_factory=list)

    def can_access(self, project_id: str) -> bool:
        return project_id in self.projects


class InterfacePrincipal(BaseModel):
    """An interface authenticated with its shared secret."""

    kind: Literal["interface"] = "interface"
    interface_id: str
    project_id: str

    def can_access(self, project_id: str) -> bool:
        return project_id == self.project_id


# Tagged by ``kind``
AuthOutcome = UserPrincipal | InterfacePrincipal
