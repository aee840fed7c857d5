"""Identity provider boundary - bearer token verification."""

from abc import ABC, abstractmethod

import structlog
from jose import JWTError, jwt

from portim.core.config import settings
from portim.core.exceptions import ConfigurationError
from portim.models import UserPrincipal

logger = structlog.get_logger()


class IdentityProvider(ABC):
    """Verifies bearer tokens issued by the external identity provider."""

    @abstractmethod
    async def verify(self, token: str) -> UserPrincipal | None:
        """Get the user behind ``token``, None when it does not verify."""
        ...


class JWTIdentityProvider(IdentityProvider):
    """Verifies signed JWTs carrying ``sub`` and a project membership claim."""

    def __init__(
        self,
        secret: str | None = None,
        algorithm: str | None = None,
        projects_claim: str | None = None,
    ) -> None:
        self.secret = secret if secret is not None else settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.projects_claim = projects_claim or settings.jwt_projects_claim

    async def verify(self, token: str) -> UserPrincipal | None:
        if not self.secret:
            raise ConfigurationError("JWT secret is not defined")

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning("Bearer token rejected", error=str(e))
            return None

        user_id = payload.get("sub")
        if not user_id:
            logger.warning("Bearer token missing subject")
            return None

        projects = payload.get(self.projects_claim) or []
        if not isinstance(projects, list):
            projects = [projects]

        return UserPrincipal(user_id=str(user_id), projects=[str(p) for p in projects])


# Singleton instance
_identity_provider: IdentityProvider | None = None


def get_identity_provider() -> IdentityProvider:
    """Get or create the identity provider singleton."""
    global _identity_provider
    if _identity_provider is None:
        _identity_provider = JWTIdentityProvider()
    return _identity_provider
