"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Header, Request

from portim.core.config import settings
from portim.models import AuthOutcome
from portim.services.auth import Authenticator, IdentityProvider, get_identity_provider
from portim.services.clients import ClientResolver
from portim.services.credentials import CredentialService, get_credential_service
from portim.services.http import WebhookClient, get_webhook_client
from portim.services.interfaces import InterfaceRegistry
from portim.services.messages import MessageDeliveryPipeline
from portim.services.sessions import SessionRouter
from portim.storage.base import StorageBackend
from portim.storage.memory import InMemoryStorage


# Storage singleton
_storage: StorageBackend | None = None


def get_storage() -> StorageBackend:
    """Get the storage backend singleton.

    Uses in-memory storage unless Firestore is configured.
    """
    global _storage
    if _storage is None:
        if settings.storage_backend == "firestore" and settings.gcp_project_id:
            from portim.storage.firestore import FirestoreStorage
            _storage = FirestoreStorage(project_id=settings.gcp_project_id)
        else:
            _storage = InMemoryStorage()
    return _storage


# Type aliases for cleaner dependency injection
StorageDep = Annotated[StorageBackend, Depends(get_storage)]
CredentialsDep = Annotated[CredentialService, Depends(get_credential_service)]
HttpDep = Annotated[WebhookClient, Depends(get_webhook_client)]
IdentityDep = Annotated[IdentityProvider, Depends(get_identity_provider)]


def get_registry(storage: StorageDep, credentials: CredentialsDep) -> InterfaceRegistry:
    """Get interface registry with storage and credential dependencies."""
    return InterfaceRegistry(storage, credentials)


RegistryDep = Annotated[InterfaceRegistry, Depends(get_registry)]


def get_client_resolver(storage: StorageDep) -> ClientResolver:
    return ClientResolver(storage)


ClientsDep = Annotated[ClientResolver, Depends(get_client_resolver)]


def get_session_router(
    storage: StorageDep,
    registry: RegistryDep,
    http: HttpDep,
) -> SessionRouter:
    return SessionRouter(storage, registry, http)


RouterDep = Annotated[SessionRouter, Depends(get_session_router)]


def get_pipeline(
    storage: StorageDep,
    registry: RegistryDep,
    clients: ClientsDep,
    sessions: RouterDep,
    http: HttpDep,
) -> MessageDeliveryPipeline:
    return MessageDeliveryPipeline(storage, registry, clients, sessions, http)


PipelineDep = Annotated[MessageDeliveryPipeline, Depends(get_pipeline)]


def get_authenticator(registry: RegistryDep, identity: IdentityDep) -> Authenticator:
    return Authenticator(registry, identity)


AuthenticatorDep = Annotated[Authenticator, Depends(get_authenticator)]


async def authorize(
    project_id: str,
    request: Request,
    authenticator: AuthenticatorDep,
    authorization: Annotated[str | None, Header()] = None,
) -> AuthOutcome:
    """Authenticate the caller and scope it to the project in the path."""
    client_ip = request.client.host if request.client else None
    principal = await authenticator.authenticate(authorization, client_ip=client_ip)
    authenticator.authorize_project(principal, project_id)
    return principal


PrincipalDep = Annotated[AuthOutcome, Depends(authorize)]
