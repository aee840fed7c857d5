"""Client resolver - maps inbound payloads to persisted clients."""

from typing import Any
from uuid import uuid4

import structlog

from portim.core.exceptions import ConflictError, NotFoundError
from portim.models import Client
from portim.services.clients.path import resolve_path
from portim.storage.base import StorageBackend

logger = structlog.get_logger()


class ClientResolver:
    """Finds or creates the client behind an inbound message.

    Handles:
    - External id extraction through an interface's path expression
    - Create-on-miss lookup by (project, external id)
    - Client CRUD for operators
    """

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    def extract_external_id(self, payload: Any, path: str) -> str | None:
        """Extract the external id; None when the payload does not carry it."""
        return resolve_path(payload, path)

    async def get_or_create(self, project_id: str, external_id: str) -> Client:
        """Get the client holding ``external_id`` or create one.

        A concurrent first contact may win the uniqueness check between our
        lookup and our insert; in that case the winner is returned.
        """
        client = await self.storage.get_client_by_external_id(project_id, external_id)
        if client:
            return client

        logger.debug("No client found, creating new one", external_id=external_id)
        try:
            return await self.create_client(project_id, external_id)
        except ConflictError:
            client = await self.storage.get_client_by_external_id(project_id, external_id)
            if client is None:
                raise
            logger.debug("Lost client creation race", client_id=client.id)
            return client

    async def resolve(self, project_id: str, payload: Any, path: str) -> Client | None:
        """Resolve the client of a payload, None when no external id is found."""
        external_id = self.extract_external_id(payload, path)
        if external_id is None:
            return None
        return await self.get_or_create(project_id, external_id)

    # ==================== CRUD ====================

    async def create_client(
        self,
        project_id: str,
        external_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> Client:
        client = Client(
            id=str(uuid4()),
            project_id=project_id,
            external_id=external_id,
            metadata=metadata or {},
        )
        await self.storage.save_client(client)

        logger.info(
            "Created client",
            client_id=client.id,
            project_id=project_id,
            external_id=external_id,
        )
        return client

    async def get_client(self, client_id: str) -> Client:
        client = await self.storage.get_client(client_id)
        if not client:
            raise NotFoundError("client", client_id)
        return client

    async def update_client(self, client_id: str, metadata: dict[str, Any]) -> Client:
        """Shallow-merge ``metadata`` into the client's metadata."""
        client = await self.get_client(client_id)
        client.metadata = {**client.metadata, **metadata}
        await self.storage.save_client(client)

        logger.debug("Updated client", client_id=client_id)
        return client

    async def delete_client(self, client_id: str) -> None:
        if not await self.storage.delete_client(client_id):
            raise NotFoundError("client", client_id)
        logger.debug("Deleted client", client_id=client_id)
