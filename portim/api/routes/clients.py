"""Client endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from portim.api.dependencies import ClientsDep, PrincipalDep
from portim.core.exceptions import NotFoundError
from portim.models import Client
from portim.services.clients import ClientResolver

logger = structlog.get_logger()

router = APIRouter(prefix="/projects/{project_id}/clients", tags=["Clients"])


class ClientCreate(BaseModel):
    """Schema for creating a client."""

    external_id: str = Field(..., min_length=1)
    metadata: dict[str, Any] | None = None


class ClientUpdate(BaseModel):
    """Schema for merging client metadata."""

    metadata: dict[str, Any]


async def _get_project_client(
    clients: ClientResolver,
    project_id: str,
    client_id: str,
) -> Client:
    client = await clients.get_client(client_id)
    if client.project_id != project_id:
        raise NotFoundError("client", client_id)
    return client


@router.post("", response_model=Client, status_code=status.HTTP_201_CREATED)
async def create_client(
    project_id: str,
    data: ClientCreate,
    clients: ClientsDep,
    principal: PrincipalDep,
) -> Client:
    """Create a client."""
    return await clients.create_client(project_id, data.external_id, data.metadata)


@router.get("/{client_id}", response_model=Client)
async def get_client(
    project_id: str,
    client_id: str,
    clients: ClientsDep,
    principal: PrincipalDep,
) -> Client:
    """Get a client."""
    return await _get_project_client(clients, project_id, client_id)


@router.patch("/{client_id}", response_model=Client)
async def update_client(
    project_id: str,
    client_id: str,
    data: ClientUpdate,
    clients: ClientsDep,
    principal: PrincipalDep,
) -> Client:
    """Merge metadata into a client."""
    await _get_project_client(clients, project_id, client_id)
    return await clients.update_client(client_id, data.metadata)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    project_id: str,
    client_id: str,
    clients: ClientsDep,
    principal: PrincipalDep,
) -> None:
    """Delete a client."""
    await _get_project_client(clients, project_id, client_id)
    await clients.delete_client(client_id)
