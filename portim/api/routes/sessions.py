"""Session endpoints - creation, lookup and pass-control."""

from typing import Any

import structlog
from fastapi import APIRouter, status
from pydantic import BaseModel

from portim.api.dependencies import PrincipalDep, RegistryDep, RouterDep
from portim.core.exceptions import NotFoundError
from portim.models import Session
from portim.services.interfaces import InterfaceRegistry
from portim.services.sessions import SessionRouter

logger = structlog.get_logger()

router = APIRouter(
    prefix="/projects/{project_id}/interfaces/{interface_id}/sessions",
    tags=["Sessions"],
)


# ==================== Pydantic Schemas ====================


class SessionCreate(BaseModel):
    """Schema for creating a session."""

    client_id: str
    target: str | None = None


class PassControl(BaseModel):
    """Schema for handing a session over to another interface."""

    target: str
    metadata: dict[str, Any] | None = None


# ==================== Helpers ====================


async def check_interface(
    registry: InterfaceRegistry,
    project_id: str,
    interface_id: str,
) -> None:
    """Ensure the path interface exists within the path project."""
    interface = await registry.get_interface(interface_id)
    if interface.project_id != project_id:
        raise NotFoundError("interface", interface_id)


async def get_interface_session(
    sessions: SessionRouter,
    registry: InterfaceRegistry,
    project_id: str,
    interface_id: str,
    session_id: str,
) -> Session:
    """Get a session addressed through an interface of the path project."""
    await check_interface(registry, project_id, interface_id)
    return await sessions.get_project_session(session_id, project_id)


# ==================== Session Endpoints ====================


@router.post("", response_model=Session, status_code=status.HTTP_201_CREATED)
async def create_session(
    project_id: str,
    interface_id: str,
    data: SessionCreate,
    registry: RegistryDep,
    sessions: RouterDep,
    principal: PrincipalDep,
) -> Session:
    """Create a session opened through the path interface."""
    logger.info("Creating session", interface_id=interface_id, client_id=data.client_id)
    await check_interface(registry, project_id, interface_id)

    return await sessions.create_session(data.client_id, interface_id, data.target)


@router.get("/{session_id}", response_model=Session)
async def get_session(
    project_id: str,
    interface_id: str,
    session_id: str,
    registry: RegistryDep,
    sessions: RouterDep,
    principal: PrincipalDep,
) -> Session:
    """Get a session."""
    return await get_interface_session(sessions, registry, project_id, interface_id, session_id)


@router.post("/{session_id}/passControl", response_model=Session)
async def pass_control(
    project_id: str,
    interface_id: str,
    session_id: str,
    data: PassControl,
    registry: RegistryDep,
    sessions: RouterDep,
    principal: PrincipalDep,
) -> Session:
    """Hand the session to a new target interface."""
    await get_interface_session(sessions, registry, project_id, interface_id, session_id)

    return await sessions.pass_control(session_id, data.target, data.metadata)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    project_id: str,
    interface_id: str,
    session_id: str,
    registry: RegistryDep,
    sessions: RouterDep,
    principal: PrincipalDep,
) -> None:
    """Delete a session."""
    await get_interface_session(sessions, registry, project_id, interface_id, session_id)

    await sessions.delete_session(session_id)
