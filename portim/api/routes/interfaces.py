"""Interface endpoints - registration, updates and secret rotation."""

from datetime import datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, status
from pydantic import AfterValidator, BaseModel, Field

from portim.api.dependencies import PrincipalDep, RegistryDep
from portim.core.config import settings
from portim.core.exceptions import NotFoundError
from portim.models import AuthOutcome, Interface, InterfacePrincipal
from portim.services.clients.path import is_valid_path
from portim.services.interfaces import InterfaceRegistry

logger = structlog.get_logger()

router = APIRouter(prefix="/projects/{project_id}/interfaces", tags=["Interfaces"])


# ==================== Pydantic Schemas ====================


def _check_endpoint(url: str) -> str:
    if not url.startswith(("http://", "https://")):
        raise ValueError("The URL must be an http(s) URL")
    if settings.require_https_endpoints and not url.startswith("https://"):
        raise ValueError("The URL must starts with 'https'")
    return url


def _check_path(path: str) -> str:
    if not is_valid_path(path):
        raise ValueError("ExternalId path is invalid")
    return path


EndpointUrl = Annotated[str, AfterValidator(_check_endpoint)]
PathExpression = Annotated[str, AfterValidator(_check_path)]


class InterfaceCreate(BaseModel):
    """Schema for creating an interface."""

    name: str = Field(..., min_length=3)
    event_endpoint: EndpointUrl
    control_endpoint: EndpointUrl | None = None
    external_id_field: PathExpression
    control: str | None = None
    allowed_ips: list[str] = Field(default_factory=list)


class InterfaceUpdate(BaseModel):
    """Schema for updating an interface. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=3)
    event_endpoint: EndpointUrl | None = None
    control_endpoint: EndpointUrl | None = None
    external_id_field: PathExpression | None = None
    control: str | None = None
    allowed_ips: list[str] | None = None


class InterfaceResponse(BaseModel):
    """Response schema for interface."""

    id: str
    name: str
    project_id: str
    event_endpoint: str
    control_endpoint: str | None
    control: str | None
    external_id_field: str
    allowed_ips: list[str]
    secret_token: str | None
    created_at: datetime
    updated_at: datetime


class InterfaceWithSecret(InterfaceResponse):
    """Response schema carrying a newly issued secret, shown only once."""

    secret: str


# ==================== Helpers ====================


async def _get_project_interface(
    registry: InterfaceRegistry,
    project_id: str,
    interface_id: str,
) -> Interface:
    interface = await registry.get_interface(interface_id)
    if interface.project_id != project_id:
        raise NotFoundError("interface", interface_id)
    return interface


def _visible_to(interface: Interface, principal: AuthOutcome) -> Interface:
    """Hide the control token of other interfaces from interface callers."""
    if isinstance(principal, InterfacePrincipal) and principal.interface_id != interface.id:
        return interface.model_copy(update={"secret_token": None})
    return interface


# ==================== Interface Endpoints ====================


@router.post("", response_model=InterfaceWithSecret, status_code=status.HTTP_201_CREATED)
async def create_interface(
    project_id: str,
    data: InterfaceCreate,
    registry: RegistryDep,
    principal: PrincipalDep,
) -> InterfaceWithSecret:
    """Create an interface and issue its secret."""
    interface, secret = await registry.create_interface(data.model_dump(), project_id)

    logger.info("Created interface", interface_id=interface.id, project_id=project_id)

    return InterfaceWithSecret(**interface.model_dump(), secret=secret)


@router.get("", response_model=list[InterfaceResponse])
async def list_interfaces(
    project_id: str,
    registry: RegistryDep,
    principal: PrincipalDep,
) -> list[Interface]:
    """List interfaces of a project."""
    interfaces = await registry.list_interfaces(project_id)
    return [_visible_to(i, principal) for i in interfaces]


@router.get("/{interface_id}", response_model=InterfaceResponse)
async def get_interface(
    project_id: str,
    interface_id: str,
    registry: RegistryDep,
    principal: PrincipalDep,
) -> Interface:
    """Get an interface with its control token."""
    interface = await _get_project_interface(registry, project_id, interface_id)
    return _visible_to(interface, principal)


@router.patch("/{interface_id}", response_model=InterfaceResponse)
async def update_interface(
    project_id: str,
    interface_id: str,
    data: InterfaceUpdate,
    registry: RegistryDep,
    principal: PrincipalDep,
) -> Interface:
    """Update an interface."""
    await _get_project_interface(registry, project_id, interface_id)

    interface = await registry.update_interface(
        interface_id, data.model_dump(exclude_unset=True)
    )

    logger.info("Updated interface", interface_id=interface_id)

    return _visible_to(interface, principal)


@router.post("/{interface_id}/secret", response_model=InterfaceWithSecret)
async def rotate_secret(
    project_id: str,
    interface_id: str,
    registry: RegistryDep,
    principal: PrincipalDep,
) -> InterfaceWithSecret:
    """Issue a new secret; the previous one stops working immediately."""
    await _get_project_interface(registry, project_id, interface_id)

    interface, secret = await registry.rotate_secret(interface_id)

    return InterfaceWithSecret(**interface.model_dump(), secret=secret)


@router.delete("/{interface_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_interface(
    project_id: str,
    interface_id: str,
    registry: RegistryDep,
    principal: PrincipalDep,
) -> None:
    """Delete an interface."""
    await _get_project_interface(registry, project_id, interface_id)

    await registry.delete_interface(interface_id)

    logger.info("Deleted interface", interface_id=interface_id)
