"""Message endpoints - inbound messages and delivery status."""

import structlog
from fastapi import APIRouter, BackgroundTasks, Request, status
from pydantic import BaseModel

from portim.api.dependencies import PipelineDep, PrincipalDep, RegistryDep
from portim.api.routes.sessions import check_interface, get_interface_session
from portim.core.config import settings
from portim.core.exceptions import NotFoundError
from portim.models import Message, MessageStatus
from portim.services.interfaces import InterfaceRegistry
from portim.services.messages import MessageDeliveryPipeline

logger = structlog.get_logger()

router = APIRouter(prefix="/projects/{project_id}/interfaces/{interface_id}", tags=["Messages"])

# Request headers that describe this hop and are never forwarded
HOP_HEADERS = frozenset(
    {
        "authorization",
        "connection",
        "content-length",
        "cookie",
        "host",
        "keep-alive",
        "transfer-encoding",
        "accept-encoding",
        "upgrade",
    }
)


class MessageStatusUpdate(BaseModel):
    """Schema for updating a message status."""

    status: MessageStatus


def passthrough_headers(request: Request) -> dict[str, str]:
    """Caller headers forwarded with the message."""
    return {k: v for k, v in request.headers.items() if k.lower() not in HOP_HEADERS}


async def _accept_message(
    request: Request,
    background_tasks: BackgroundTasks,
    pipeline: MessageDeliveryPipeline,
    project_id: str,
    interface_id: str,
    session_id: str | None = None,
) -> Message:
    raw_body = await request.body()
    headers = passthrough_headers(request)
    inline = settings.delivery_mode == "inline"

    message = await pipeline.create_message(
        sender=interface_id,
        raw_body=raw_body,
        headers=headers,
        project_id=project_id,
        interface_id=interface_id,
        session_id=session_id,
        deliver=inline,
    )

    if not inline:
        session = await pipeline.sessions.get_session(message.session_id)
        background_tasks.add_task(pipeline.deliver, message, session, raw_body, headers)

    return message


async def _get_session_message(
    pipeline: MessageDeliveryPipeline,
    registry: InterfaceRegistry,
    project_id: str,
    interface_id: str,
    session_id: str,
    message_id: str,
) -> Message:
    await get_interface_session(pipeline.sessions, registry, project_id, interface_id, session_id)
    message = await pipeline.get_message(message_id)
    if message.session_id != session_id:
        raise NotFoundError("message", message_id)
    return message


@router.post("/messages", response_model=Message, status_code=status.HTTP_201_CREATED)
async def create_message(
    project_id: str,
    interface_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    registry: RegistryDep,
    pipeline: PipelineDep,
    principal: PrincipalDep,
) -> Message:
    """Create a message for a caller without a session.

    The session is found, or created, from the client id the interface's
    external id path extracts from the body.
    """
    logger.info("Creating new message", interface_id=interface_id)
    await check_interface(registry, project_id, interface_id)

    message = await _accept_message(request, background_tasks, pipeline, project_id, interface_id)

    logger.info("Created new message", interface_id=interface_id, message_id=message.id)
    return message


@router.post(
    "/sessions/{session_id}/messages",
    response_model=Message,
    status_code=status.HTTP_201_CREATED,
)
async def create_session_message(
    project_id: str,
    interface_id: str,
    session_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    registry: RegistryDep,
    pipeline: PipelineDep,
    principal: PrincipalDep,
) -> Message:
    """Create a message on a known session."""
    logger.info("Creating new message", interface_id=interface_id, session_id=session_id)
    await check_interface(registry, project_id, interface_id)

    message = await _accept_message(
        request, background_tasks, pipeline, project_id, interface_id, session_id
    )

    logger.info(
        "Created new message",
        interface_id=interface_id,
        session_id=session_id,
        message_id=message.id,
    )
    return message


@router.get("/sessions/{session_id}/messages", response_model=list[Message])
async def list_messages(
    project_id: str,
    interface_id: str,
    session_id: str,
    registry: RegistryDep,
    pipeline: PipelineDep,
    principal: PrincipalDep,
    limit: int = 50,
) -> list[Message]:
    """List messages of a session."""
    await get_interface_session(pipeline.sessions, registry, project_id, interface_id, session_id)

    return await pipeline.list_messages(session_id, limit=limit)


@router.get("/sessions/{session_id}/messages/{message_id}", response_model=Message)
async def get_message(
    project_id: str,
    interface_id: str,
    session_id: str,
    message_id: str,
    registry: RegistryDep,
    pipeline: PipelineDep,
    principal: PrincipalDep,
) -> Message:
    """Get a message."""
    return await _get_session_message(
        pipeline, registry, project_id, interface_id, session_id, message_id
    )


@router.patch("/sessions/{session_id}/messages/{message_id}/status", response_model=Message)
async def update_message_status(
    project_id: str,
    interface_id: str,
    session_id: str,
    message_id: str,
    data: MessageStatusUpdate,
    registry: RegistryDep,
    pipeline: PipelineDep,
    principal: PrincipalDep,
) -> Message:
    """Update the delivery status of a message."""
    await _get_session_message(pipeline, registry, project_id, interface_id, session_id, message_id)

    return await pipeline.update_status(message_id, data.status)


@router.delete(
    "/sessions/{session_id}/messages/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_message(
    project_id: str,
    interface_id: str,
    session_id: str,
    message_id: str,
    registry: RegistryDep,
    pipeline: PipelineDep,
    principal: PrincipalDep,
) -> None:
    """Delete a message."""
    await _get_session_message(pipeline, registry, project_id, interface_id, session_id, message_id)

    await pipeline.delete_message(message_id)
