"""Message delivery pipeline - persists inbound messages and forwards them."""

import hashlib
import json
from typing import Any, Mapping
from uuid import uuid4

import structlog

from portim.core.config import settings
from portim.core.exceptions import (
    DeliveryError,
    NoControlInterfaceError,
    NoExternalIdError,
    NotFoundError,
    ValidationError,
)
from portim.models import Message, MessageStatus, Session
from portim.services.clients.resolver import ClientResolver
from portim.services.http.client import WebhookClient
from portim.services.interfaces.registry import InterfaceRegistry
from portim.services.sessions.router import SessionRouter
from portim.storage.base import StorageBackend

logger = structlog.get_logger()


def fingerprint(raw_body: bytes) -> str:
    """SHA-256 hex digest of a serialized body."""
    return hashlib.sha256(raw_body).hexdigest()


def parse_payload(raw_body: bytes) -> Any:
    """Decode a JSON body for path extraction."""
    try:
        return json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError("Message body must be valid JSON", details={"error": str(e)}) from e


def resolve_destination(session: Session, sender: str) -> str:
    """Next hop: the target when the source speaks, the source otherwise."""
    return session.other_side(sender)


class MessageDeliveryPipeline:
    """Top-level orchestrator for inbound messages.

    Flow:
    1. Resolve the session (given id, or client + source interface)
    2. Persist the message as pending with a content fingerprint
    3. Pick the other side of the session as destination
    4. POST the raw body to the destination's event endpoint
    5. Mark the message delivered or error

    The message row is always written before any network call. Delivery
    failures are recorded on the message and never raised to the caller.
    """

    def __init__(
        self,
        storage: StorageBackend,
        registry: InterfaceRegistry,
        clients: ClientResolver,
        sessions: SessionRouter,
        http: WebhookClient,
        session_header: str | None = None,
        token_header: str | None = None,
    ) -> None:
        self.storage = storage
        self.registry = registry
        self.clients = clients
        self.sessions = sessions
        self.http = http
        self.session_header = session_header or settings.session_header_name
        self.token_header = token_header or settings.token_header_name

    async def resolve_session(
        self,
        raw_body: bytes,
        project_id: str,
        interface_id: str,
        session_id: str | None = None,
    ) -> Session:
        """Find the session a message belongs to, creating it if needed.

        Raises:
            NotFoundError: unknown interface, or session unknown within ``project_id``
            NoControlInterfaceError: session-less message on an interface without control
            NoExternalIdError: the payload does not carry a client id
        """
        if session_id:
            return await self.sessions.get_project_session(session_id, project_id)

        interface = await self.registry.get_interface(interface_id)
        if not interface.has_control:
            raise NoControlInterfaceError(interface_id)

        payload = parse_payload(raw_body)
        external_id = self.clients.extract_external_id(payload, interface.external_id_field)
        if external_id is None:
            raise NoExternalIdError(interface_id, interface.external_id_field)

        client = await self.clients.get_or_create(project_id, external_id)
        return await self.sessions.get_or_create_session(client.id, interface)

    async def create_message(
        self,
        sender: str,
        raw_body: bytes,
        headers: Mapping[str, str] | None,
        project_id: str,
        interface_id: str,
        session_id: str | None = None,
        status: MessageStatus = MessageStatus.PENDING,
        deliver: bool = True,
    ) -> Message:
        """Accept an inbound message and, unless ``deliver`` is False, forward it.

        Returns:
            The persisted message, in its final status when delivered inline
        """
        session = await self.resolve_session(raw_body, project_id, interface_id, session_id)

        message = Message(
            id=str(uuid4()),
            session_id=session.id,
            sender=sender,
            content=fingerprint(raw_body),
            status=status,
        )
        await self.storage.save_message(message)

        logger.info(
            "Created message",
            message_id=message.id,
            session_id=session.id,
            sender=sender,
        )

        if deliver:
            message = await self.deliver(message, session, raw_body, headers)

        return message

    async def deliver(
        self,
        message: Message,
        session: Session,
        raw_body: bytes,
        headers: Mapping[str, str] | None = None,
    ) -> Message:
        """Forward ``raw_body`` to the other side of the session and record the outcome."""
        destination_id = resolve_destination(session, message.sender)

        try:
            destination = await self.registry.get_interface(destination_id)
            # Header names are case-insensitive; caller values win on collision
            request_headers = {
                "content-type": "application/json",
                self.session_header.lower(): session.id,
                self.token_header.lower(): destination.secret_token or "",
                **{k.lower(): v for k, v in (headers or {}).items()},
            }
            await self.http.post(
                destination.event_endpoint,
                content=raw_body,
                headers=request_headers,
            )
        except (DeliveryError, NotFoundError) as e:
            message.status = MessageStatus.ERROR
            message.error = e.message
            logger.warning(
                "Message delivery failed",
                message_id=message.id,
                session_id=session.id,
                destination=destination_id,
                error=e.message,
            )
        else:
            message.status = MessageStatus.DELIVERED
            message.error = None
            logger.info(
                "Message delivered",
                message_id=message.id,
                session_id=session.id,
                destination=destination_id,
            )

        await self.storage.save_message(message)
        return message

    # ==================== Message Operations ====================

    async def get_message(self, message_id: str) -> Message:
        message = await self.storage.get_message(message_id)
        if not message:
            raise NotFoundError("message", message_id)
        return message

    async def list_messages(self, session_id: str, limit: int = 50) -> list[Message]:
        await self.sessions.get_session(session_id)
        return await self.storage.get_messages(session_id, limit=limit)

    async def update_status(self, message_id: str, status: MessageStatus) -> Message:
        """Set the status of a message; last write wins."""
        logger.debug("Updating message status", message_id=message_id, status=status)
        message = await self.get_message(message_id)

        message.status = status
        if status != MessageStatus.ERROR:
            message.error = None

        await self.storage.save_message(message)

        logger.debug("Updated message status", message_id=message_id)
        return message

    async def delete_message(self, message_id: str) -> None:
        logger.debug("Deleting message", message_id=message_id)
        if not await self.storage.delete_message(message_id):
            raise NotFoundError("message", message_id)
        logger.debug("Deleted message", message_id=message_id)
