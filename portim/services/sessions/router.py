"""Session router - session lifecycle and pass-control."""

from typing import Any
from uuid import uuid4

import structlog

from portim.core.config import settings
from portim.core.exceptions import (
    DeliveryError,
    NoControlInterfaceError,
    NotFoundError,
    ValidationError,
)
from portim.models import Interface, Session
from portim.services.http.client import WebhookClient
from portim.services.interfaces.registry import InterfaceRegistry
from portim.storage.base import StorageBackend

logger = structlog.get_logger()


class SessionRouter:
    """Owns who-talks-to-whom for every conversation.

    A session starts with ``source`` set to the interface that received the
    first message and ``target`` set to an explicit interface or the
    source's control interface. Only ``pass_control`` moves the target.
    """

    def __init__(
        self,
        storage: StorageBackend,
        registry: InterfaceRegistry,
        http: WebhookClient,
        session_header: str | None = None,
    ) -> None:
        self.storage = storage
        self.registry = registry
        self.http = http
        self.session_header = session_header or settings.session_header_name

    async def create_session(
        self,
        client_id: str,
        source_interface_id: str,
        target: str | None = None,
    ) -> Session:
        """Create a session for ``client_id`` opened through a source interface.

        The client and an explicit target must belong to the source's project.

        Raises:
            NotFoundError: source interface or client does not exist in the project
            ValidationError: explicit target is missing or outside the project
            NoControlInterfaceError: no target given and the source has no control
        """
        source = await self.registry.get_interface(source_interface_id)

        client = await self.storage.get_client(client_id)
        if not client or client.project_id != source.project_id:
            raise NotFoundError("client", client_id)

        if target:
            await self._check_target(target, source.project_id)
        else:
            target = source.control

        if not target:
            raise NoControlInterfaceError(source_interface_id)

        return await self._save_new(client_id, source.id, target)

    async def _check_target(self, target: str, project_id: str) -> Interface:
        target_interface = await self.storage.get_interface(target)
        if not target_interface or target_interface.project_id != project_id:
            raise ValidationError(
                f"Not found target interface with id: {target}",
                details={"target": target},
            )
        return target_interface

    async def _save_new(self, client_id: str, source: str, target: str) -> Session:
        session = Session(
            id=str(uuid4()),
            source=source,
            target=target,
            client_id=client_id,
        )
        await self.storage.save_session(session)

        logger.info(
            "Created new session",
            session_id=session.id,
            source=source,
            target=target,
            client_id=client_id,
        )
        return session

    async def get_session(self, session_id: str) -> Session:
        session = await self.storage.get_session(session_id)
        if not session:
            raise NotFoundError("session", session_id)
        return session

    async def get_project_session(self, session_id: str, project_id: str) -> Session:
        """Get a session whose source interface belongs to ``project_id``.

        Sessions of other projects are reported as missing.
        """
        session = await self.get_session(session_id)
        source = await self.storage.get_interface(session.source)
        if not source or source.project_id != project_id:
            raise NotFoundError("session", session_id)
        return session

    async def find_by_source(self, source_interface_id: str, client_id: str) -> Session | None:
        """Find the open session a client has through a source interface."""
        return await self.storage.get_session_by_source(source_interface_id, client_id)

    async def get_or_create_session(self, client_id: str, source: Interface) -> Session:
        """Get the client's session through ``source`` or open one to its control.

        Raises:
            NoControlInterfaceError: no session exists and ``source`` has no control
        """
        session = await self.find_by_source(source.id, client_id)
        if session:
            logger.debug("Found existing session", session_id=session.id, target=session.target)
            return session

        if not source.has_control:
            raise NoControlInterfaceError(source.id)

        return await self._save_new(client_id, source.id, source.control)

    async def pass_control(
        self,
        session_id: str,
        target: str,
        metadata: dict[str, Any] | None = None,
    ) -> Session:
        """Hand the session over to ``target``.

        A blank target leaves the session untouched. The target must share
        the project of the session's source. When the new target has a
        control endpoint it is notified with ``metadata``; a failed
        notification is logged and the new target is kept.

        Raises:
            NotFoundError: session does not exist
            ValidationError: target is missing or outside the source's project
        """
        logger.debug("Passing control", session_id=session_id, target=target)
        session = await self.get_session(session_id)

        if not target or not target.strip():
            return session

        source = await self.storage.get_interface(session.source)
        if not source:
            raise NotFoundError("interface", session.source)
        target_interface = await self._check_target(target, source.project_id)

        session.target = target_interface.id
        await self.storage.save_session(session)

        logger.info(
            "Passed control",
            session_id=session.id,
            target=session.target,
        )

        if target_interface.control_endpoint:
            await self._notify_control(session, target_interface, metadata)

        return session

    async def _notify_control(
        self,
        session: Session,
        target_interface: Interface,
        metadata: dict[str, Any] | None,
    ) -> None:
        try:
            await self.http.post(
                target_interface.control_endpoint,
                json=metadata or {},
                headers={self.session_header: session.id},
            )
        except DeliveryError as e:
            logger.warning(
                "Control notification failed",
                session_id=session.id,
                interface_id=target_interface.id,
                error=e.message,
            )
            return

        logger.debug(
            "Notified control endpoint",
            session_id=session.id,
            interface_id=target_interface.id,
        )

    async def delete_session(self, session_id: str) -> None:
        logger.debug("Deleting session", session_id=session_id)
        if not await self.storage.delete_session(session_id):
            raise NotFoundError("session", session_id)
        logger.debug("Deleted session", session_id=session_id)
