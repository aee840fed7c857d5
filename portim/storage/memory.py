"""In-memory storage backend for development and testing."""

import asyncio
from datetime import datetime

from portim.core.exceptions import ConflictError
from portim.models import Client, Interface, Message, Session
from portim.storage.base import StorageBackend


class InMemoryStorage(StorageBackend):
    """In-memory storage implementation for development."""

    def __init__(self) -> None:
        self._interfaces: dict[str, Interface] = {}
        self._clients: dict[str, Client] = {}
        self._sessions: dict[str, Session] = {}
        self._messages: dict[str, Message] = {}
        self._lock = asyncio.Lock()

    # ==================== Interface Operations ====================

    async def get_interface(self, interface_id: str) -> Interface | None:
        interface = self._interfaces.get(interface_id)
        return interface.model_copy(deep=True) if interface else None

    async def save_interface(self, interface: Interface) -> Interface:
        interface.updated_at = datetime.utcnow()
        self._interfaces[interface.id] = interface.model_copy(deep=True)
        return interface

    async def list_interfaces(self, project_id: str) -> list[Interface]:
        interfaces = [i for i in self._interfaces.values() if i.project_id == project_id]
        interfaces.sort(key=lambda x: x.created_at)
        return [i.model_copy(deep=True) for i in interfaces]

    async def delete_interface(self, interface_id: str) -> bool:
        if interface_id in self._interfaces:
            del self._interfaces[interface_id]
            return True
        return False

    # ==================== Client Operations ====================

    async def get_client(self, client_id: str) -> Client | None:
        client = self._clients.get(client_id)
        return client.model_copy(deep=True) if client else None

    async def get_client_by_external_id(
        self,
        project_id: str,
        external_id: str,
    ) -> Client | None:
        for client in self._clients.values():
            if client.project_id == project_id and client.external_id == external_id:
                return client.model_copy(deep=True)
        return None

    async def save_client(self, client: Client) -> Client:
        async with self._lock:
            for existing in self._clients.values():
                if (
                    existing.id != client.id
                    and existing.project_id == client.project_id
                    and existing.external_id == client.external_id
                ):
                    raise ConflictError(
                        f"Client already exists for external id: {client.external_id}",
                        details={"project_id": client.project_id, "external_id": client.external_id},
                    )
            client.updated_at = datetime.utcnow()
            self._clients[client.id] = client.model_copy(deep=True)
        return client

    async def delete_client(self, client_id: str) -> bool:
        if client_id in self._clients:
            del self._clients[client_id]
            return True
        return False

    # ==================== Session Operations ====================

    async def get_session(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def get_session_by_source(
        self,
        source: str,
        client_id: str,
    ) -> Session | None:
        for session in self._sessions.values():
            if session.source == source and session.client_id == client_id:
                return session.model_copy(deep=True)
        return None

    async def save_session(self, session: Session) -> Session:
        session.updated_at = datetime.utcnow()
        self._sessions[session.id] = session.model_copy(deep=True)
        return session

    async def delete_session(self, session_id: str) -> bool:
        if session_id in self._sessions:
            del self._sessions[session_id]
            return True
        return False

    # ==================== Message Operations ====================

    async def get_message(self, message_id: str) -> Message | None:
        message = self._messages.get(message_id)
        return message.model_copy(deep=True) if message else None

    async def save_message(self, message: Message) -> Message:
        message.updated_at = datetime.utcnow()
        self._messages[message.id] = message.model_copy(deep=True)
        return message

    async def get_messages(
        self,
        session_id: str,
        limit: int = 50,
    ) -> list[Message]:
        messages = [m for m in self._messages.values() if m.session_id == session_id]
        messages.sort(key=lambda x: x.created_at)
        return [m.model_copy(deep=True) for m in messages[-limit:]]

    async def delete_message(self, message_id: str) -> bool:
        if message_id in self._messages:
            del self._messages[message_id]
            return True
        return False

    # ==================== Health Check ====================

    async def health_check(self) -> bool:
        return True

    # ==================== Development Helpers ====================

    async def clear_all(self) -> None:
        """Clear all data (for testing)."""
        self._interfaces.clear()
        self._clients.clear()
        self._sessions.clear()
        self._messages.clear()
