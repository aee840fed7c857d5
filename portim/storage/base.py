"""Abstract base class for storage backends."""

from abc import ABC, abstractmethod

from portim.models import Client, Interface, Message, Session


class StorageBackend(ABC):
    """Abstract storage backend interface.

    Lookups return ``None`` on a miss; callers decide whether that is an
    error. Backend failures surface as ``StorageError``.
    """

    # ==================== Interface Operations ====================

    @abstractmethod
    async def get_interface(self, interface_id: str) -> Interface | None:
        """Get an interface by ID."""
        ...

    @abstractmethod
    async def save_interface(self, interface: Interface) -> Interface:
        """Save or update an interface."""
        ...

    @abstractmethod
    async def list_interfaces(self, project_id: str) -> list[Interface]:
        """List interfaces of a project."""
        ...

    @abstractmethod
    async def delete_interface(self, interface_id: str) -> bool:
        """Delete an interface."""
        ...

    # ==================== Client Operations ====================

    @abstractmethod
    async def get_client(self, client_id: str) -> Client | None:
        """Get a client by ID."""
        ...

    @abstractmethod
    async def get_client_by_external_id(
        self,
        project_id: str,
        external_id: str,
    ) -> Client | None:
        """Get the client holding ``external_id`` within a project."""
        ...

    @abstractmethod
    async def save_client(self, client: Client) -> Client:
        """Save or update a client.

        Raises:
            ConflictError: another client already holds the external id
        """
        ...

    @abstractmethod
    async def delete_client(self, client_id: str) -> bool:
        """Delete a client."""
        ...

    # ==================== Session Operations ====================

    @abstractmethod
    async def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        ...

    @abstractmethod
    async def get_session_by_source(
        self,
        source: str,
        client_id: str,
    ) -> Session | None:
        """Get the session a client opened through ``source``."""
        ...

    @abstractmethod
    async def save_session(self, session: Session) -> Session:
        """Save or update a session."""
        ...

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """Delete a session."""
        ...

    # ==================== Message Operations ====================

    @abstractmethod
    async def get_message(self, message_id: str) -> Message | None:
        """Get a message by ID."""
        ...

    @abstractmethod
    async def save_message(self, message: Message) -> Message:
        """Save or update a message."""
        ...

    @abstractmethod
    async def get_messages(
        self,
        session_id: str,
        limit: int = 50,
    ) -> list[Message]:
        """Get messages of a session in creation order."""
        ...

    @abstractmethod
    async def delete_message(self, message_id: str) -> bool:
        """Delete a message."""
        ...

    # ==================== Health Check ====================

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage is healthy."""
        ...
