"""Firestore storage backend for production."""

import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

import structlog
from google.api_core import exceptions as google_exceptions

from portim.core.config import settings
from portim.core.exceptions import ConflictError, StorageError
from portim.models import Client, Interface, Message, Session
from portim.storage.base import StorageBackend

logger = structlog.get_logger()


class FirestoreStorage(StorageBackend):
    """Firestore storage implementation for production.

    Collection structure:
    - interfaces/{interface_id}
    - clients/{client_id}
    - client_external_ids/{project_id}:{external_id}  (uniqueness reservation)
    - sessions/{session_id}
    - messages/{message_id}
    """

    def __init__(self, project_id: str | None = None) -> None:
        self._project_id = project_id
        self._db = None
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        """Lazy initialization of Firestore client."""
        if self._initialized:
            return

        try:
            from google.cloud import firestore

            if settings.firestore_emulator_host:
                os.environ.setdefault("FIRESTORE_EMULATOR_HOST", settings.firestore_emulator_host)
            if os.environ.get("FIRESTORE_EMULATOR_HOST"):
                logger.info("Using Firestore emulator", host=os.environ["FIRESTORE_EMULATOR_HOST"])

            self._db = firestore.AsyncClient(project=self._project_id)
            self._initialized = True
            logger.info("Firestore client initialized", project=self._project_id)
        except Exception as e:
            logger.error("Failed to initialize Firestore", error=str(e))
            raise StorageError("Failed to initialize Firestore", operation="init") from e

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        """Initialize the client and wrap driver errors."""
        await self._ensure_initialized()
        try:
            yield
        except google_exceptions.GoogleAPIError as e:
            logger.error("Firestore operation failed", operation=name, error=str(e))
            raise StorageError(f"Storage operation failed: {name}", operation=name) from e

    async def _get(self, collection: str, doc_id: str) -> dict | None:
        doc = await self._db.collection(collection).document(doc_id).get()
        if not doc.exists:
            return None
        return doc.to_dict()

    async def _delete(self, collection: str, doc_id: str) -> bool:
        ref = self._db.collection(collection).document(doc_id)
        doc = await ref.get()
        if not doc.exists:
            return False
        await ref.delete()
        return True

    # ==================== Interface Operations ====================

    async def get_interface(self, interface_id: str) -> Interface | None:
        async with self._operation("get_interface"):
            data = await self._get("interfaces", interface_id)
        return Interface(**data) if data else None

    async def save_interface(self, interface: Interface) -> Interface:
        interface.updated_at = datetime.utcnow()
        async with self._operation("save_interface"):
            await self._db.collection("interfaces").document(interface.id).set(
                interface.model_dump(mode="json")
            )
        return interface

    async def list_interfaces(self, project_id: str) -> list[Interface]:
        async with self._operation("list_interfaces"):
            query = (
                self._db.collection("interfaces")
                .where("project_id", "==", project_id)
                .order_by("created_at")
            )
            docs = await query.get()
        return [Interface(**doc.to_dict()) for doc in docs]

    async def delete_interface(self, interface_id: str) -> bool:
        async with self._operation("delete_interface"):
            return await self._delete("interfaces", interface_id)

    # ==================== Client Operations ====================

    @staticmethod
    def _reservation_id(project_id: str, external_id: str) -> str:
        return f"{project_id}:{external_id}"

    async def get_client(self, client_id: str) -> Client | None:
        async with self._operation("get_client"):
            data = await self._get("clients", client_id)
        return Client(**data) if data else None

    async def get_client_by_external_id(
        self,
        project_id: str,
        external_id: str,
    ) -> Client | None:
        async with self._operation("get_client_by_external_id"):
            reservation = await self._get(
                "client_external_ids", self._reservation_id(project_id, external_id)
            )
            if not reservation:
                return None
            data = await self._get("clients", reservation["client_id"])
        return Client(**data) if data else None

    async def save_client(self, client: Client) -> Client:
        client.updated_at = datetime.utcnow()
        async with self._operation("save_client"):
            reservation_ref = self._db_reservation(client)
            try:
                await reservation_ref.create({"client_id": client.id})
            except google_exceptions.AlreadyExists:
                owner = (await reservation_ref.get()).to_dict() or {}
                if owner.get("client_id") != client.id:
                    raise ConflictError(
                        f"Client already exists for external id: {client.external_id}",
                        details={
                            "project_id": client.project_id,
                            "external_id": client.external_id,
                        },
                    )
            await self._db.collection("clients").document(client.id).set(
                client.model_dump(mode="json")
            )
        return client

    def _db_reservation(self, client: Client):
        """Get reference to the external id reservation of a client."""
        return self._db.collection("client_external_ids").document(
            self._reservation_id(client.project_id, client.external_id)
        )

    async def delete_client(self, client_id: str) -> bool:
        async with self._operation("delete_client"):
            data = await self._get("clients", client_id)
            if not data:
                return False
            client = Client(**data)
            await self._db_reservation(client).delete()
            await self._db.collection("clients").document(client_id).delete()
        return True

    # ==================== Session Operations ====================

    async def get_session(self, session_id: str) -> Session | None:
        async with self._operation("get_session"):
            data = await self._get("sessions", session_id)
        return Session(**data) if data else None

    async def get_session_by_source(
        self,
        source: str,
        client_id: str,
    ) -> Session | None:
        async with self._operation("get_session_by_source"):
            query = (
                self._db.collection("sessions")
                .where("source", "==", source)
                .where("client_id", "==", client_id)
                .limit(1)
            )
            docs = await query.get()
        for doc in docs:
            return Session(**doc.to_dict())
        return None

    async def save_session(self, session: Session) -> Session:
        session.updated_at = datetime.utcnow()
        async with self._operation("save_session"):
            await self._db.collection("sessions").document(session.id).set(
                session.model_dump(mode="json")
            )
        return session

    async def delete_session(self, session_id: str) -> bool:
        async with self._operation("delete_session"):
            return await self._delete("sessions", session_id)

    # ==================== Message Operations ====================

    async def get_message(self, message_id: str) -> Message | None:
        async with self._operation("get_message"):
            data = await self._get("messages", message_id)
        return Message(**data) if data else None

    async def save_message(self, message: Message) -> Message:
        message.updated_at = datetime.utcnow()
        async with self._operation("save_message"):
            await self._db.collection("messages").document(message.id).set(
                message.model_dump(mode="json")
            )
        return message

    async def get_messages(
        self,
        session_id: str,
        limit: int = 50,
    ) -> list[Message]:
        async with self._operation("get_messages"):
            query = (
                self._db.collection("messages")
                .where("session_id", "==", session_id)
                .order_by("created_at")
                .limit_to_last(limit)
            )
            docs = await query.get()
        return [Message(**doc.to_dict()) for doc in docs]

    async def delete_message(self, message_id: str) -> bool:
        async with self._operation("delete_message"):
            return await self._delete("messages", message_id)

    # ==================== Health Check ====================

    async def health_check(self) -> bool:
        try:
            await self._ensure_initialized()
            await self._db.collection("_health").document("check").get()
            return True
        except Exception as e:
            logger.error("Firestore health check failed", error=str(e))
            return False
