"""Interface registry - CRUD plus secret issuance and rotation."""

from typing import Any
from uuid import uuid4

import structlog

from portim.core.exceptions import NotFoundError, ValidationError
from portim.models import Interface
from portim.services.clients.path import parse_path
from portim.services.credentials import CredentialService
from portim.storage.base import StorageBackend

logger = structlog.get_logger()

# Fields an update may set to None; the others ignore an explicit None.
NULLABLE_FIELDS = frozenset({"control", "control_endpoint"})
UPDATABLE_FIELDS = frozenset(
    {"name", "event_endpoint", "control_endpoint", "control", "external_id_field", "allowed_ips"}
)


class InterfaceRegistry:
    """Stores interfaces and their credentials.

    Interfaces are persisted with ``secret_token`` encrypted. Reads through
    ``get_interface`` hand back a copy carrying the decrypted token; writes
    always start from the stored record so plaintext never reaches storage.
    """

    def __init__(self, storage: StorageBackend, credentials: CredentialService) -> None:
        self.storage = storage
        self.credentials = credentials

    async def _get_record(self, interface_id: str) -> Interface:
        interface = await self.storage.get_interface(interface_id)
        if not interface:
            raise NotFoundError("interface", interface_id)
        return interface

    def _reveal(self, interface: Interface) -> Interface:
        """Copy of ``interface`` with its control token decrypted."""
        if not interface.secret_token or not interface.iv_token:
            return interface.model_copy()
        token = self.credentials.decrypt_token(interface.secret_token, interface.iv_token)
        return interface.model_copy(update={"secret_token": token})

    def _apply_secret(self, interface: Interface) -> str:
        """Issue a new secret and control token onto ``interface``.

        The secret authenticates the interface and is returned in plaintext.
        The control token is an independent value sent on deliveries to the
        interface; it is stored encrypted.
        """
        issued = self.credentials.issue_secret()
        encrypted = self.credentials.issue_control_token()

        interface.secret_hash = issued.hash
        interface.secret_salt = issued.salt
        interface.secret_token = encrypted.ciphertext
        interface.iv_token = encrypted.iv
        return issued.secret

    async def _check_control(self, control: str, project_id: str) -> None:
        control_interface = await self.storage.get_interface(control)
        if not control_interface or control_interface.project_id != project_id:
            raise ValidationError(
                f"Not found control interface with id: {control}",
                details={"control": control},
            )

    async def create_interface(
        self,
        data: dict[str, Any],
        project_id: str,
    ) -> tuple[Interface, str]:
        """Create an interface and issue its secret.

        Returns:
            Tuple of (interface with decrypted token, plaintext secret)
        """
        parse_path(data["external_id_field"])
        if data.get("control"):
            await self._check_control(data["control"], project_id)

        interface = Interface(
            id=str(uuid4()),
            name=data["name"],
            project_id=project_id,
            event_endpoint=data["event_endpoint"],
            control_endpoint=data.get("control_endpoint") or None,
            control=data.get("control") or None,
            external_id_field=data["external_id_field"],
            allowed_ips=data.get("allowed_ips") or [],
        )
        secret = self._apply_secret(interface)

        await self.storage.save_interface(interface)

        logger.info(
            "Created interface",
            interface_id=interface.id,
            project_id=project_id,
            name=interface.name,
        )
        return self._reveal(interface), secret

    async def get_interface(self, interface_id: str) -> Interface:
        """Get an interface with its control token decrypted."""
        return self._reveal(await self._get_record(interface_id))

    async def list_interfaces(self, project_id: str) -> list[Interface]:
        interfaces = await self.storage.list_interfaces(project_id)
        return [self._reveal(i) for i in interfaces]

    async def update_interface(self, interface_id: str, changes: dict[str, Any]) -> Interface:
        """Apply a partial update.

        Omitted fields stay unchanged. ``None`` clears ``control`` and
        ``control_endpoint`` and is ignored for every other field.
        """
        logger.debug("Updating interface", interface_id=interface_id)
        interface = await self._get_record(interface_id)

        for field, value in changes.items():
            if field not in UPDATABLE_FIELDS:
                continue
            if value is None and field not in NULLABLE_FIELDS:
                continue
            setattr(interface, field, value)

        if interface.control:
            if interface.control == interface.id:
                raise ValidationError("Interface cannot be its own control interface")
            await self._check_control(interface.control, interface.project_id)
        parse_path(interface.external_id_field)

        await self.storage.save_interface(interface)

        logger.debug("Updated interface", interface_id=interface_id)
        return self._reveal(interface)

    async def rotate_secret(self, interface_id: str) -> tuple[Interface, str]:
        """Replace the secret and control token; the previous ones stop working at once."""
        interface = await self._get_record(interface_id)
        secret = self._apply_secret(interface)

        await self.storage.save_interface(interface)

        logger.info("Rotated interface secret", interface_id=interface_id)
        return self._reveal(interface), secret

    async def authenticate(self, interface_id: str, secret: str) -> Interface | None:
        """Get the interface when ``secret`` verifies, None otherwise."""
        interface = await self.storage.get_interface(interface_id)
        if not interface:
            return None
        if not self.credentials.verify_secret(
            secret, interface.secret_hash, interface.secret_salt
        ):
            return None
        return interface

    async def delete_interface(self, interface_id: str) -> None:
        logger.debug("Deleting interface", interface_id=interface_id)
        if not await self.storage.delete_interface(interface_id):
            raise NotFoundError("interface", interface_id)
        logger.debug("Deleted interface", interface_id=interface_id)
