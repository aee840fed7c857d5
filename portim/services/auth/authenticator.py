"""Inbound authentication - bearer users and basic-auth interfaces."""

import base64
import binascii
import ipaddress

import structlog

from portim.core.exceptions import AuthenticationError, ForbiddenError
from portim.models import AuthOutcome, Interface, InterfacePrincipal, UserPrincipal
from portim.services.auth.identity import IdentityProvider
from portim.services.interfaces.registry import InterfaceRegistry

logger = structlog.get_logger()


def _decode_basic(credentials: str) -> tuple[str, str]:
    try:
        decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise AuthenticationError("Invalid token format") from None

    interface_id, sep, secret = decoded.partition(":")
    if not sep or not interface_id or not secret:
        raise AuthenticationError("Invalid token format")
    return interface_id, secret


def _ip_allowed(interface: Interface, client_ip: str | None) -> bool:
    """An empty allow-list accepts every address."""
    if not interface.allowed_ips:
        return True
    if not client_ip:
        return False
    try:
        address = ipaddress.ip_address(client_ip)
    except ValueError:
        return False
    for allowed in interface.allowed_ips:
        try:
            if address in ipaddress.ip_network(allowed, strict=False):
                return True
        except ValueError:
            logger.warning("Invalid allowed ip entry", interface_id=interface.id, entry=allowed)
    return False


class Authenticator:
    """Single entry point for the Authorization header.

    ``Bearer <jwt>`` goes to the identity provider and yields a
    ``UserPrincipal``; ``Basic base64(interface_id:secret)`` is checked
    against the interface's stored verifier and yields an
    ``InterfacePrincipal``.
    """

    def __init__(self, registry: InterfaceRegistry, identity: IdentityProvider) -> None:
        self.registry = registry
        self.identity = identity

    async def authenticate(
        self,
        authorization: str | None,
        client_ip: str | None = None,
    ) -> AuthOutcome:
        if not authorization:
            raise AuthenticationError("No token found")

        scheme, _, credentials = authorization.strip().partition(" ")
        credentials = credentials.strip()
        if not credentials:
            raise AuthenticationError("Invalid token format")

        scheme = scheme.lower()
        if scheme == "bearer":
            return await self._authenticate_user(credentials)
        if scheme == "basic":
            return await self._authenticate_interface(credentials, client_ip)

        raise AuthenticationError("Invalid token format")

    async def _authenticate_user(self, token: str) -> UserPrincipal:
        user = await self.identity.verify(token)
        if user is None:
            raise AuthenticationError("Invalid token")
        return user

    async def _authenticate_interface(
        self,
        credentials: str,
        client_ip: str | None,
    ) -> InterfacePrincipal:
        interface_id, secret = _decode_basic(credentials)

        interface = await self.registry.authenticate(interface_id, secret)
        if interface is None:
            logger.info("Interface authentication failed", interface_id=interface_id)
            raise AuthenticationError("Invalid credentials")

        if not _ip_allowed(interface, client_ip):
            logger.warning(
                "Interface call from address not allowed",
                interface_id=interface_id,
                client_ip=client_ip,
            )
            raise ForbiddenError("Address not allowed for this interface")

        return InterfacePrincipal(interface_id=interface.id, project_id=interface.project_id)

    @staticmethod
    def authorize_project(principal: AuthOutcome, project_id: str) -> None:
        """Reject principals outside ``project_id``."""
        if not principal.can_access(project_id):
            raise ForbiddenError()
