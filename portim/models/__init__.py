"""Data models for the application."""

from portim.models.auth import AuthOutcome, InterfacePrincipal, UserPrincipal
from portim.models.client import Client
from portim.models.interface import Interface
from portim.models.message import Message, MessageStatus
from portim.models.session import Session

__all__ = [
    # Routing
    "Interface",
    "Client",
    "Session",
    # Message
    "Message",
    "MessageStatus",
    # Auth
    "AuthOutcome",
    "InterfacePrincipal",
    "UserPrincipal",
]
