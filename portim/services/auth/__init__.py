"""Inbound authentication."""

from portim.services.auth.authenticator import Authenticator
from portim.services.auth.identity import IdentityProvider, JWTIdentityProvider, get_identity_provider

__all__ = ["Authenticator", "IdentityProvider", "JWTIdentityProvider", "get_identity_provider"]
