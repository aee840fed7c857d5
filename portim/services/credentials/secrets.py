"""Shared-secret issuance and verification for interfaces."""

import hashlib
import hmac
import secrets
from dataclasses import dataclass

from portim.core.config import settings


@dataclass(frozen=True)
class IssuedSecret:
    """A freshly issued secret and its stored verifier.

    ``secret`` is shown to the caller once and never persisted.
    """

    secret: str
    hash: str
    salt: str


def generate_hash(secret: str, salt: str | None = None) -> tuple[str, str]:
    """HMAC-SHA256 of ``secret`` keyed by ``salt``.

    Returns:
        Tuple of (hex hash, salt). A random salt is drawn when none is given.
    """
    salt = salt or secrets.token_hex(settings.secret_salt_bytes)
    digest = hmac.new(salt.encode("utf-8"), secret.encode("utf-8"), hashlib.sha256)
    return digest.hexdigest(), salt


def generate_token() -> str:
    """Random URL-safe token."""
    return secrets.token_urlsafe(settings.secret_token_bytes)


def issue_secret() -> IssuedSecret:
    """Generate a random secret with a new salt."""
    secret = generate_token()
    secret_hash, salt = generate_hash(secret)
    return IssuedSecret(secret=secret, hash=secret_hash, salt=salt)


def verify_secret(candidate: str, secret_hash: str, salt: str) -> bool:
    """Check ``candidate`` against a stored verifier in constant time."""
    if not secret_hash or not salt:
        return False
    candidate_hash, _ = generate_hash(candidate, salt)
    return hmac.compare_digest(candidate_hash, secret_hash)
