"""Credential service - secrets for inbound auth, tokens for outbound calls."""

import structlog

from portim.core.config import settings
from portim.core.exceptions import ConfigurationError
from portim.services.credentials.cipher import EncryptedToken, TokenCipher
from portim.services.credentials.secrets import (
    IssuedSecret,
    generate_token,
    issue_secret,
    verify_secret,
)

logger = structlog.get_logger()


class CredentialService:
    """Issues and verifies interface secrets and encrypts control tokens.

    The cipher is injected so the master key never has to be read from
    process state inside the routing code. Without a cipher, hashing still
    works but any token encryption raises ``ConfigurationError``.
    """

    def __init__(self, cipher: TokenCipher | None = None) -> None:
        self._cipher = cipher

    @property
    def can_encrypt(self) -> bool:
        return self._cipher is not None

    def _get_cipher(self) -> TokenCipher:
        if self._cipher is None:
            raise ConfigurationError("Encryption key is not defined")
        return self._cipher

    def issue_secret(self) -> IssuedSecret:
        return issue_secret()

    def issue_control_token(self) -> EncryptedToken:
        """Draw a fresh outbound control token, already encrypted."""
        return self.encrypt_token(generate_token())

    def verify_secret(self, candidate: str, secret_hash: str, salt: str) -> bool:
        return verify_secret(candidate, secret_hash, salt)

    def encrypt_token(self, plaintext: str) -> EncryptedToken:
        return self._get_cipher().encrypt(plaintext)

    def decrypt_token(self, ciphertext: str, iv: str) -> str:
        return self._get_cipher().decrypt(ciphertext, iv)


def build_token_cipher(key: str | None = None) -> TokenCipher | None:
    """Build the cipher from the configured master key, if any."""
    key = key if key is not None else settings.secret_encryption_key
    if not key:
        logger.warning("Secret encryption key not configured")
        return None
    return TokenCipher(key)


# Singleton instance
_credential_service: CredentialService | None = None


def get_credential_service() -> CredentialService:
    """Get or create the credential service singleton."""
    global _credential_service
    if _credential_service is None:
        _credential_service = CredentialService(cipher=build_token_cipher())
    return _credential_service
