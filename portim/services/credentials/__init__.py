"""Interface credentials - shared secrets and encrypted control tokens."""

from portim.services.credentials.cipher import EncryptedToken, TokenCipher
from portim.services.credentials.secrets import (
    IssuedSecret,
    generate_hash,
    generate_token,
    issue_secret,
    verify_secret,
)
from portim.services.credentials.service import (
    CredentialService,
    build_token_cipher,
    get_credential_service,
)

__all__ = [
    "CredentialService",
    "EncryptedToken",
    "IssuedSecret",
    "TokenCipher",
    "build_token_cipher",
    "generate_hash",
    "generate_token",
    "get_credential_service",
    "issue_secret",
    "verify_secret",
]
