"""Symmetric encryption of interface control tokens at rest."""

import os
from dataclasses import dataclass

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from portim.core.exceptions import ConfigurationError

IV_LENGTH = 16


@dataclass(frozen=True)
class EncryptedToken:
    """Hex ciphertext with the hex IV it was produced with."""

    ciphertext: str
    iv: str


def _decode_key(key: str) -> bytes:
    """Accept a 64-char hex key or a raw 16/24/32-char key."""
    if len(key) == 64:
        try:
            return bytes.fromhex(key)
        except ValueError:
            pass
    raw = key.encode("utf-8")
    if len(raw) not in (16, 24, 32):
        raise ConfigurationError(
            "Encryption key must be 16, 24 or 32 bytes (or 64 hex characters)",
            details={"key_length": len(raw)},
        )
    return raw


class TokenCipher:
    """AES-CBC with PKCS7 padding and a random IV per encryption."""

    def __init__(self, key: str) -> None:
        if not key:
            raise ConfigurationError("Encryption key is not defined")
        self._key = _decode_key(key)

    def encrypt(self, plaintext: str) -> EncryptedToken:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return EncryptedToken(ciphertext=ciphertext.hex(), iv=iv.hex())

    def decrypt(self, ciphertext: str, iv: str) -> str:
        try:
            decryptor = Cipher(
                algorithms.AES(self._key), modes.CBC(bytes.fromhex(iv))
            ).decryptor()
            padded = decryptor.update(bytes.fromhex(ciphertext)) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except ValueError as e:
            # Wrong key, corrupted ciphertext or bad IV all end up here
            raise ConfigurationError("Unable to decrypt token with the configured key") from e
