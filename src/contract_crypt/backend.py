"""Scheme constants and the capability protocol shared by both backends."""

from __future__ import annotations

from typing import Protocol

from .keys import PrivateKeyHandle, PublicKeyHandle

KEY_LENGTH = 32

# OpenSSL ``enc`` container: magic, salt, then AES-256-CBC with PKCS#7 padding.
SALTED_MAGIC = b"Salted__"
SALT_SIZE = 8
AES_KEY_SIZE = 32
AES_BLOCK_SIZE = 16
PBKDF2_ITERATIONS = 10000
PBKDF2_DIGEST = "sha256"

SIGNATURE_DIGEST = "sha256"


def validate_password_length(count: int) -> None:
    if count < 1:
        raise ValueError(f"Password length must be >= 1, got: {count}")


class CryptoBackend(Protocol):
    """Primitives the hybrid scheme needs; implemented natively and via the openssl binary."""

    name: str

    def random_password(self, count: int = KEY_LENGTH) -> bytes: ...

    def private_key(self, bits: int | None = None) -> PrivateKeyHandle: ...

    def public_key(self, private_key: PrivateKeyHandle) -> PublicKeyHandle: ...

    def asymmetric_encrypt(self, public_key: PublicKeyHandle, message: bytes) -> bytes: ...

    def asymmetric_decrypt(self, private_key: PrivateKeyHandle, ciphertext: bytes) -> bytes: ...

    def symmetric_encrypt(self, password: bytes, plaintext: bytes) -> bytes: ...

    def symmetric_decrypt(self, password: bytes, ciphertext: bytes) -> bytes: ...

    def sign_digest(self, private_key: PrivateKeyHandle, data: bytes) -> bytes: ...

    def verify_digest(
        self, public_key: PublicKeyHandle, data: bytes, signature: bytes
    ) -> bool: ...

    def public_key_fingerprint(self, public_key: PublicKeyHandle) -> str: ...

    def private_key_fingerprint(self, private_key: PrivateKeyHandle) -> str: ...

    def cert_fingerprint(self, certificate: bytes | str) -> str: ...

    def cert_serial(self, certificate: bytes | str) -> str: ...
