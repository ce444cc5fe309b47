"""
Hybrid encryption of contract payloads.

A fresh random password is wrapped with the recipient's RSA key and the
payload is encrypted symmetrically under that password. The primitives are
passed in, so the same orchestration runs against either backend or a mix
of both.
"""

from __future__ import annotations

import logging
from typing import Callable

from .token_codec import join_token, split_token

_logger = logging.getLogger("contract_crypt.hybrid")

RandomPassword = Callable[[], bytes]
AsymmetricEncrypt = Callable[[bytes], bytes]
AsymmetricDecrypt = Callable[[bytes], bytes]
SymmetricEncrypt = Callable[[bytes, bytes], bytes]
SymmetricDecrypt = Callable[[bytes, bytes], bytes]
Encrypter = Callable[[bytes], str]
Decrypter = Callable[[str], bytes]


def encrypt_basic(
    random_password: RandomPassword,
    asymmetric_encrypt: AsymmetricEncrypt,
    symmetric_encrypt: SymmetricEncrypt,
) -> Encrypter:
    """
    Build an encrypter producing ``hyper-protect-basic.<password>.<payload>`` tokens.

    ``asymmetric_encrypt`` is already bound to the recipient's public key.
    Errors from any step propagate unchanged and stop the remaining steps.
    """

    def encrypt(plaintext: bytes) -> str:
        password = random_password()
        encrypted_password = asymmetric_encrypt(password)
        encrypted_payload = symmetric_encrypt(password, plaintext)
        _logger.info(
            "Encrypted payload plaintext_size=%d encrypted_password_size=%d encrypted_payload_size=%d",
            len(plaintext),
            len(encrypted_password),
            len(encrypted_payload),
        )
        return join_token(encrypted_password, encrypted_payload)

    return encrypt


def decrypt_basic(
    asymmetric_decrypt: AsymmetricDecrypt,
    symmetric_decrypt: SymmetricDecrypt,
) -> Decrypter:
    """Build the inverse of :func:`encrypt_basic` for a bound private key."""

    def decrypt(token: str) -> bytes:
        parts = split_token(token)
        encrypted_password = parts.decode_password()
        encrypted_payload = parts.decode_payload()
        password = asymmetric_decrypt(encrypted_password)
        plaintext = symmetric_decrypt(password, encrypted_payload)
        _logger.info("Decrypted payload plaintext_size=%d", len(plaintext))
        return plaintext

    return decrypt
