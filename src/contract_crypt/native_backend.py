from __future__ import annotations

import base64
import logging
import secrets

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .backend import (
    AES_BLOCK_SIZE,
    AES_KEY_SIZE,
    KEY_LENGTH,
    PBKDF2_ITERATIONS,
    SALT_SIZE,
    SALTED_MAGIC,
    validate_password_length,
)
from .config import DEFAULT_RSA_KEY_BITS
from .exceptions import (
    CertificateParseError,
    ContractCryptError,
    DecryptionError,
    MessageTooLargeError,
    ParseError,
    SignatureError,
    UnsupportedKeyTypeError,
    format_exception,
)
from .keys import (
    PrivateKeyHandle,
    PublicKeyHandle,
    fingerprint_der,
    format_serial,
    load_private_key,
    load_public_key,
)

_logger = logging.getLogger("contract_crypt.native")

RSA_PUBLIC_EXPONENT = 65537


def _derive_key_and_iv(password: bytes, salt: bytes) -> tuple[bytes, bytes]:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=AES_KEY_SIZE + AES_BLOCK_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    material = kdf.derive(password)
    return material[:AES_KEY_SIZE], material[AES_KEY_SIZE:]


def _spki_der(public_key: rsa.RSAPublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _load_x509(certificate: bytes | str) -> x509.Certificate:
    data = certificate.encode("utf-8") if isinstance(certificate, str) else certificate
    try:
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise CertificateParseError(
            f"Invalid X.509 certificate: {format_exception(exc)}"
        ) from exc


class NativeBackend:
    """In-process backend built on the ``cryptography`` package."""

    name = "native"

    def __init__(self, rsa_key_bits: int = DEFAULT_RSA_KEY_BITS) -> None:
        self._rsa_key_bits = rsa_key_bits

    @staticmethod
    def _public(handle: PublicKeyHandle) -> rsa.RSAPublicKey:
        key = serialization.load_der_public_key(handle.der)
        if not isinstance(key, rsa.RSAPublicKey):
            raise UnsupportedKeyTypeError("Only RSA public keys are supported.")
        return key

    @staticmethod
    def _private(handle: PrivateKeyHandle) -> rsa.RSAPrivateKey:
        try:
            key = serialization.load_der_private_key(handle.der, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise ParseError(f"Invalid private key: {format_exception(exc)}") from exc
        if not isinstance(key, rsa.RSAPrivateKey):
            raise UnsupportedKeyTypeError("Only RSA private keys are supported.")
        return key

    def random_password(self, count: int = KEY_LENGTH) -> bytes:
        """Return ``count`` characters drawn from the base64 alphabet."""
        validate_password_length(count)
        return base64.b64encode(secrets.token_bytes(count))[:count]

    def private_key(self, bits: int | None = None) -> PrivateKeyHandle:
        key_size = bits or self._rsa_key_bits
        key = rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT, key_size=key_size
        )
        encoded = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        _logger.info("Generated RSA private key key_size=%d", key_size)
        return load_private_key(encoded)

    def public_key(self, private_key: PrivateKeyHandle) -> PublicKeyHandle:
        return load_public_key(_spki_der(self._private(private_key).public_key()))

    def asymmetric_encrypt(self, public_key: PublicKeyHandle, message: bytes) -> bytes:
        if len(message) > public_key.max_message_length:
            raise MessageTooLargeError(
                f"Message of {len(message)} bytes exceeds the "
                f"{public_key.max_message_length} byte limit of a "
                f"{public_key.key_size}-bit RSA key."
            )
        try:
            ciphertext = self._public(public_key).encrypt(message, padding.PKCS1v15())
        except ValueError as exc:
            _logger.exception("RSA encryption failed key_size=%d", public_key.key_size)
            raise ContractCryptError(
                f"RSA encryption failed: {format_exception(exc)}"
            ) from exc
        _logger.debug(
            "RSA encryption complete message_size=%d ciphertext_size=%d",
            len(message),
            len(ciphertext),
        )
        return ciphertext

    def asymmetric_decrypt(self, private_key: PrivateKeyHandle, ciphertext: bytes) -> bytes:
        try:
            message = self._private(private_key).decrypt(ciphertext, padding.PKCS1v15())
        except ValueError as exc:
            _logger.warning(
                "RSA decryption failed ciphertext_size=%d", len(ciphertext)
            )
            raise DecryptionError(
                f"RSA decryption failed: {format_exception(exc)}"
            ) from exc
        _logger.debug(
            "RSA decryption complete ciphertext_size=%d message_size=%d",
            len(ciphertext),
            len(message),
        )
        return message

    def symmetric_encrypt(self, password: bytes, plaintext: bytes) -> bytes:
        salt = secrets.token_bytes(SALT_SIZE)
        key, iv = _derive_key_and_iv(password, salt)
        padder = sym_padding.PKCS7(AES_BLOCK_SIZE * 8).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        body = encryptor.update(padded) + encryptor.finalize()
        _logger.debug(
            "AES-256-CBC encryption complete plaintext_size=%d ciphertext_size=%d",
            len(plaintext),
            len(body),
        )
        return SALTED_MAGIC + salt + body

    def symmetric_decrypt(self, password: bytes, ciphertext: bytes) -> bytes:
        header_size = len(SALTED_MAGIC) + SALT_SIZE
        if not ciphertext.startswith(SALTED_MAGIC):
            raise DecryptionError("Ciphertext is missing the salted header.")
        body = ciphertext[header_size:]
        if not body or len(body) % AES_BLOCK_SIZE:
            raise DecryptionError(
                f"Ciphertext body must be a non-empty multiple of {AES_BLOCK_SIZE} bytes."
            )
        key, iv = _derive_key_and_iv(password, ciphertext[len(SALTED_MAGIC):header_size])
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()
        unpadder = sym_padding.PKCS7(AES_BLOCK_SIZE * 8).unpadder()
        try:
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            _logger.warning("AES-256-CBC decryption failed ciphertext_size=%d", len(body))
            raise DecryptionError(
                f"Symmetric decryption failed: {format_exception(exc)}"
            ) from exc
        _logger.debug(
            "AES-256-CBC decryption complete ciphertext_size=%d plaintext_size=%d",
            len(body),
            len(plaintext),
        )
        return plaintext

    def sign_digest(self, private_key: PrivateKeyHandle, data: bytes) -> bytes:
        """Sign the SHA-256 digest of ``data`` with RSASSA-PKCS1-v1_5."""
        signature = self._private(private_key).sign(
            data, padding.PKCS1v15(), hashes.SHA256()
        )
        _logger.info(
            "Signed digest algorithm=rsa_pkcs1v15_sha256 signature_size=%d",
            len(signature),
        )
        return signature

    def verify_digest(
        self, public_key: PublicKeyHandle, data: bytes, signature: bytes
    ) -> bool:
        try:
            self._public(public_key).verify(
                signature, data, padding.PKCS1v15(), hashes.SHA256()
            )
        except InvalidSignature as exc:
            _logger.warning(
                "Digest verification failed algorithm=rsa_pkcs1v15_sha256"
            )
            raise SignatureError("Signature does not match the digest.") from exc
        _logger.info("Verified digest algorithm=rsa_pkcs1v15_sha256")
        return True

    def public_key_fingerprint(self, public_key: PublicKeyHandle) -> str:
        return fingerprint_der(_spki_der(self._public(public_key)))

    def private_key_fingerprint(self, private_key: PrivateKeyHandle) -> str:
        return fingerprint_der(_spki_der(self._private(private_key).public_key()))

    def cert_fingerprint(self, certificate: bytes | str) -> str:
        key = _load_x509(certificate).public_key()
        if not isinstance(key, rsa.RSAPublicKey):
            raise UnsupportedKeyTypeError("Only certificates with RSA keys are supported.")
        return fingerprint_der(_spki_der(key))

    def cert_serial(self, certificate: bytes | str) -> str:
        return format_serial(_load_x509(certificate).serial_number)
