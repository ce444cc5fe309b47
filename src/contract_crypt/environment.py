from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable

from .backend import KEY_LENGTH, CryptoBackend
from .config import EncryptionConfig
from .exceptions import ConfigurationError
from .hybrid import Decrypter, Encrypter, decrypt_basic, encrypt_basic
from .keys import PrivateKeyHandle, PublicKeyHandle
from .native_backend import NativeBackend
from .openssl_backend import OpenSSLBackend

_logger = logging.getLogger("contract_crypt.environment")


@dataclass(frozen=True)
class EncryptionEnvironment:
    """Operations bound to one backend, resolved once and shared read-only."""

    name: str
    encrypt_basic: Callable[[PublicKeyHandle], Encrypter]
    decrypt_basic: Callable[[PrivateKeyHandle], Decrypter]
    sign_digest: Callable[[PrivateKeyHandle, bytes], bytes]
    verify_digest: Callable[[PublicKeyHandle, bytes, bytes], bool]
    public_key_fingerprint: Callable[[PublicKeyHandle], str]
    private_key_fingerprint: Callable[[PrivateKeyHandle], str]
    cert_fingerprint: Callable[[bytes | str], str]
    cert_serial: Callable[[bytes | str], str]
    private_key: Callable[[], PrivateKeyHandle]
    public_key: Callable[[PrivateKeyHandle], PublicKeyHandle]
    random_password: Callable[[int], bytes]


def build_environment(
    backend: CryptoBackend, *, key_length: int = KEY_LENGTH
) -> EncryptionEnvironment:
    def encrypter(public_key: PublicKeyHandle) -> Encrypter:
        return encrypt_basic(
            partial(backend.random_password, key_length),
            partial(backend.asymmetric_encrypt, public_key),
            backend.symmetric_encrypt,
        )

    def decrypter(private_key: PrivateKeyHandle) -> Decrypter:
        return decrypt_basic(
            partial(backend.asymmetric_decrypt, private_key),
            backend.symmetric_decrypt,
        )

    return EncryptionEnvironment(
        name=backend.name,
        encrypt_basic=encrypter,
        decrypt_basic=decrypter,
        sign_digest=backend.sign_digest,
        verify_digest=backend.verify_digest,
        public_key_fingerprint=backend.public_key_fingerprint,
        private_key_fingerprint=backend.private_key_fingerprint,
        cert_fingerprint=backend.cert_fingerprint,
        cert_serial=backend.cert_serial,
        private_key=backend.private_key,
        public_key=backend.public_key,
        random_password=backend.random_password,
    )


def native_encryption(config: EncryptionConfig | None = None) -> EncryptionEnvironment:
    config = config or EncryptionConfig()
    return build_environment(NativeBackend(rsa_key_bits=config.rsa_key_bits))


def openssl_encryption(config: EncryptionConfig | None = None) -> EncryptionEnvironment:
    config = config or EncryptionConfig()
    return build_environment(OpenSSLBackend.from_config(config))


def default_encryption(config: EncryptionConfig | None = None) -> EncryptionEnvironment:
    """
    Resolve the encryption environment for this process.

    ``backend="auto"`` uses the openssl binary named by ``OPENSSL_BIN`` when it
    runs, and the native backend otherwise. ``backend="openssl"`` requires a
    working binary.
    """
    config = config or EncryptionConfig.from_env()

    if config.backend == "native":
        _logger.info("Using native encryption backend.")
        return native_encryption(config)

    if config.backend == "openssl":
        backend = OpenSSLBackend.from_config(config)
        if not backend.is_available():
            raise ConfigurationError(
                f"openssl backend requested but '{backend.openssl_bin}' is not usable."
            )
        _logger.info("Using openssl encryption backend bin=%s", backend.openssl_bin)
        return build_environment(backend)

    if config.openssl_bin:
        backend = OpenSSLBackend.from_config(config)
        if backend.is_available():
            _logger.info("Using openssl encryption backend bin=%s", backend.openssl_bin)
            return build_environment(backend)
        _logger.warning(
            "OPENSSL_BIN=%s is not usable, falling back to native backend.",
            config.openssl_bin,
        )

    _logger.info("Using native encryption backend.")
    return native_encryption(config)
