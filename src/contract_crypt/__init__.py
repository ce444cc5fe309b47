"""Hybrid RSA + AES encryption of contract payloads with native and openssl backends."""

from .backend import KEY_LENGTH, CryptoBackend
from .config import EncryptionConfig
from .environment import (
    EncryptionEnvironment,
    build_environment,
    default_encryption,
    native_encryption,
    openssl_encryption,
)
from .exceptions import (
    CertificateParseError,
    ConfigurationError,
    ContractCryptError,
    DecryptionError,
    EncodingError,
    ExternalToolError,
    MessageTooLargeError,
    ParseError,
    SignatureError,
    TokenFormatError,
    UnsupportedKeyTypeError,
)
from .hybrid import decrypt_basic, encrypt_basic
from .keys import (
    PrivateKeyHandle,
    PublicKeyHandle,
    load_certificate,
    load_private_key,
    load_public_key,
    load_public_keys,
)
from .logging_utils import configure_logging
from .native_backend import NativeBackend
from .openssl_backend import OpenSSLBackend
from .token_codec import TOKEN_PREFIX, SplitToken, join_token, split_token

__all__ = [
    "KEY_LENGTH",
    "TOKEN_PREFIX",
    "CertificateParseError",
    "ConfigurationError",
    "ContractCryptError",
    "CryptoBackend",
    "DecryptionError",
    "EncodingError",
    "EncryptionConfig",
    "EncryptionEnvironment",
    "ExternalToolError",
    "MessageTooLargeError",
    "NativeBackend",
    "OpenSSLBackend",
    "ParseError",
    "PrivateKeyHandle",
    "PublicKeyHandle",
    "SignatureError",
    "SplitToken",
    "TokenFormatError",
    "UnsupportedKeyTypeError",
    "build_environment",
    "configure_logging",
    "decrypt_basic",
    "default_encryption",
    "encrypt_basic",
    "join_token",
    "load_certificate",
    "load_private_key",
    "load_public_key",
    "load_public_keys",
    "native_encryption",
    "openssl_encryption",
    "split_token",
]
