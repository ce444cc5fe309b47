from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from .exceptions import ConfigurationError

BackendName = Literal["auto", "native", "openssl"]

DEFAULT_RSA_KEY_BITS = 4096
SUPPORTED_RSA_KEY_BITS = (2048, 3072, 4096)


@dataclass(frozen=True)
class EncryptionConfig:
    """Runtime configuration for backend selection."""

    openssl_bin: str | None = None
    backend: BackendName = "auto"
    rsa_key_bits: int = DEFAULT_RSA_KEY_BITS
    tool_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.backend not in ("auto", "native", "openssl"):
            raise ConfigurationError(
                f"backend must be one of auto, native, openssl, got: {self.backend}"
            )
        if self.rsa_key_bits not in SUPPORTED_RSA_KEY_BITS:
            raise ConfigurationError(
                "RSA key size must be one of: 2048, 3072, 4096."
            )
        if self.tool_timeout is not None and self.tool_timeout <= 0:
            raise ConfigurationError("tool_timeout must be > 0.")

    @classmethod
    def from_env(cls) -> "EncryptionConfig":
        openssl_bin = os.environ.get("OPENSSL_BIN") or None
        backend = os.environ.get("CONTRACT_CRYPT_BACKEND", "auto").strip().lower()
        bits_raw = os.environ.get("CONTRACT_CRYPT_RSA_BITS")
        timeout_raw = os.environ.get("CONTRACT_CRYPT_TOOL_TIMEOUT")

        rsa_key_bits = DEFAULT_RSA_KEY_BITS
        if bits_raw:
            try:
                rsa_key_bits = int(bits_raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"CONTRACT_CRYPT_RSA_BITS must be an integer, got: {bits_raw}"
                ) from exc

        tool_timeout: float | None = None
        if timeout_raw:
            try:
                tool_timeout = float(timeout_raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"CONTRACT_CRYPT_TOOL_TIMEOUT must be a number, got: {timeout_raw}"
                ) from exc

        return cls(
            openssl_bin=openssl_bin,
            backend=backend,  # type: ignore[arg-type]
            rsa_key_bits=rsa_key_bits,
            tool_timeout=tool_timeout,
        )

    def resolved_openssl_bin(self) -> str:
        return self.openssl_bin or "openssl"
