from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAMESPACE = "contract_crypt"
DEFAULT_LOG_FILE = "logs/contract-crypt.log"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 5
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _parse_int(value: str, name: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got: {value}") from exc
    if parsed < 0:
        raise ValueError(f"{name} must be >= 0, got: {value}")
    return parsed


def _parse_level(level: str | int) -> int:
    if not isinstance(level, str):
        return int(level)
    normalized = level.strip().upper()
    if normalized.isdigit():
        return int(normalized)
    numeric = logging.getLevelName(normalized)
    if not isinstance(numeric, int):
        raise ValueError(f"Invalid log level: {level}")
    return numeric


def configure_logging(
    *,
    log_file: str | Path | None = None,
    level: str | int | None = None,
    max_bytes: int | None = None,
    backup_count: int | None = None,
    console: bool = False,
) -> logging.Logger:
    """
    Configure logging for the contract_crypt logger namespace.

    A rotating file handler is always attached; ``console=True`` additionally
    mirrors records to stderr, which is what the command line wrapper uses.

    Environment variable overrides:
    - CONTRACT_CRYPT_LOG_FILE
    - CONTRACT_CRYPT_LOG_LEVEL
    - CONTRACT_CRYPT_LOG_MAX_BYTES
    - CONTRACT_CRYPT_LOG_BACKUP_COUNT
    """

    resolved_log_file = Path(
        str(log_file or os.environ.get("CONTRACT_CRYPT_LOG_FILE", DEFAULT_LOG_FILE))
    )
    numeric_level = _parse_level(
        level or os.environ.get("CONTRACT_CRYPT_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    )

    if max_bytes is None:
        max_bytes = _parse_int(
            os.environ.get("CONTRACT_CRYPT_LOG_MAX_BYTES", str(DEFAULT_LOG_MAX_BYTES)),
            "CONTRACT_CRYPT_LOG_MAX_BYTES",
        )
    if backup_count is None:
        backup_count = _parse_int(
            os.environ.get(
                "CONTRACT_CRYPT_LOG_BACKUP_COUNT", str(DEFAULT_LOG_BACKUP_COUNT)
            ),
            "CONTRACT_CRYPT_LOG_BACKUP_COUNT",
        )
    if max_bytes < 0:
        raise ValueError("max_bytes must be >= 0.")
    if backup_count < 0:
        raise ValueError("backup_count must be >= 0.")

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(numeric_level)
    logger.propagate = False
    formatter = logging.Formatter(LOG_FORMAT)

    if console and not any(
        type(existing) is logging.StreamHandler for existing in logger.handlers
    ):
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)
    for existing in logger.handlers:
        if type(existing) is logging.StreamHandler:
            existing.setLevel(numeric_level)

    resolved_log_file.parent.mkdir(parents=True, exist_ok=True)
    resolved_path = resolved_log_file.resolve()
    for existing in logger.handlers:
        if (
            isinstance(existing, RotatingFileHandler)
            and Path(existing.baseFilename).resolve() == resolved_path
        ):
            existing.setLevel(numeric_level)
            return logger

    file_handler = RotatingFileHandler(
        resolved_log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.info(
        "Logging configured (path=%s, level=%s, console=%s)",
        resolved_log_file,
        logging.getLevelName(numeric_level),
        console,
    )
    return logger
