"""Runtime configuration for bindletrust.

Supports environment variable configuration with explicit overrides from the
CLI.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from bindletrust.security import DEFAULT_MAX_DOCUMENT_SIZE, SecurityLimits

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Invalid configuration value."""
    pass


@dataclass
class SigningConfig:
    """
    Configuration for signing and verification commands.

    Defaults:
    - private_key: None (must be given by file or environment)
    - keyring_path: None
    - log_level: WARNING
    - max_document_size: 10 MB
    """

    private_key: bytes | None = None
    keyring_path: Path | None = None
    log_level: str = "WARNING"
    max_document_size: int = DEFAULT_MAX_DOCUMENT_SIZE

    def __post_init__(self):
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}")

        if self.max_document_size < 1:
            raise ConfigError(f"max_document_size must be >= 1, got {self.max_document_size}")

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)

    def limits(self) -> SecurityLimits:
        """Security limits for documents read under this configuration."""
        return SecurityLimits(max_document_size=self.max_document_size)

    @classmethod
    def from_env(cls) -> SigningConfig:
        """
        Create configuration from environment variables.

        Environment variables:
            BINDLETRUST_SIGNING_PRIVATE_KEY: Base64-encoded Ed25519 private key
            BINDLETRUST_KEYRING: Path to the default keyring file
            BINDLETRUST_LOG_LEVEL: Logging level name
            BINDLETRUST_MAX_DOCUMENT_SIZE: Byte limit for invoices and keyrings
        """
        private_key = None
        priv_b64 = os.getenv("BINDLETRUST_SIGNING_PRIVATE_KEY")
        if priv_b64:
            try:
                private_key = base64.b64decode(priv_b64.strip(), validate=True)
            except binascii.Error as e:
                raise ConfigError("Invalid base64 in BINDLETRUST_SIGNING_PRIVATE_KEY") from e

        keyring = os.getenv("BINDLETRUST_KEYRING")

        size_str = os.getenv("BINDLETRUST_MAX_DOCUMENT_SIZE", str(DEFAULT_MAX_DOCUMENT_SIZE))
        try:
            max_size = int(size_str)
        except ValueError as e:
            raise ConfigError(f"BINDLETRUST_MAX_DOCUMENT_SIZE must be an integer, got {size_str!r}") from e

        return cls(
            private_key=private_key,
            keyring_path=Path(keyring) if keyring else None,
            log_level=os.getenv("BINDLETRUST_LOG_LEVEL", "WARNING"),
            max_document_size=max_size,
        )
