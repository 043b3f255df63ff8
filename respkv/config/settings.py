"""
respkv Configuration Settings

This module contains all configuration constants for the respkv server.
Values marked with an environment variable can be overridden at startup.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Server configuration settings."""

    # Network settings
    HOST: str = os.environ.get("RESPKV_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("RESPKV_PORT", "6379"))

    # Protocol limits
    READ_BUFFER_SIZE: int = 4096
    MAX_INLINE_LENGTH: int = 64 * 1024
    MAX_BULK_LENGTH: int = 512 * 1024 * 1024

    # TTL settings
    CLEANUP_INTERVAL: float = float(os.environ.get("RESPKV_CLEANUP_INTERVAL", "1"))  # 0 disables the sweep

    # Logging settings
    DEBUG: bool = os.environ.get("RESPKV_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("RESPKV_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
