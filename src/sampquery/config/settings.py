from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    timeout_s: float
    log_level: str


def get_settings() -> Settings:
    """
    Centralized configuration for the query client and CLI.
    Values come from environment variables with safe defaults.
    """
    return Settings(
        host=os.getenv("SAMP_HOST", "127.0.0.1"),
        port=int(os.getenv("SAMP_PORT", "7777")),
        timeout_s=float(os.getenv("SAMP_TIMEOUT_S", "2.0")),
        log_level=os.getenv("SAMP_LOG_LEVEL", "info"),
    )
