"""
Runtime settings read from the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    expansion_url: Optional[str] = None
    expansion_api_key: Optional[str] = None
    expansion_timeout: float = 30.0
    host: str = "127.0.0.1"
    port: int = 8765
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build settings from CANVAS_* environment variables."""
    return Settings(
        expansion_url=os.environ.get("CANVAS_EXPANSION_URL") or None,
        expansion_api_key=os.environ.get("CANVAS_EXPANSION_API_KEY") or None,
        expansion_timeout=float(os.environ.get("CANVAS_EXPANSION_TIMEOUT", "30")),
        host=os.environ.get("CANVAS_HOST", "127.0.0.1"),
        port=int(os.environ.get("CANVAS_PORT", "8765")),
        log_level=os.environ.get("CANVAS_LOG_LEVEL", "INFO").upper(),
    )
