"""
Gateway configuration.

Read once from environment variables (a project-root .env file is loaded first):

- GATEWAY_STORE_BACKEND: "supabase" (default) or "memory"
- RATE_LIMIT_BACKEND: "memory" (default, single instance) or "supabase"
- RATE_LIMIT_WINDOW_SECONDS: admission window length, default 3600
- LOG_LEVEL: root log level, default INFO
- CORS_ALLOW_ORIGINS: comma-separated origins, default "*"
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_STORE_BACKENDS = ("supabase", "memory")
_RATE_LIMIT_BACKENDS = ("memory", "supabase")


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "supabase"
    rate_limit_backend: str = "memory"
    rate_limit_window_seconds: int = 3600
    log_level: str = "INFO"
    cors_allow_origins: Tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        if self.store_backend not in _STORE_BACKENDS:
            raise ValueError(f"GATEWAY_STORE_BACKEND must be one of {_STORE_BACKENDS}, got {self.store_backend!r}")
        if self.rate_limit_backend not in _RATE_LIMIT_BACKENDS:
            raise ValueError(
                f"RATE_LIMIT_BACKEND must be one of {_RATE_LIMIT_BACKENDS}, got {self.rate_limit_backend!r}"
            )
        if self.rate_limit_window_seconds < 1:
            raise ValueError("RATE_LIMIT_WINDOW_SECONDS must be >= 1")


def load_settings() -> Settings:
    origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
    return Settings(
        store_backend=os.getenv("GATEWAY_STORE_BACKEND", "supabase").strip().lower(),
        rate_limit_backend=os.getenv("RATE_LIMIT_BACKEND", "memory").strip().lower(),
        rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "3600")),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        cors_allow_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
    )
