# src/upstream/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:8080/api"
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    page_size: int = 1000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "Settings":
        """Read CHURN_* variables (a local .env file is loaded first, without overriding)."""
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        try:
            timeout = float(environ.get("CHURN_API_TIMEOUT", DEFAULT_TIMEOUT))
        except ValueError:
            timeout = DEFAULT_TIMEOUT
        try:
            page_size = int(environ.get("CHURN_PAGE_SIZE", 1000))
        except ValueError:
            page_size = 1000

        return cls(
            api_url=environ.get("CHURN_API_URL", DEFAULT_API_URL).rstrip("/"),
            username=environ.get("CHURN_API_USERNAME") or None,
            password=environ.get("CHURN_API_PASSWORD") or None,
            timeout=timeout,
            log_level=environ.get("CHURN_LOG_LEVEL", "INFO").upper(),
            page_size=page_size,
        )
