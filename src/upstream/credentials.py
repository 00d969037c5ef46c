# src/upstream/credentials.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from .settings import Settings


class CredentialsError(RuntimeError):
    pass


class CredentialProvider(Protocol):
    def get(self) -> Tuple[str, str]:
        ...


@dataclass(frozen=True)
class StaticCredentials:
    username: str
    password: str

    def get(self) -> Tuple[str, str]:
        return self.username, self.password


class SettingsCredentials:
    """Credentials taken from Settings; can be filled in later (e.g. from a login form)."""

    def __init__(self, settings: Settings):
        self._username: Optional[str] = settings.username
        self._password: Optional[str] = settings.password

    def set(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    @property
    def available(self) -> bool:
        return bool(self._username and self._password)

    def get(self) -> Tuple[str, str]:
        if not self.available:
            raise CredentialsError("No API credentials configured (CHURN_API_USERNAME / CHURN_API_PASSWORD)")
        return self._username, self._password


def parse_credentials(text: str) -> StaticCredentials:
    """Parse the "username:password" form used by the login prompt."""
    idx = (text or "").find(":")
    if idx <= 0:
        raise CredentialsError("Invalid format. Use username:password")
    return StaticCredentials(text[:idx], text[idx + 1:])
