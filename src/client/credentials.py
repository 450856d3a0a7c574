"""Bearer credential providers.

The token is passed explicitly to every component that needs it so tests
and multiple UI clients can hold independent credentials.
"""

from typing import Protocol


class CredentialProvider(Protocol):
    """Source of an optional bearer token."""

    def get_token(self) -> str | None: ...

    def clear(self) -> None: ...


class TokenStore:
    """In-memory credential holder for a single user."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token or None

    def clear(self) -> None:
        self._token = None

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None
