"""Contract of the remote data gateway consumed by the stores.

The gateway owns authentication, account-scoped tables and file storage.
Every failure surfaces as :class:`GatewayError` carrying the backend's
human-readable message, which the application shows verbatim.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol

from .models import User

TABLES = ("players", "transactions", "messages", "profiles", "settings")

AuthListener = Callable[[str, Optional[User]], None]


class GatewayError(RuntimeError):
    """Failure reported by the backend."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthError(GatewayError):
    """Failure reported by the credential service."""


class AuthService(Protocol):
    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> User: ...

    def sign_in_with_password(self, email: str, password: str) -> User: ...

    def sign_out(self) -> None: ...

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None: ...

    def update_user(self, *, email: Optional[str] = None, password: Optional[str] = None) -> User: ...

    def get_user(self) -> Optional[User]: ...

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]: ...


class FileStorage(Protocol):
    def upload(self, path: str, content: bytes, *, content_type: str, upsert: bool = False) -> str: ...

    def remove(self, paths: List[str]) -> None: ...

    def get_public_url(self, path: str) -> str: ...


class Gateway(Protocol):
    auth: AuthService
    storage: FileStorage

    def select(
        self,
        table: str,
        *,
        match: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]: ...

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]: ...

    def update(self, table: str, changes: Dict[str, Any], *, match: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete(self, table: str, *, match: Dict[str, Any]) -> None: ...
