"""Persistent storage helpers and the bundled JSON-file backend.

``JsonBackend`` plays the part of the managed backend: it keeps every table
in one JSON document, scopes rows to the signed-in account and stores avatar
files on disk.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar, get_args, get_origin, get_type_hints
from uuid import uuid4

from werkzeug.security import check_password_hash, generate_password_hash

from . import models
from .gateway import TABLES, AuthError, AuthListener, GatewayError

logger = logging.getLogger(__name__)

DATA_FILENAME = "gestao.json"
DEFAULT_STRUCTURE: Dict[str, Any] = {
    "users": [],
    "password_resets": [],
    "players": [],
    "transactions": [],
    "messages": [],
    "profiles": [],
    "settings": [],
}
# Tables that carry created_at/updated_at columns.
TIMESTAMPED = {"players", "transactions", "profiles", "settings"}
MIN_PASSWORD_LENGTH = 6
SINGLE_ROW_ERROR = "JSON object requested, multiple (or no) rows returned"

T = TypeVar("T")


def ensure_storage(data_file: Path) -> None:
    """Create the storage file if it does not exist."""
    if not data_file.parent.exists():
        data_file.parent.mkdir(parents=True, exist_ok=True)
    if not data_file.exists():
        data_file.write_text(json.dumps(DEFAULT_STRUCTURE, indent=2), encoding="utf-8")


def load_data(data_file: Path) -> Dict[str, Any]:
    ensure_storage(data_file)
    data = json.loads(data_file.read_text(encoding="utf-8"))
    for key, default in DEFAULT_STRUCTURE.items():
        if key not in data:
            data[key] = list(default)
    return data


def save_data(data_file: Path, data: Dict[str, Any]) -> None:
    ensure_storage(data_file)
    data_file.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def serialize_entity(entity: Any) -> Dict[str, Any]:
    if hasattr(entity, "to_dict"):
        return entity.to_dict()  # type: ignore[return-value]
    result = asdict(entity)
    for field_name, field_value in list(result.items()):
        if isinstance(field_value, (date, datetime)):
            result[field_name] = field_value.isoformat()
    return result


def _annotation_matches(annotation: Any, target: type) -> bool:
    """Return True if the annotation is ``target`` or ``Optional[target]``."""

    if annotation is None:
        return False
    if annotation is target:
        return True
    origin = get_origin(annotation)
    if origin is None:
        return False
    return any(arg is target for arg in get_args(annotation))


def instantiate(model_cls: Type[T], payload: Dict[str, Any]) -> T:
    """Create a dataclass instance from a stored row, ignoring unknown columns."""

    known = model_cls.__dataclass_fields__  # type: ignore[attr-defined]
    kwargs = {key: value for key, value in payload.items() if key in known}
    type_hints = get_type_hints(model_cls)
    for name in known:
        value = kwargs.get(name)
        if not isinstance(value, str):
            continue
        annotation = type_hints.get(name)
        if _annotation_matches(annotation, datetime):
            kwargs[name] = parse_datetime(value)
        elif _annotation_matches(annotation, date):
            kwargs[name] = parse_date(value)
        elif _annotation_matches(annotation, float) and value:
            kwargs[name] = float(value)
    return model_cls(**kwargs)  # type: ignore[arg-type]


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _matches(row: Dict[str, Any], match: Dict[str, Any]) -> bool:
    return all(row.get(key) == value for key, value in match.items())


def _sort_key(column: str) -> Callable[[Dict[str, Any]], Any]:
    def key(row: Dict[str, Any]) -> Any:
        value = row.get(column)
        if isinstance(value, str):
            value = value.casefold()
        return (value is None, value if value is not None else "")

    return key


class JsonBackend:
    """Account-scoped tables kept in a JSON document under ``data_dir``."""

    def __init__(self, data_dir: Path | str, *, public_url_base: str = "/avatars") -> None:
        self.data_dir = Path(data_dir)
        self.data_file = self.data_dir / DATA_FILENAME
        self.auth = JsonAuth(self)
        self.storage = JsonFileStorage(self.data_dir / "avatars", public_url_base=public_url_base)

    # Raw document -------------------------------------------------------
    def _load(self) -> Dict[str, Any]:
        return load_data(self.data_file)

    def _save(self, data: Dict[str, Any]) -> None:
        save_data(self.data_file, data)

    def _owner(self) -> str:
        user = self.auth.get_user()
        if user is None:
            raise GatewayError("Usuário não autenticado")
        return user.id

    def _rows(self, data: Dict[str, Any], table: str) -> List[Dict[str, Any]]:
        if table not in TABLES:
            raise GatewayError(f'relation "public.{table}" does not exist')
        return data.setdefault(table, [])

    # Table operations ---------------------------------------------------
    def select(
        self,
        table: str,
        *,
        match: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        owner = self._owner()
        data = self._load()
        criteria = dict(match or {})
        rows = [dict(row) for row in self._rows(data, table) if row.get("user_id") == owner and _matches(row, criteria)]
        if order:
            rows.sort(key=_sort_key(order), reverse=descending)
        return rows

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        owner = self._owner()
        data = self._load()
        rows = self._rows(data, table)
        stored = dict(row)
        stored["id"] = str(uuid4())
        stored["user_id"] = owner
        if table in TIMESTAMPED:
            stored["created_at"] = stored["updated_at"] = _now()
        if table == "messages":
            stored["sent_at"] = _now()
        rows.append(stored)
        self._save(data)
        logger.debug("Inserted %s row %s", table, stored["id"])
        return dict(stored)

    def update(self, table: str, changes: Dict[str, Any], *, match: Dict[str, Any]) -> Dict[str, Any]:
        owner = self._owner()
        data = self._load()
        targets = [row for row in self._rows(data, table) if row.get("user_id") == owner and _matches(row, match)]
        if len(targets) != 1:
            raise GatewayError(SINGLE_ROW_ERROR)
        target = targets[0]
        protected = {"id", "user_id", "created_at"}
        target.update({key: value for key, value in changes.items() if key not in protected})
        if table in TIMESTAMPED:
            target["updated_at"] = _now()
        self._save(data)
        return dict(target)

    def delete(self, table: str, *, match: Dict[str, Any]) -> None:
        owner = self._owner()
        data = self._load()
        rows = self._rows(data, table)
        rows[:] = [row for row in rows if not (row.get("user_id") == owner and _matches(row, match))]
        self._save(data)

    # Used by the credential service ---------------------------------------
    def _provision_account(self, data: Dict[str, Any], user: models.User) -> None:
        """Create the profile and settings rows a new account starts with."""

        profile = serialize_entity(models.Profile(id=str(uuid4()), user_id=user.id, display_name=user.display_name))
        settings = serialize_entity(models.Settings(id=str(uuid4()), user_id=user.id))
        for row in (profile, settings):
            row["created_at"] = row["updated_at"] = _now()
        data.setdefault("profiles", []).append(profile)
        data.setdefault("settings", []).append(settings)


class JsonAuth:
    """Credential service backed by the ``users`` collection."""

    def __init__(self, backend: JsonBackend) -> None:
        self._backend = backend
        self._current: Optional[models.User] = None
        self._listeners: List[AuthListener] = []

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self._current)

    def _find(self, data: Dict[str, Any], *, email: Optional[str] = None, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        for item in data.setdefault("users", []):
            if email is not None and item.get("email", "").lower() == email.lower():
                return item
            if user_id is not None and item.get("id") == user_id:
                return item
        return None

    @staticmethod
    def _as_user(record: Dict[str, Any]) -> models.User:
        return models.User(id=record["id"], email=record["email"], display_name=record.get("display_name"))

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> models.User:
        email = (email or "").strip()
        if not email or "@" not in email:
            raise AuthError("Unable to validate email address: invalid format")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.")
        data = self._backend._load()
        if self._find(data, email=email) is not None:
            raise AuthError("User already registered")
        record = {
            "id": str(uuid4()),
            "email": email,
            "display_name": display_name or None,
            "password_hash": generate_password_hash(password),
            "created_at": _now(),
        }
        data["users"].append(record)
        user = self._as_user(record)
        self._backend._provision_account(data, user)
        self._backend._save(data)
        logger.info("Account created for %s", email)
        self._current = user
        self._emit("SIGNED_IN")
        return user

    def sign_in_with_password(self, email: str, password: str) -> models.User:
        data = self._backend._load()
        record = self._find(data, email=(email or "").strip())
        if record is None or not check_password_hash(record["password_hash"], password or ""):
            raise AuthError("Invalid login credentials")
        self._current = self._as_user(record)
        self._emit("SIGNED_IN")
        return self._current

    def set_session(self, user_id: Optional[str]) -> Optional[models.User]:
        """Restore a previously established session (e.g. from a cookie)."""

        record = self._find(self._backend._load(), user_id=user_id) if user_id else None
        self._current = self._as_user(record) if record else None
        self._emit("INITIAL_SESSION")
        return self._current

    def sign_out(self) -> None:
        self._current = None
        self._emit("SIGNED_OUT")

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        data = self._backend._load()
        data["password_resets"].append({"email": email, "redirect_to": redirect_to, "requested_at": _now()})
        self._backend._save(data)
        logger.info("Password reset requested for %s", email)

    def update_user(self, *, email: Optional[str] = None, password: Optional[str] = None) -> models.User:
        if self._current is None:
            raise AuthError("Auth session missing!")
        data = self._backend._load()
        record = self._find(data, user_id=self._current.id)
        if record is None:
            raise AuthError("User not found")
        if email is not None:
            other = self._find(data, email=email)
            if other is not None and other["id"] != record["id"]:
                raise AuthError("A user with this email address has already been registered")
            record["email"] = email
        if password is not None:
            if len(password) < MIN_PASSWORD_LENGTH:
                raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.")
            record["password_hash"] = generate_password_hash(password)
        self._backend._save(data)
        self._current = self._as_user(record)
        self._emit("USER_UPDATED")
        return self._current

    def get_user(self) -> Optional[models.User]:
        return self._current

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe


class JsonFileStorage:
    """Public file bucket stored under ``root``."""

    def __init__(self, root: Path, *, public_url_base: str = "/avatars") -> None:
        self.root = Path(root)
        self.public_url_base = public_url_base.rstrip("/")

    def _resolve(self, path: str) -> Path:
        root = self.root.resolve()
        target = (root / path).resolve()
        if root not in target.parents:
            raise GatewayError("Invalid key")
        return target

    def upload(self, path: str, content: bytes, *, content_type: str, upsert: bool = False) -> str:
        target = self._resolve(path)
        if target.exists() and not upsert:
            raise GatewayError("The resource already exists")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.debug("Stored %s (%s, %d bytes)", path, content_type, len(content))
        return path

    def remove(self, paths: Iterable[str]) -> None:
        for path in paths:
            target = self._resolve(path)
            if target.exists():
                target.unlink()

    def get_public_url(self, path: str) -> str:
        return f"{self.public_url_base}/{path}"

    def open(self, path: str) -> Path:
        target = self._resolve(path)
        if not target.exists():
            raise GatewayError("Object not found")
        return target
