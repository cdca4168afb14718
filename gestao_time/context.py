"""Explicit application context: session, theme, language and notifications.

The objects here are built once by :func:`build_context` and handed to the
stores and to the web/CLI front ends. Theme and language start from the
persisted preference (or the configured default) and live for the whole
process; nothing needs tearing down except the session's auth subscription.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import i18n
from .gateway import Gateway
from .models import Settings, Theme, User

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    title: str
    description: Optional[str] = None
    variant: str = "default"

    @property
    def destructive(self) -> bool:
        return self.variant == "destructive"


Notifier = Callable[[Notification], None]


class NotificationCenter:
    """Keeps the notifications raised during a session and forwards them."""

    def __init__(self, sink: Optional[Notifier] = None) -> None:
        self.history: List[Notification] = []
        self._sink = sink

    def __call__(self, notification: Notification) -> None:
        self.history.append(notification)
        if notification.destructive:
            logger.warning("%s: %s", notification.title, notification.description)
        if self._sink is not None:
            self._sink(notification)

    def success(self, title: str, description: Optional[str] = None) -> None:
        self(Notification(title, description))

    def error(self, title: str, description: Optional[str] = None) -> None:
        self(Notification(title, description, "destructive"))

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None


class PreferenceFile:
    """Small JSON document holding client-side preferences."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else None
        self._values: Dict[str, Any] = {}
        if self.path is not None and self.path.exists():
            try:
                self._values = json.loads(self.path.read_text(encoding="utf-8"))
            except ValueError:
                logger.warning("Ignoring unreadable preference file %s", self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._values, indent=2), encoding="utf-8")


class ThemeContext:
    def __init__(self, preferences: PreferenceFile, default: str = Theme.DARK.value) -> None:
        self._preferences = preferences
        stored = preferences.get("theme")
        self.theme = stored if stored in {item.value for item in Theme} else default

    def set_theme(self, theme: str) -> None:
        if theme not in {item.value for item in Theme}:
            raise ValueError(f"Tema desconhecido: {theme}")
        self.theme = theme
        self._preferences.set("theme", theme)

    def toggle(self) -> str:
        self.set_theme(Theme.LIGHT.value if self.theme == Theme.DARK.value else Theme.DARK.value)
        return self.theme


class LanguageContext:
    def __init__(self, preferences: PreferenceFile, default: str = i18n.DEFAULT_LANGUAGE) -> None:
        self._preferences = preferences
        stored = preferences.get("language")
        self.language = stored if stored in i18n.LANGUAGES else default

    def set_language(self, language: str) -> None:
        if language not in i18n.LANGUAGES:
            raise ValueError(f"Idioma desconhecido: {language}")
        self.language = language
        self._preferences.set("language", language)

    def t(self, key: str) -> str:
        return i18n.translate(self.language, key)


AccountListener = Callable[[Optional[User]], None]


class SessionContext:
    """Tracks the authenticated account and tells subscribers when it changes."""

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway
        self.user: Optional[User] = gateway.auth.get_user()
        self._listeners: List[AccountListener] = []
        self._unsubscribe = gateway.auth.on_auth_state_change(self._on_auth_event)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    def _on_auth_event(self, event: str, user: Optional[User]) -> None:
        previous = self.user_id
        self.user = user
        logger.debug("Auth event %s (account %s)", event, self.user_id)
        if self.user_id != previous:
            for listener in list(self._listeners):
                listener(self.user)

    def subscribe(self, listener: AccountListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self._unsubscribe()
        self._listeners.clear()


@dataclass
class AppContext:
    gateway: Gateway
    session: SessionContext
    theme: ThemeContext
    language: LanguageContext
    notify: NotificationCenter = field(default_factory=NotificationCenter)

    def use_settings(self, settings: Optional[Settings]) -> None:
        """Take theme and language from the account's settings row without persisting them."""
        if settings is None:
            return
        if settings.theme in {item.value for item in Theme}:
            self.theme.theme = settings.theme
        if settings.language in i18n.LANGUAGES:
            self.language.language = settings.language


def build_context(
    gateway: Gateway,
    *,
    preferences_path: Optional[Path] = None,
    default_theme: str = Theme.DARK.value,
    default_language: str = i18n.DEFAULT_LANGUAGE,
    sink: Optional[Notifier] = None,
) -> AppContext:
    preferences = PreferenceFile(preferences_path)
    return AppContext(
        gateway=gateway,
        session=SessionContext(gateway),
        theme=ThemeContext(preferences, default_theme),
        language=LanguageContext(preferences, default_language),
        notify=NotificationCenter(sink),
    )
