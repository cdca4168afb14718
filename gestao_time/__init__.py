"""Core package for the team management application (players, finances, WhatsApp outreach)."""

from importlib import resources


def _load_version() -> str:
    try:
        return resources.files(__name__).joinpath("VERSION").read_text(encoding="utf-8").strip()
    except FileNotFoundError:  # pragma: no cover - fallback for editable installs
        return "0.0.0"


__version__ = _load_version()

__all__ = [
    "models",
    "gateway",
    "storage",
    "stores",
    "metrics",
    "messaging",
    "export",
    "__version__",
]
