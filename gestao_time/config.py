"""Default configuration for the Flask front end.

Values can be overridden with ``GESTAO_``-prefixed environment variables,
e.g. ``GESTAO_DATA_DIR=/srv/gestao``.
"""
from __future__ import annotations

from pathlib import Path


class Config:
    SECRET_KEY = "gestao-time-demo"
    DATA_DIR = str(Path("data"))
    DEFAULT_THEME = "dark"
    DEFAULT_LANGUAGE = "pt-BR"
    COUNTRY_CODE = "55"
    # Upper bound on request bodies (avatar uploads are capped lower by the profile store).
    MAX_CONTENT_LENGTH = 4 * 1024 * 1024
    LOG_LEVEL = "INFO"


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    LOG_LEVEL = "DEBUG"
