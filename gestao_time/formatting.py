"""Display formatting shared by the templates, the CSV export and the messages."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

Number = Union[int, float]


def format_number(value: Number) -> str:
    """Shortest textual form of a number: ``150.0`` -> ``"150"``, ``150.5`` -> ``"150.5"``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_day_month(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m")


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y %H:%M:%S")


def format_currency(value: Number) -> str:
    formatted = f"{value:,.2f}"
    formatted = formatted.replace(",", "_")
    formatted = formatted.replace(".", ",")
    formatted = formatted.replace("_", ".")
    return f"R$ {formatted}"
