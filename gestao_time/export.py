"""CSV export of the finance page's transaction list."""
from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from .formatting import format_date, format_number
from .models import Transaction

HEADER = ["Data", "Tipo", "Categoria", "Descrição", "Valor", "Método", "Status"]
STATUS_LABEL = "concluído"
MIMETYPE = "text/csv"


def _text(value: object) -> str:
    return str(getattr(value, "value", value))


def transaction_row(transaction: Transaction) -> List[str]:
    return [
        format_date(transaction.date),
        _text(transaction.type),
        transaction.category,
        transaction.description,
        f"R$ {format_number(transaction.amount)}",
        _text(transaction.payment_method),
        STATUS_LABEL,
    ]


def export_csv(transactions: Iterable[Transaction]) -> bytes:
    """Join fields with commas and rows with newlines.

    Fields are written raw, without quoting: a comma inside a description or
    category adds columns to that row.
    """
    rows = [HEADER] + [transaction_row(t) for t in transactions]
    return "\n".join(",".join(row) for row in rows).encode("utf-8")


def export_filename(today: Optional[date] = None) -> str:
    return f"financeiro-{(today or date.today()).isoformat()}.csv"
