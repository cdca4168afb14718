"""Dashboard and finance figures derived from the cached players and transactions.

Everything here is a pure function recomputed on each call; nothing is
memoised between renders.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from .formatting import format_day_month
from .models import PaymentStatus, Player, Transaction, TransactionType

ALL = "todos"


@dataclass
class DashboardStats:
    total_players: int
    paid_players: int
    pending_players: int
    late_players: int
    monthly_revenue: float
    monthly_expenses: float
    monthly_revenue_count: int
    pending_amount: float
    compliance_rate: int

    @property
    def monthly_balance(self) -> float:
        return self.monthly_revenue - self.monthly_expenses


@dataclass
class ActivityItem:
    id: str
    name: str
    status: str
    value: float
    date: str
    description: str


@dataclass
class Partition:
    transactions: List[Transaction] = field(default_factory=list)
    total: float = 0.0


@dataclass
class MonthlySummary:
    revenues: Partition
    expenses: Partition


@dataclass
class LedgerTotals:
    revenue: float
    expenses: float

    @property
    def balance(self) -> float:
        return self.revenue - self.expenses


def compliance_rate(paid: int, total: int) -> int:
    """Percentage of paid players, rounded half up; 0 for an empty roster."""
    if total <= 0:
        return 0
    return int(math.floor(100 * paid / total + 0.5))


def in_month(transaction: Transaction, today: date) -> bool:
    return transaction.date.month == today.month and transaction.date.year == today.year


def _sum(transactions: Iterable[Transaction]) -> float:
    return sum(t.amount for t in transactions)


def monthly_summary(transactions: Sequence[Transaction], today: Optional[date] = None) -> MonthlySummary:
    today = today or date.today()
    current = [t for t in transactions if in_month(t, today)]
    revenues = [t for t in current if t.type == TransactionType.INCOME]
    expenses = [t for t in current if t.type == TransactionType.EXPENSE]
    return MonthlySummary(
        revenues=Partition(revenues, _sum(revenues)),
        expenses=Partition(expenses, _sum(expenses)),
    )


def dashboard_stats(
    players: Sequence[Player],
    transactions: Sequence[Transaction],
    today: Optional[date] = None,
) -> DashboardStats:
    total = len(players)
    paid = sum(1 for p in players if p.payment_status == PaymentStatus.PAID)
    pending = sum(1 for p in players if p.payment_status == PaymentStatus.PENDING)
    late = sum(1 for p in players if p.payment_status == PaymentStatus.LATE)
    summary = monthly_summary(transactions, today)
    pending_amount = sum(
        p.monthly_fee or 0
        for p in players
        if p.payment_status in (PaymentStatus.PENDING.value, PaymentStatus.LATE.value)
    )
    return DashboardStats(
        total_players=total,
        paid_players=paid,
        pending_players=pending,
        late_players=late,
        monthly_revenue=summary.revenues.total,
        monthly_expenses=summary.expenses.total,
        monthly_revenue_count=len(summary.revenues.transactions),
        pending_amount=pending_amount,
        compliance_rate=compliance_rate(paid, total),
    )


def recent_activity(
    transactions: Sequence[Transaction],
    players: Sequence[Player],
    limit: int = 5,
) -> List[ActivityItem]:
    """Latest transactions in cache order, labelled with the player's name when it still exists."""
    names: Dict[str, str] = {p.id: p.name for p in players}
    items: List[ActivityItem] = []
    for t in transactions[:limit]:
        name = names.get(t.player_id) if t.player_id else None
        items.append(
            ActivityItem(
                id=t.id,
                name=name if name is not None else t.description,
                status="pago" if t.type == TransactionType.INCOME else "despesa",
                value=t.amount,
                date=format_day_month(t.date),
                description=t.description,
            )
        )
    return items


def ledger_totals(transactions: Sequence[Transaction]) -> LedgerTotals:
    return LedgerTotals(
        revenue=_sum(t for t in transactions if t.type == TransactionType.INCOME),
        expenses=_sum(t for t in transactions if t.type == TransactionType.EXPENSE),
    )


def filter_transactions(
    transactions: Sequence[Transaction],
    transaction_type: str = ALL,
    month: str | int = ALL,
) -> List[Transaction]:
    """Finance page filter. ``month`` is a 0-based month index and ignores the year."""
    result = []
    for t in transactions:
        if transaction_type != ALL and t.type != transaction_type:
            continue
        if month != ALL and t.date.month - 1 != int(month):
            continue
        result.append(t)
    return result


def filter_players(players: Sequence[Player], search: str = "", payment_status: str = ALL) -> List[Player]:
    term = (search or "").strip().lower()
    result = []
    for p in players:
        if term and term not in p.name.lower() and term not in (p.position or "").lower():
            continue
        if payment_status != ALL and p.payment_status != payment_status:
            continue
        result.append(p)
    return result


def players_by_status(players: Sequence[Player], payment_status: str = ALL) -> List[str]:
    """Ids for the "select by status" shortcut on the messages page."""
    return [p.id for p in players if payment_status == ALL or p.payment_status == payment_status]
