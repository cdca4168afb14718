"""
Tests for the dashboard and finance figures.
"""
from __future__ import annotations

from datetime import date

from conftest import make_player, make_transaction
from gestao_time import metrics

TODAY = date(2024, 3, 20)


def test_compliance_rate_is_zero_without_players():
    assert metrics.compliance_rate(0, 0) == 0
    stats = metrics.dashboard_stats([], [], TODAY)
    assert stats.total_players == 0
    assert stats.compliance_rate == 0


def test_compliance_rate_rounds_half_up():
    assert metrics.compliance_rate(1, 3) == 33
    assert metrics.compliance_rate(2, 3) == 67
    assert metrics.compliance_rate(1, 8) == 13  # 12.5
    assert metrics.compliance_rate(3, 3) == 100


def test_dashboard_counts_and_pending_amount():
    players = [
        make_player("p1", payment_status="pago", monthly_fee=150.0),
        make_player("p2", name="Bia", payment_status="pendente", monthly_fee=150.0),
        make_player("p3", name="Caio", payment_status="atrasado", monthly_fee=150.0),
        make_player("p4", name="Duda", payment_status="pendente", monthly_fee=None),
    ]
    stats = metrics.dashboard_stats(players, [], TODAY)
    assert stats.total_players == 4
    assert stats.paid_players == 1
    assert stats.pending_players == 2
    assert stats.late_players == 1
    assert stats.pending_amount == 300
    assert stats.compliance_rate == 25


def test_monthly_figures_only_count_current_month_and_year():
    transactions = [
        make_transaction("t1", amount=150.0, date=date(2024, 3, 1)),
        make_transaction("t2", amount=50.0, date=date(2024, 3, 31)),
        make_transaction("t3", amount=999.0, date=date(2023, 3, 15)),
        make_transaction("t4", amount=80.0, date=date(2024, 2, 29)),
        make_transaction("t5", type="despesa", category="Campo", amount=120.0, date=date(2024, 3, 10)),
    ]
    stats = metrics.dashboard_stats([], transactions, TODAY)
    assert stats.monthly_revenue == 200
    assert stats.monthly_revenue_count == 2
    assert stats.monthly_expenses == 120
    assert stats.monthly_balance == 80

    summary = metrics.monthly_summary(transactions, TODAY)
    assert [t.id for t in summary.revenues.transactions] == ["t1", "t2"]
    assert summary.expenses.total == 120


def test_monthly_balance_matches_signed_sum():
    transactions = [
        make_transaction("t1", amount=200.0),
        make_transaction("t2", type="despesa", amount=75.5),
        make_transaction("t3", type="despesa", amount=24.5),
    ]
    stats = metrics.dashboard_stats([], transactions, date(2024, 3, 1))
    signed = sum(t.amount if t.type == "receita" else -t.amount for t in transactions)
    assert stats.monthly_balance == signed == 100


def test_recent_activity_uses_player_name_and_falls_back_to_description():
    players = [make_player("p1", name="Ana")]
    transactions = [
        make_transaction("t1", player_id="p1", date=date(2024, 3, 5)),
        make_transaction("t2", player_id="removido", description="Mensalidade antiga"),
        make_transaction("t3", type="despesa", description="Aluguel do campo", date=date(2024, 3, 2)),
    ]
    activity = metrics.recent_activity(transactions, players)
    assert [item.name for item in activity] == ["Ana", "Mensalidade antiga", "Aluguel do campo"]
    assert [item.status for item in activity] == ["pago", "pago", "despesa"]
    assert activity[0].date == "05/03"


def test_recent_activity_is_limited_to_five():
    transactions = [make_transaction(f"t{i}") for i in range(8)]
    assert len(metrics.recent_activity(transactions, [])) == 5


def test_ledger_totals_cover_all_transactions():
    transactions = [
        make_transaction("t1", amount=100.0, date=date(2023, 1, 1)),
        make_transaction("t2", amount=40.0, type="despesa"),
    ]
    totals = metrics.ledger_totals(transactions)
    assert totals.revenue == 100
    assert totals.expenses == 40
    assert totals.balance == 60


def test_filter_transactions_month_ignores_year():
    transactions = [
        make_transaction("t1", date=date(2024, 3, 5)),
        make_transaction("t2", date=date(2022, 3, 9)),
        make_transaction("t3", date=date(2024, 4, 1)),
        make_transaction("t4", type="despesa", date=date(2024, 3, 7)),
    ]
    march = metrics.filter_transactions(transactions, metrics.ALL, "2")
    assert [t.id for t in march] == ["t1", "t2", "t4"]
    income = metrics.filter_transactions(transactions, "receita", 2)
    assert [t.id for t in income] == ["t1", "t2"]
    assert len(metrics.filter_transactions(transactions)) == 4


def test_filter_players_by_search_and_status():
    players = [
        make_player("p1", name="Ana Souza", position="Goleira", payment_status="pago"),
        make_player("p2", name="Bia", position="Zagueira", payment_status="pendente"),
        make_player("p3", name="Carla", position=None, payment_status="pendente"),
    ]
    assert [p.id for p in metrics.filter_players(players, "ana")] == ["p1"]
    assert [p.id for p in metrics.filter_players(players, "zag")] == ["p2"]
    assert [p.id for p in metrics.filter_players(players, "", "pendente")] == ["p2", "p3"]
    assert metrics.players_by_status(players, "pago") == ["p1"]
    assert metrics.players_by_status(players) == ["p1", "p2", "p3"]
