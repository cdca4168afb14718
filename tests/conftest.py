from __future__ import annotations

from datetime import date

import pytest

from gestao_time.context import build_context
from gestao_time.models import Player, Transaction
from gestao_time.storage import JsonBackend

EMAIL = "tecnico@time.com"
PASSWORD = "segredo123"


@pytest.fixture
def backend(tmp_path):
    """Fresh JSON backend in a temporary data directory."""
    return JsonBackend(tmp_path / "data")


@pytest.fixture
def context(backend, tmp_path):
    return build_context(backend, preferences_path=tmp_path / "preferences.json")


@pytest.fixture
def signed_in(context):
    """Context whose session belongs to a freshly registered account."""
    context.gateway.auth.sign_up(EMAIL, PASSWORD, display_name="Técnico")
    return context


def make_player(player_id: str = "p1", name: str = "Ana", **overrides) -> Player:
    values = dict(id=player_id, name=name, phone="11999990000", monthly_fee=150.0, due_date=date(2024, 3, 10))
    values.update(overrides)
    return Player(**values)


def make_transaction(transaction_id: str = "t1", **overrides) -> Transaction:
    values = dict(
        id=transaction_id,
        type="receita",
        category="Mensalidade",
        description="Mensalidade março",
        amount=150.0,
        date=date(2024, 3, 5),
        payment_method="pix",
    )
    values.update(overrides)
    return Transaction(**values)
