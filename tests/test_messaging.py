"""
Tests for template rendering, WhatsApp links and batch sending.
"""
from __future__ import annotations

from datetime import date

import pytest

from conftest import make_player
from gestao_time import messaging
from gestao_time.models import PlayerForm, ValidationError
from gestao_time.stores import MessageStore, PlayerStore


def test_render_replaces_every_occurrence():
    player = make_player(name="Ana")
    assert messaging.render("{NOME} owes, {NOME} pay", player) == "Ana owes, Ana pay"


def test_render_fills_amount_and_due_date():
    player = make_player(monthly_fee=150.0, due_date=date(2024, 3, 10))
    text = messaging.render("R$ {VALOR} até {DATA_VENCIMENTO}", player)
    assert text == "R$ 150 até 10/03/2024"


def test_render_defaults_when_player_has_no_fee_or_due_date():
    player = make_player(monthly_fee=None, due_date=None)
    text = messaging.render("R$ {VALOR} até {DATA_VENCIMENTO}", player, today=date(2024, 5, 1))
    assert text == "R$ 200 até 01/05/2024"


def test_render_leaves_unknown_tokens_and_plain_text_alone():
    player = make_player(name="Ana")
    assert messaging.render("Oi {APELIDO}, tudo bem {NOME}?", player) == "Oi {APELIDO}, tudo bem Ana?"
    plain = "Treino cancelado hoje."
    assert messaging.render(plain, player) == plain
    assert messaging.render(messaging.render(plain, player), player) == plain


def test_render_substitutes_tokens_inside_the_name():
    player = make_player(name="{VALOR}", monthly_fee=150.0)
    assert messaging.render("Oi {NOME}", player) == "Oi 150"


def test_whatsapp_link_prefixes_country_code_and_encodes_text():
    link = messaging.whatsapp_link("11999990000", "Olá Ana! R$ 150 & cia")
    assert link == "https://wa.me/5511999990000?text=Ol%C3%A1%20Ana!%20R%24%20150%20%26%20cia"


def test_whatsapp_link_without_phone():
    assert messaging.whatsapp_link(None, "oi") == "https://wa.me/55?text=oi"


def test_get_template():
    assert messaging.get_template(1).name == "Cobrança Pendente"
    assert messaging.get_template(99) is None


@pytest.fixture
def roster(signed_in):
    players = PlayerStore(signed_in)
    ana = players.create(PlayerForm(name="Ana", phone="11911111111", monthly_fee=150.0, due_date=date(2024, 3, 10)))
    bia = players.create(PlayerForm(name="Bia", phone="11922222222"))
    players.create(PlayerForm(name="Caio", phone="11933333333"))
    return players, ana, bia


def test_send_batch_opens_one_link_per_selected_player(signed_in, roster):
    players, ana, bia = roster
    history = MessageStore(signed_in)
    opened = []
    template = messaging.get_template(1)

    result = messaging.send_batch(
        players.items,
        [bia.id, ana.id],
        history,
        template=template,
        opener=opened.append,
        today=date(2024, 3, 1),
    )

    assert opened == result.links
    assert len(opened) == 2
    # Roster order (by name), not selection order.
    assert opened[0].startswith("https://wa.me/5511911111111?text=")
    assert "R%24%20150" in opened[0]
    assert "R%24%20200" in opened[1]


def test_send_batch_records_a_single_unrendered_history_row(signed_in, roster):
    players, ana, bia = roster
    history = MessageStore(signed_in)

    result = messaging.send_batch(players.items, [ana.id, bia.id], history, custom_text="Oi {NOME}, treino às 19h")

    assert len(history.items) == 1
    record = history.items[0]
    assert record is result.history
    assert record.template_name == messaging.CUSTOM_MESSAGE_NAME
    assert record.content == "Oi {NOME}, treino às 19h"
    assert record.player_ids == [ana.id, bia.id]
    assert record.status == "enviado"
    assert signed_in.notify.last.title == "Mensagens enviadas!"
    assert signed_in.notify.last.description == "2 mensagem(ns) aberta(s) no WhatsApp."


def test_send_batch_requires_text_and_selection(signed_in, roster):
    players, ana, _ = roster
    history = MessageStore(signed_in)

    with pytest.raises(ValidationError, match="Digite uma mensagem"):
        messaging.send_batch(players.items, [ana.id], history, custom_text="   ")
    with pytest.raises(ValidationError, match="Selecione pelo menos um jogador"):
        messaging.send_batch(players.items, [], history, custom_text="Oi")
    assert history.items == []
