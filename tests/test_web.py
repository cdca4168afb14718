"""
Flask integration tests.
Uses the Flask test client to avoid starting a server.
"""
from __future__ import annotations

from datetime import date
from io import BytesIO

import pytest

from conftest import EMAIL, PASSWORD
from gestao_time.config import TestConfig
from gestao_time.web import create_app


@pytest.fixture
def app(tmp_path):
    config = type("IsolatedConfig", (TestConfig,), {"DATA_DIR": str(tmp_path / "data")})
    return create_app(config)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client):
    resp = client.post("/auth/cadastro", data={"email": EMAIL, "password": PASSWORD, "display_name": "Técnico"})
    assert resp.status_code == 302
    return client


def test_health_is_public(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_pages_redirect_to_auth_without_session(client):
    for path in ["/", "/jogadores", "/financeiro", "/mensagens", "/configuracoes"]:
        resp = client.get(path)
        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/auth")


def test_auth_page_renders(client):
    resp = client.get("/auth")
    assert resp.status_code == 200
    assert "Entrar" in resp.get_data(as_text=True)


def test_wrong_credentials_flash_translated_error(client):
    resp = client.post("/auth/login", data={"email": EMAIL, "password": "errada"}, follow_redirects=True)
    assert "Email ou senha incorretos" in resp.get_data(as_text=True)


def test_sign_up_lands_on_dashboard(logged_in):
    resp = logged_in.get("/")
    assert resp.status_code == 200
    assert "Dashboard" in resp.get_data(as_text=True)


def test_sign_out_then_sign_in(logged_in):
    logged_in.post("/sair")
    assert logged_in.get("/").status_code == 302
    resp = logged_in.post("/auth/login", data={"email": EMAIL, "password": PASSWORD})
    assert resp.headers["Location"].endswith("/")
    assert logged_in.get("/").status_code == 200


def test_create_player_and_change_status(logged_in):
    resp = logged_in.post(
        "/jogadores",
        data={"name": "Ana Souza", "phone": "11911111111", "monthly_fee": "150", "payment_status": "pendente"},
        follow_redirects=True,
    )
    body = resp.get_data(as_text=True)
    assert "Jogador adicionado com sucesso!" in body
    assert "Ana Souza" in body


def test_create_player_without_name_is_rejected(logged_in):
    resp = logged_in.post("/jogadores", data={"name": "  "}, follow_redirects=True)
    assert "O nome do jogador é obrigatório." in resp.get_data(as_text=True)


def test_transaction_and_csv_export(logged_in):
    today = date.today()
    resp = logged_in.post(
        "/financeiro",
        data={
            "type": "receita",
            "category": "Mensalidade",
            "description": "Mensalidade Ana",
            "amount": "150,50",
            "date": today.isoformat(),
            "payment_method": "pix",
        },
        follow_redirects=True,
    )
    assert "Transação adicionada com sucesso!" in resp.get_data(as_text=True)

    resp = logged_in.get("/financeiro/exportar")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert f"financeiro-{today.isoformat()}.csv" in resp.headers["Content-Disposition"]
    lines = resp.get_data(as_text=True).split("\n")
    assert lines[0] == "Data,Tipo,Categoria,Descrição,Valor,Método,Status"
    assert lines[1] == f"{today.strftime('%d/%m/%Y')},receita,Mensalidade,Mensalidade Ana,R$ 150.5,pix,concluído"


def test_invalid_amount_is_rejected(logged_in):
    resp = logged_in.post(
        "/financeiro",
        data={"type": "despesa", "category": "Campo", "description": "Campo", "amount": "abc", "date": "2024-03-01"},
        follow_redirects=True,
    )
    assert "Informe um valor válido." in resp.get_data(as_text=True)


def test_send_messages_renders_links(logged_in):
    logged_in.post("/jogadores", data={"name": "Ana", "phone": "11911111111"})
    page = logged_in.get("/mensagens?selecionar=pendente").get_data(as_text=True)
    assert "Ana" in page

    from gestao_time.storage import JsonBackend

    app = logged_in.application
    backend = JsonBackend(app.config["DATA_DIR"])
    backend.auth.sign_in_with_password(EMAIL, PASSWORD)
    player_id = backend.select("players")[0]["id"]

    resp = logged_in.post("/mensagens/enviar", data={"player_ids": [player_id], "template_id": "3"})
    body = resp.get_data(as_text=True)
    assert resp.status_code == 200
    assert "https://wa.me/5511911111111?text=Fala%20Ana!" in body
    assert "Mensagens enviadas!" in body
    assert len(backend.select("messages")) == 1


def test_send_messages_requires_selection(logged_in):
    resp = logged_in.post("/mensagens/enviar", data={"custom_message": "Oi"}, follow_redirects=True)
    assert "Selecione pelo menos um jogador." in resp.get_data(as_text=True)


def test_settings_profile_and_appearance(logged_in):
    resp = logged_in.post(
        "/configuracoes/perfil",
        data={"team_name": "Vila FC", "due_day": "10", "monthly_fee": "180"},
        follow_redirects=True,
    )
    body = resp.get_data(as_text=True)
    assert "Perfil atualizado com sucesso!" in body
    assert "Vila FC" in body

    resp = logged_in.post("/configuracoes/aparencia", data={"theme": "light", "language": "pt-BR"}, follow_redirects=True)
    assert "Configurações atualizadas com sucesso!" in resp.get_data(as_text=True)


def test_password_mismatch_is_flashed(logged_in):
    resp = logged_in.post(
        "/configuracoes/senha",
        data={"new_password": "abcdef", "confirm_password": "abcdeg"},
        follow_redirects=True,
    )
    assert "As senhas não coincidem" in resp.get_data(as_text=True)


def test_avatar_upload_and_download(logged_in):
    resp = logged_in.post(
        "/configuracoes/avatar",
        data={"avatar": (BytesIO(b"\x89PNG"), "foto.png", "image/png")},
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert "Foto atualizada com sucesso." in resp.get_data(as_text=True)

    from gestao_time.storage import JsonBackend

    backend = JsonBackend(logged_in.application.config["DATA_DIR"])
    user = backend.auth.sign_in_with_password(EMAIL, PASSWORD)
    avatar = logged_in.get(f"/avatars/{user.id}/avatar.png")
    assert avatar.status_code == 200
    assert avatar.data == b"\x89PNG"
    assert logged_in.get("/avatars/nada.png").status_code == 404


def test_oversized_avatar_is_rejected_with_message(logged_in):
    resp = logged_in.post(
        "/configuracoes/avatar",
        data={"avatar": (BytesIO(b"0" * (5 * 1024 * 1024)), "foto.png", "image/png")},
        content_type="multipart/form-data",
        follow_redirects=True,
    )
    assert resp.status_code == 200
    assert "A imagem deve ter no máximo 2MB." in resp.get_data(as_text=True)


def test_appearance_is_kept_per_account(app):
    first = app.test_client()
    second = app.test_client()
    first.post("/auth/cadastro", data={"email": "a@time.com", "password": PASSWORD})
    second.post("/auth/cadastro", data={"email": "b@time.com", "password": PASSWORD})

    first.post("/configuracoes/aparencia", data={"theme": "light", "language": "en-US"})

    assert '<html lang="en-US" class="light">' in first.get("/").get_data(as_text=True)
    assert '<html lang="pt-BR" class="dark">' in second.get("/").get_data(as_text=True)


def test_malformed_month_filter_shows_every_month(logged_in):
    logged_in.post(
        "/financeiro",
        data={
            "type": "despesa",
            "category": "Campo",
            "description": "Aluguel antigo",
            "amount": "40",
            "date": "2023-01-15",
            "payment_method": "pix",
        },
    )
    page = logged_in.get("/financeiro?mes=abc")
    assert page.status_code == 200
    assert "Aluguel antigo" in page.get_data(as_text=True)

    lines = logged_in.get("/financeiro/exportar?mes=13").get_data(as_text=True).split("\n")
    assert len(lines) == 2
    assert "Aluguel antigo" in lines[1]
