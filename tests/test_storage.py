"""
Tests for the bundled JSON backend: account scoping, credentials and files.
"""
from __future__ import annotations

import pytest

from conftest import EMAIL, PASSWORD
from gestao_time.gateway import AuthError, GatewayError
from gestao_time.storage import SINGLE_ROW_ERROR, JsonBackend


def test_sign_up_provisions_profile_and_settings(backend):
    user = backend.auth.sign_up(EMAIL, PASSWORD, display_name="Técnico")
    profiles = backend.select("profiles")
    settings = backend.select("settings")
    assert len(profiles) == 1 and len(settings) == 1
    assert profiles[0]["user_id"] == user.id
    assert profiles[0]["team_name"] == "Meu Time"
    assert profiles[0]["monthly_fee"] == 200.0
    assert settings[0]["theme"] == "dark"


@pytest.mark.parametrize(
    "email,password,message",
    [
        ("sem-arroba", PASSWORD, "Unable to validate email address: invalid format"),
        (EMAIL, "123", "Password should be at least 6 characters."),
    ],
)
def test_sign_up_rejects_invalid_credentials(backend, email, password, message):
    with pytest.raises(AuthError) as excinfo:
        backend.auth.sign_up(email, password)
    assert excinfo.value.message == message


def test_duplicate_sign_up_and_wrong_password(backend):
    backend.auth.sign_up(EMAIL, PASSWORD)
    with pytest.raises(AuthError, match="User already registered"):
        backend.auth.sign_up(EMAIL.upper(), PASSWORD)
    with pytest.raises(AuthError, match="Invalid login credentials"):
        backend.auth.sign_in_with_password(EMAIL, "errada")
    assert backend.auth.sign_in_with_password(EMAIL, PASSWORD).email == EMAIL


def test_table_access_requires_a_session(backend):
    with pytest.raises(GatewayError):
        backend.select("players")


def test_rows_are_scoped_to_the_signed_in_account(tmp_path):
    backend = JsonBackend(tmp_path)
    backend.auth.sign_up("a@time.com", PASSWORD)
    first = backend.insert("players", {"name": "Ana"})
    backend.auth.sign_up("b@time.com", PASSWORD)
    backend.insert("players", {"name": "Bia"})

    assert [row["name"] for row in backend.select("players")] == ["Bia"]
    with pytest.raises(GatewayError) as excinfo:
        backend.update("players", {"name": "Outra"}, match={"id": first["id"]})
    assert excinfo.value.message == SINGLE_ROW_ERROR

    backend.delete("players", match={"id": first["id"]})
    backend.auth.sign_in_with_password("a@time.com", PASSWORD)
    assert [row["name"] for row in backend.select("players")] == ["Ana"]


def test_insert_stamps_ids_and_timestamps(backend):
    user = backend.auth.sign_up(EMAIL, PASSWORD)
    row = backend.insert("players", {"name": "Ana", "user_id": "outro"})
    assert row["id"]
    assert row["user_id"] == user.id
    assert row["created_at"] == row["updated_at"]
    message = backend.insert("messages", {"template_name": "x", "content": "y", "player_ids": []})
    assert message["sent_at"]


def test_select_orders_case_insensitively(backend):
    backend.auth.sign_up(EMAIL, PASSWORD)
    for name in ["carla", "Ana", "bia"]:
        backend.insert("players", {"name": name})
    assert [row["name"] for row in backend.select("players", order="name")] == ["Ana", "bia", "carla"]
    assert [row["name"] for row in backend.select("players", order="name", descending=True)] == ["carla", "bia", "Ana"]


def test_unknown_table(backend):
    backend.auth.sign_up(EMAIL, PASSWORD)
    with pytest.raises(GatewayError, match="does not exist"):
        backend.select("coaches")


def test_auth_events_reach_listeners(backend):
    events = []
    unsubscribe = backend.auth.on_auth_state_change(lambda event, user: events.append((event, user and user.email)))
    backend.auth.sign_up(EMAIL, PASSWORD)
    backend.auth.sign_out()
    unsubscribe()
    backend.auth.sign_in_with_password(EMAIL, PASSWORD)
    assert events == [("SIGNED_IN", EMAIL), ("SIGNED_OUT", None)]


def test_file_storage_upload_open_and_remove(backend):
    bucket = backend.storage
    bucket.upload("u1/avatar.png", b"png", content_type="image/png")
    with pytest.raises(GatewayError, match="already exists"):
        bucket.upload("u1/avatar.png", b"png", content_type="image/png")
    bucket.upload("u1/avatar.png", b"novo", content_type="image/png", upsert=True)
    assert bucket.open("u1/avatar.png").read_bytes() == b"novo"
    assert bucket.get_public_url("u1/avatar.png") == "/avatars/u1/avatar.png"

    bucket.remove(["u1/avatar.png"])
    with pytest.raises(GatewayError, match="Object not found"):
        bucket.open("u1/avatar.png")
    with pytest.raises(GatewayError, match="Invalid key"):
        bucket.open("../gestao.json")
