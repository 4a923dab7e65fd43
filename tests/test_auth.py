import pytest
from conftest import brewery_form


def test_register_and_me(client):
    r = client.post("/auth/register", json={"email": "u1@example.com", "password": "password123", "display_name": "Ana"})
    assert r.status_code == 201, r.text
    token = r.json()["access_token"]
    assert token

    r2 = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert r2.status_code == 200, r2.text
    body = r2.json()
    assert body["email"] == "u1@example.com"
    assert body["display_name"] == "Ana"
    assert body["role"] == "user"
    assert body["is_active"] is True


def test_register_duplicate_email_409(client):
    r1 = client.post("/auth/register", json={"email": "dup@example.com", "password": "password123"})
    assert r1.status_code == 201

    r2 = client.post("/auth/register", json={"email": "DUP@example.com", "password": "password123"})
    assert r2.status_code == 409


def test_login_invalid_credentials_401(client):
    r = client.post("/auth/token", data={"username": "nope@example.com", "password": "password123"})
    assert r.status_code == 401


def test_login_success(client):
    client.post("/auth/register", json={"email": "u2@example.com", "password": "password123"})
    r = client.post("/auth/token", data={"username": "u2@example.com", "password": "password123"})
    assert r.status_code == 200, r.text
    assert "access_token" in r.json()


def test_protected_routes_require_token(client):
    assert client.get("/me").status_code == 401
    assert client.get("/breweries/mine").status_code == 401
    assert client.get("/breweries/create").status_code == 401

    r = client.get("/breweries/mine", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401


def _load_manage():
    import importlib.util
    from pathlib import Path

    path = Path(__file__).resolve().parent.parent / "scripts" / "manage.py"
    spec = importlib.util.spec_from_file_location("manage", path)
    manage = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(manage)
    return manage


def test_manage_set_role_promotes_user(client, register):
    manage = _load_manage()
    headers, _ = register("boss@example.com")

    with pytest.raises(SystemExit):
        manage.main(["set-role", "boss@example.com", "overlord"])
    assert manage.main(["set-role", "nobody@example.com", "admin"]) == 1

    assert manage.main(["set-role", "Boss@example.com", "admin"]) == 0
    assert client.get("/me", headers=headers).json()["role"] == "admin"


def test_manage_transfer_hands_brewery_to_another_user(client, register):
    manage = _load_manage()
    owner, _ = register("owner@example.com")
    heir, heir_id = register("heir@example.com")
    assert client.post("/breweries", data=brewery_form(), headers=owner).status_code == 201

    assert manage.main(["transfer", "no-such-brewery", "heir@example.com"]) == 1
    assert manage.main(["transfer", "river-brew", "ghost@example.com"]) == 1

    assert manage.main(["transfer", "river-brew", "heir@example.com"]) == 0
    assert client.get("/breweries/river-brew").json()["brewery"]["owner_id"] == heir_id
    assert [b["slug"] for b in client.get("/breweries/mine", headers=heir).json()["items"]] == ["river-brew"]
    assert client.get("/breweries/mine", headers=owner).json()["items"] == []
