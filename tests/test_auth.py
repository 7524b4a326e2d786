import pytest

from conftest import PASSWORD, api, auth_headers
from spabook.core.security import create_refresh_token, password_policy_errors
from spabook.modules.users.service import issue_tokens


@pytest.mark.parametrize(
    "password,ok",
    [
        ("Secreto#2025", True),
        ("short1#A", True),
        ("sinmayus#2025", False),
        ("SINMINUS#2025", False),
        ("SinNumero#", False),
        ("SinEspecial2025", False),
        ("Ab#1", False),
    ],
)
def test_password_policy(password, ok):
    assert (password_policy_errors(password) == []) is ok


def test_password_policy_messages():
    assert password_policy_errors("abc") == [
        "La contraseña debe tener al menos 8 caracteres",
        "La contraseña debe incluir al menos una letra mayúscula",
        "La contraseña debe incluir al menos un número",
        "La contraseña debe incluir al menos un carácter especial",
    ]


async def test_register_login_me(client):
    resp = await client.post(
        api("/auth/register"),
        json={"email": "  Maria@Bondusy.co ", "password": PASSWORD, "full_name": "María López"},
    )
    assert resp.status_code == 201
    user = resp.json()
    assert user["email"] == "maria@bondusy.co"
    assert user["role"] == "patient"
    assert user["full_name"] == "María López"

    resp = await client.post(api("/auth/register"), json={"email": "maria@bondusy.co", "password": PASSWORD, "full_name": "Otra"})
    assert resp.status_code == 409
    assert resp.json()["detail"] == "email_already_exists"

    resp = await client.post(api("/auth/login"), json={"email": "maria@bondusy.co", "password": PASSWORD})
    assert resp.status_code == 200
    tokens = resp.json()
    assert tokens["token_type"] == "bearer"

    resp = await client.get(api("/auth/me"), headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert resp.status_code == 200
    assert resp.json()["id"] == user["id"]

    resp = await client.post(api("/auth/refresh"), json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    assert resp.json()["access_token"]


async def test_register_rejects_weak_password(client):
    resp = await client.post(
        api("/auth/register"),
        json={"email": "weak@bondusy.co", "password": "password", "full_name": "Weak"},
    )
    assert resp.status_code == 422
    assert "letra mayúscula" in resp.text


async def test_oauth2_form_login(client, patient):
    resp = await client.post(api("/auth/token"), data={"username": patient.email, "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.json()["access_token"]

    resp = await client.post(api("/auth/token"), data={"username": "recepcion", "password": PASSWORD})
    assert resp.status_code == 401
    assert resp.json() == {"detail": "invalid_credentials"}


async def test_bad_credentials(client, patient):
    resp = await client.post(api("/auth/login"), json={"email": patient.email, "password": "Wrong#2025x"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "invalid_credentials"


async def test_token_checks(client, patient):
    assert (await client.get(api("/auth/me"))).status_code == 401

    resp = await client.get(api("/auth/me"), headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "invalid_token"

    refresh = create_refresh_token(subject=str(patient.id))
    resp = await client.get(api("/auth/me"), headers={"Authorization": f"Bearer {refresh}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "invalid_token_type"

    resp = await client.post(api("/auth/refresh"), json={"refresh_token": "garbage"})
    assert resp.status_code == 401
    assert resp.json() == {"detail": "invalid_token"}

    access = issue_tokens(patient).access_token
    resp = await client.post(api("/auth/refresh"), json={"refresh_token": access})
    assert resp.status_code == 401
    assert resp.json() == {"detail": "invalid_token_type"}

    assert (await client.get(api("/auth/me"), headers=auth_headers(patient))).status_code == 200


async def test_promote_admin_in_debug(client, patient):
    resp = await client.post(api("/_dev/promote-admin"), params={"email": patient.email})
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"

    resp = await client.post(api("/_dev/promote-admin"), params={"email": "nobody@bondusy.co"})
    assert resp.status_code == 404
    assert resp.json() == {"detail": "user_not_found"}


async def test_health(client):
    assert (await client.get(api("/health"))).json() == {"status": "ok"}
    resp = await client.get(api("/health/db"))
    assert resp.json() == {"status": "ok", "database": "sqlite"}
