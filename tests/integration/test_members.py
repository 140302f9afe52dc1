"""Integration tests for accounts, profile, addresses and user management."""

import pytest
from tests.factories import UserFactory


async def _register(client, email="asha@example.com", password="secret123"):
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": "Asha"},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    return body["user"], {"Authorization": f"Bearer {body['token']}"}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_register_login_and_me(client):
    user, headers = await _register(client)

    login = await client.post(
        "/api/auth/login",
        json={"email": "asha@example.com", "password": "secret123"},
    )
    me = await client.get("/api/auth/me", headers=headers)

    assert login.status_code == 200
    assert login.json()["user"]["id"] == user["id"]
    assert me.status_code == 200
    assert me.json()["email"] == "asha@example.com"
    assert me.json()["roles"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_register_duplicate_email(client):
    await _register(client)

    response = await client.post(
        "/api/auth/register",
        json={"email": "asha@example.com", "password": "another1"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_wrong_password(client):
    await _register(client)

    response = await client.post(
        "/api/auth/login",
        json={"email": "asha@example.com", "password": "wrong-password"},
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_owner_email_registers_as_admin(client):
    user, _ = await _register(client, email="owner@zoyabites.in")

    assert user["roles"] == ["admin"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_profile_update(client):
    _, headers = await _register(client)

    response = await client.put(
        "/api/profile", json={"phone": "9000000000"}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["phone"] == "9000000000"
    assert response.json()["name"] == "Asha"


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


ADDRESS = {
    "label": "Home",
    "address_line": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_first_address_default_then_explicit_default_flips(client):
    _, headers = await _register(client)

    first = await client.post("/api/addresses", json=ADDRESS, headers=headers)
    second = await client.post(
        "/api/addresses",
        json={**ADDRESS, "label": "Work", "is_default": True},
        headers=headers,
    )
    listed = await client.get("/api/addresses", headers=headers)

    assert first.status_code == 201
    assert first.json()["is_default"] is True
    assert second.json()["is_default"] is True
    defaults = {a["id"]: a["is_default"] for a in listed.json()}
    assert defaults == {first.json()["id"]: False, second.json()["id"]: True}
    assert listed.json()[0]["id"] == second.json()["id"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_set_default_and_delete_address(client):
    _, headers = await _register(client)
    first = (await client.post("/api/addresses", json=ADDRESS, headers=headers)).json()
    second = (
        await client.post(
            "/api/addresses", json={**ADDRESS, "label": "Work"}, headers=headers
        )
    ).json()

    switched = await client.put(
        f"/api/addresses/{second['id']}/default", headers=headers
    )
    deleted = await client.delete(f"/api/addresses/{second['id']}", headers=headers)
    listed = await client.get("/api/addresses", headers=headers)

    assert switched.json()["is_default"] is True
    assert deleted.status_code == 200
    assert [(a["id"], a["is_default"]) for a in listed.json()] == [
        (first["id"], True)
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cannot_touch_another_users_address(client):
    _, alice = await _register(client, email="alice@example.com")
    _, bob = await _register(client, email="bob@example.com")
    bobs = (await client.post("/api/addresses", json=ADDRESS, headers=bob)).json()

    response = await client.put(
        f"/api/addresses/{bobs['id']}", json={"city": "Mysuru"}, headers=alice
    )

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_access_code_grant_has_no_address_book(client, seller_headers):
    response = await client.get("/api/addresses", headers=seller_headers)

    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Admin user management
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_grants_and_revokes_seller_role(client, db_session, admin_headers):
    user = UserFactory.create()
    db_session.add(user)
    await db_session.commit()

    granted = await client.post(
        f"/api/admin/users/{user.id}/roles",
        json={"role": "seller"},
        headers=admin_headers,
    )
    revoked = await client.delete(
        f"/api/admin/users/{user.id}/roles/seller", headers=admin_headers
    )

    assert granted.status_code == 200
    assert granted.json()["roles"] == ["seller"]
    assert revoked.json()["roles"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_rejects_unknown_role(client, db_session, admin_headers):
    user = UserFactory.create()
    db_session.add(user)
    await db_session.commit()

    response = await client.post(
        f"/api/admin/users/{user.id}/roles",
        json={"role": "superuser"},
        headers=admin_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_creates_and_deletes_user(client, admin_headers):
    created = await client.post(
        "/api/admin/users",
        json={"email": "new@example.com", "password": "secret123"},
        headers=admin_headers,
    )
    user_id = created.json()["id"]
    deleted = await client.delete(f"/api/admin/users/{user_id}", headers=admin_headers)
    listed = await client.get("/api/admin/users", headers=admin_headers)

    assert created.status_code == 201
    assert deleted.status_code == 200
    assert user_id not in [u["id"] for u in listed.json()]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_cannot_manage_users(client, seller_headers):
    response = await client.get("/api/admin/users", headers=seller_headers)

    assert response.status_code == 403
