from datetime import timedelta

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD
from mailbox_admin.api.endpoints.token import ROLE_USER, create_session_token
from mailbox_admin.models.access_token_model import AccessTokenModel
from mailbox_admin.models.base import utcnow
from mailbox_admin.services.admin_service import AccessTokenService


def sign_in(client, password=ADMIN_PASSWORD):
    return client.post("/api/auth/sign-in/", data={"email": ADMIN_EMAIL, "password": password})


def test_admin_sign_in(client):
    response = sign_in(client)
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"

    token = response.json()["access_token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json() == {"role": "admin", "id": "1", "email": ADMIN_EMAIL}


def test_admin_sign_in_wrong_password(client):
    response = sign_in(client, password="nope")
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_token_login(client, mock_rows, db):
    response = client.post("/api/auth/token-login", json={"token": "token123"})
    assert response.status_code == 200

    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
    me = client.get("/api/auth/me", headers=headers).json()
    assert me["role"] == "user"

    row = db.get(AccessTokenModel, me["id"])
    assert row.token == "token123"
    assert row.last_login_at is not None


def test_token_login_requires_token(client):
    response = client.post("/api/auth/token-login", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Token is required"}


def test_token_login_rejects_blocked_and_unknown(client, mock_rows):
    for token in ("token456", "does-not-exist"):
        response = client.post("/api/auth/token-login", json={"token": token})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or inactive token"}


def test_token_login_rejects_expired(client, db):
    db.add(AccessTokenModel(token="old", expires_at=utcnow() - timedelta(minutes=1)))
    db.commit()

    response = client.post("/api/auth/token-login", json={"token": "old"})
    assert response.status_code == 401


def test_blocking_token_ends_session(client, user_headers, db):
    assert client.get("/api/auth/me", headers=user_headers).status_code == 200

    token_id = client.get("/api/auth/me", headers=user_headers).json()["id"]
    AccessTokenService.set_blocked(db, token_id, True)

    response = client.get("/api/auth/me", headers=user_headers)
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_session_for_deleted_token(client):
    token = create_session_token(ROLE_USER, "5f0c6c64-0000-0000-0000-000000000000")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_garbage_bearer_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_change_admin_password(client, admin_headers):
    response = client.patch(
        "/api/auth/admin/password",
        json={"current_password": "wrong", "new_password": "new-pass"},
        headers=admin_headers,
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Current password is incorrect"}

    response = client.patch(
        "/api/auth/admin/password",
        json={"current_password": ADMIN_PASSWORD, "new_password": "new-pass"},
        headers=admin_headers,
    )
    assert response.status_code == 200

    assert sign_in(client).status_code == 401
    assert sign_in(client, password="new-pass").status_code == 200


def test_user_cannot_change_admin_password(client, user_headers):
    response = client.patch(
        "/api/auth/admin/password",
        json={"current_password": ADMIN_PASSWORD, "new_password": "x"},
        headers=user_headers,
    )
    assert response.status_code == 403
