"""Sign-up, sign-in, session and password endpoints."""

from learntrack.models.profile import Role

import factories


def _signup(client, **overrides):
    payload = {
        "email": "new@example.com",
        "password": "secret123",
        "full_name": "New Learner",
        "governorate": "Giza",
        "membership_number": "M-1",
    }
    payload.update(overrides)
    return client.post("/api/auth/signup", json=payload)


def test_signup_creates_beginner_learner(client):
    response = _signup(client, email="  New@Example.com ")
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new@example.com"
    assert data["notification"]["title"] == "Account created"

    login = client.post("/api/auth/login", json={"email": "new@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    profile = client.get("/api/profile/me", headers={"Authorization": f"Bearer {token}"}).json()["profile"]
    assert profile["role"] == "learner"
    assert profile["level"] == "Beginner"
    assert profile["points"] == 0


def test_signup_requires_profile_fields(client):
    for field in ("full_name", "governorate", "membership_number"):
        response = _signup(client, **{field: "   "})
        assert response.status_code == 400
        assert response.json()["notification"]["variant"] == "destructive"

    response = client.post("/api/auth/login", json={"email": "new@example.com", "password": "secret123"})
    assert response.status_code == 401


def test_signup_rejects_short_password(client):
    response = _signup(client, password="12345")
    assert response.status_code == 400
    assert "at least 6" in response.json()["detail"]


def test_signup_rejects_duplicate_email(client):
    assert _signup(client).status_code == 201
    response = _signup(client, email="NEW@example.com")
    assert response.status_code == 409


def test_login_with_bad_password(client, register):
    account = register()
    response = client.post("/api/auth/login", json={"email": account.email, "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["redirect_to"] == "/auth"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_session_reports_role(client, register):
    learner = register()
    admin = register(role=Role.ADMIN)

    data = client.get("/api/auth/session", headers=learner.headers).json()
    assert data["user_id"] == learner.user_id
    assert data["is_admin"] is False
    assert data["email"] == learner.email

    assert client.get("/api/auth/session", headers=admin.headers).json()["is_admin"] is True


def test_missing_token_redirects_to_login(client):
    response = client.get("/api/auth/session")
    assert response.status_code == 401
    assert response.json()["redirect_to"] == "/auth"

    response = client.get("/api/auth/session", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_logout_ends_only_that_session(client, register):
    account = register()
    second = client.post("/api/auth/login", json={"email": account.email, "password": account.password})
    other_headers = {"Authorization": f"Bearer {second.json()['access_token']}"}

    response = client.post("/api/auth/logout", headers=account.headers)
    assert response.status_code == 200
    assert response.json()["notification"]["title"] == "Signed out"

    assert client.get("/api/auth/session", headers=account.headers).status_code == 401
    assert client.get("/api/auth/session", headers=other_headers).status_code == 200


def test_refresh_keeps_session(client, register):
    account = register()
    response = client.post("/api/auth/refresh", headers=account.headers)
    assert response.status_code == 200
    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

    session = client.get("/api/auth/session", headers=headers).json()
    original = client.get("/api/auth/session", headers=account.headers).json()
    assert session["session_id"] == original["session_id"]


def test_change_password(client, register):
    account = register()

    response = client.post("/api/profile/password", headers=account.headers,
                           json={"new_password": "another1", "confirm_password": "another2"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Passwords do not match"

    response = client.post("/api/profile/password", headers=account.headers,
                           json={"new_password": "abc", "confirm_password": "abc"})
    assert response.status_code == 400

    response = client.post("/api/profile/password", headers=account.headers,
                           json={"new_password": "another1", "confirm_password": "another1"})
    assert response.status_code == 200
    assert response.json()["notification"]["title"] == "Password updated"

    assert client.post("/api/auth/login", json={"email": account.email, "password": account.password}).status_code == 401
    assert client.post("/api/auth/login", json={"email": account.email, "password": "another1"}).status_code == 200


def test_session_without_profile_redirects_to_login(client, register, seed):
    account = register()
    seed(factories.delete_profile, account.user_id)

    response = client.get("/api/auth/session", headers=account.headers)
    assert response.status_code == 401
    assert response.json()["redirect_to"] == "/auth"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_learner_on_admin_endpoint_is_forbidden(client, register):
    account = register()
    response = client.get("/api/admin/overview", headers=account.headers)
    assert response.status_code == 403
    assert response.json()["redirect_to"] == "/dashboard"
