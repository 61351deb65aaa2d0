"""
Tests for guest demo accounts: creation, role switching and upgrade.
"""

from app.models import User

from conftest import VALID_PASSWORD, auth_headers, create_guest, register


# =============================================================================
# Guest registration
# =============================================================================

def test_guest_register_without_body(client):
    data = create_guest(client)

    user = data["user"]
    assert data["isGuest"] is True
    assert user["isGuest"] is True
    assert user["isVerified"] is True
    assert user["role"] == "applicant"
    assert user["name"] == "Demo Applicant"
    assert user["email"].endswith("@demo.yaake.com")
    assert user["guestMetadata"]["originalRole"] == "applicant"
    assert user["guestMetadata"]["roleSwitchCount"] == 0
    assert data["credentials"]["email"] == user["email"]


def test_guest_response_flags_guest_mode(client):
    response = client.post("/api/auth/guest-register", json={"name": "Demo User"})

    assert response.status_code == 201
    assert response.json()["isGuestMode"] is True


def test_guest_credentials_can_log_in(client):
    data = create_guest(client, name="Demo User", role="applicant")

    response = client.post("/api/auth/login", json=data["credentials"])

    assert response.status_code == 200
    assert response.json()["data"]["user"]["id"] == data["user"]["id"]


def test_guest_emails_are_unique(client):
    first = create_guest(client)
    second = create_guest(client)

    assert first["user"]["email"] != second["user"]["email"]


def test_guest_unknown_role_falls_back_to_applicant(client):
    data = create_guest(client, role="wizard")

    assert data["user"]["role"] == "applicant"


def test_guest_recruiter_gets_demo_company(client):
    data = create_guest(client, role="recruiter")

    assert data["user"]["role"] == "recruiter"
    assert data["user"]["companyName"] == "Demo Company"
    assert data["user"]["name"] == "Demo Recruiter"


def test_guest_name_too_short(client):
    response = client.post("/api/auth/guest-register", json={"name": "A"})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "name"


def test_guest_me_includes_guest_mode(client):
    token = create_guest(client)["token"]

    response = client.get("/api/auth/me", headers=auth_headers(token))

    assert response.status_code == 200
    assert response.json()["isGuestMode"] is True


# =============================================================================
# Role switching
# =============================================================================

def test_switch_role_rejects_full_accounts(client):
    token = register(client, email="full@example.com").json()["data"]["token"]

    response = client.post(
        "/api/auth/switch-role",
        json={"newRole": "recruiter"},
        headers=auth_headers(token),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "GUEST_ONLY"


def test_switch_role_requires_authentication(client):
    response = client.post("/api/auth/switch-role", json={"newRole": "recruiter"})

    assert response.status_code == 401


def test_switch_role_increments_count_by_one(client):
    data = create_guest(client, role="applicant")
    headers = auth_headers(data["token"])

    first = client.post("/api/auth/switch-role", json={"newRole": "recruiter"}, headers=headers)
    second = client.post("/api/auth/switch-role", json={"newRole": "career_trainer"}, headers=headers)

    assert first.status_code == 200
    first_user = first.json()["data"]["user"]
    assert first_user["role"] == "recruiter"
    assert first_user["companyName"] == "Demo Company"
    assert first_user["guestMetadata"]["roleSwitchCount"] == 1

    second_user = second.json()["data"]["user"]
    assert second_user["role"] == "career_trainer"
    assert second_user["guestMetadata"]["roleSwitchCount"] == 2
    assert second_user["guestMetadata"]["originalRole"] == "applicant"


def test_switch_role_rejects_invalid_role(client):
    data = create_guest(client)
    headers = auth_headers(data["token"])

    invalid = client.post("/api/auth/switch-role", json={"newRole": "admin"}, headers=headers)
    missing = client.post("/api/auth/switch-role", json={}, headers=headers)

    assert invalid.status_code == 400
    assert invalid.json()["code"] == "INVALID_ROLE"
    assert missing.status_code == 400
    assert missing.json()["code"] == "INVALID_ROLE"

    me = client.get("/api/auth/me", headers=headers).json()["data"]["user"]
    assert me["role"] == "applicant"
    assert me["guestMetadata"]["roleSwitchCount"] == 0


def test_token_issued_before_switch_sees_new_role(client):
    data = create_guest(client, role="applicant")
    old_token = data["token"]

    client.post(
        "/api/auth/switch-role",
        json={"newRole": "recruiter"},
        headers=auth_headers(old_token),
    )

    me = client.get("/api/auth/me", headers=auth_headers(old_token)).json()
    assert me["data"]["user"]["role"] == "recruiter"


# =============================================================================
# Upgrade
# =============================================================================

def upgrade(client, token, email="real@example.com", password=VALID_PASSWORD):
    return client.post(
        "/api/auth/upgrade-guest",
        json={"email": email, "password": password, "confirmPassword": password},
        headers=auth_headers(token),
    )


def test_upgrade_rejects_full_accounts(client):
    token = register(client, email="full@example.com").json()["data"]["token"]

    response = upgrade(client, token)

    assert response.status_code == 403
    assert response.json()["code"] == "GUEST_ONLY"


def test_upgrade_turns_guest_into_unverified_account(client, notifier, db_session):
    data = create_guest(client, role="recruiter")

    response = upgrade(client, data["token"], email="Real@Example.com")

    assert response.status_code == 200
    body = response.json()
    user = body["data"]["user"]
    assert user["email"] == "real@example.com"
    assert user["isGuest"] is False
    assert user["isVerified"] is False
    assert user["guestMetadata"]["upgradedAt"] is not None
    assert user["guestMetadata"]["originalRole"] == "recruiter"
    assert body["data"]["emailSent"] is True
    assert "isGuestMode" not in body

    stored = db_session.query(User).filter(User.id == data["user"]["id"]).one()
    assert stored.verification_token == notifier.last_verification_token("real@example.com")


def test_upgraded_account_logs_in_with_new_credentials(client):
    data = create_guest(client)
    upgrade(client, data["token"], password="Upgraded@123")

    old = client.post("/api/auth/login", json=data["credentials"])
    new = client.post(
        "/api/auth/login",
        json={"email": "real@example.com", "password": "Upgraded@123"},
    )

    assert old.status_code == 401
    assert new.status_code == 200


def test_upgrade_then_verify(client, notifier):
    data = create_guest(client)
    upgrade(client, data["token"])
    token = notifier.last_verification_token("real@example.com")

    response = client.get(f"/api/auth/verify-email/{token}")

    assert response.status_code == 200
    me = client.get("/api/auth/me", headers=auth_headers(data["token"])).json()
    assert me["data"]["user"]["isVerified"] is True
    assert notifier.welcome_emails == ["real@example.com"]


def test_upgrade_to_existing_email(client):
    register(client, email="taken@example.com")
    data = create_guest(client)

    response = upgrade(client, data["token"], email="taken@example.com")

    assert response.status_code == 400
    assert response.json()["code"] == "ALREADY_EXISTS"


def test_upgraded_account_cannot_switch_role(client):
    data = create_guest(client)
    upgrade(client, data["token"])

    response = client.post(
        "/api/auth/switch-role",
        json={"newRole": "recruiter"},
        headers=auth_headers(data["token"]),
    )

    assert response.status_code == 403
