"""Tests for the /auth endpoints."""

from datetime import timedelta

import pytest

from estate_api.models.user import User
from estate_api.utils.auth import create_access_token, decode_token

REGISTER = "/api/v1/auth/register"
LOGIN = "/api/v1/auth/login"
ME = "/api/v1/auth/me"


def registration(**overrides) -> dict:
    payload = {
        "name": "User A",
        "email": "a@x.com",
        "phone": "07701234567",
        "password": "password123",
        "confirm_password": "password123",
    }
    payload.update(overrides)
    return payload


class TestRegister:
    """Tests for POST /auth/register."""

    def test_creates_individual_account(self, client) -> None:
        response = client.post(REGISTER, json=registration())

        assert response.status_code == 201
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["email"] == "a@x.com"
        assert body["user"]["role"] == "individual"
        assert body["user"]["phone"] == "+9647701234567"
        assert body["user"]["is_active"] is True
        assert "password" not in body["user"]
        assert "password_hash" not in body["user"]
        assert decode_token(body["access_token"]).subject == body["user"]["id"]

    def test_email_is_lowercased(self, client) -> None:
        response = client.post(REGISTER, json=registration(email="Mixed.Case@X.com"))
        assert response.json()["user"]["email"] == "mixed.case@x.com"

    def test_duplicate_email_conflicts(self, client) -> None:
        assert client.post(REGISTER, json=registration()).status_code == 201

        response = client.post(REGISTER, json=registration(email="A@X.COM"))
        assert response.status_code == 409
        assert response.json()["detail"] == "Email already registered"

    def test_agency_account(self, client) -> None:
        response = client.post(REGISTER, json=registration(
            user_type="agency",
            agency_name="Tigris Homes",
            license_number="LIC-12345",
        ))

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["role"] == "agency"
        assert user["agency_info"]["agency_name"] == "Tigris Homes"
        assert user["agency_info"]["license_number"] == "LIC-12345"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"user_type": "admin"},
            {"user_type": "agency"},
            {"user_type": "agency", "agency_name": "Tigris Homes", "license_number": "123"},
            {"confirm_password": "password124"},
            {"password": "short", "confirm_password": "short"},
            {"phone": "12345"},
            {"email": "not-an-email"},
            {"name": "A"},
        ],
    )
    def test_invalid_payload(self, client, overrides) -> None:
        response = client.post(REGISTER, json=registration(**overrides))
        assert response.status_code == 422

    def test_longest_accepted_email_still_authenticates(self, client) -> None:
        email = "a" * 64 + "@" + "b" * 31 + ".com"
        assert len(email) == 100

        response = client.post(REGISTER, json=registration(email=email))
        assert response.status_code == 201

        token = response.json()["access_token"]
        assert len(token) <= 500
        me = client.get(ME, headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == email

    def test_overlong_email_rejected(self, client) -> None:
        email = "a" * 64 + "@" + "b" * 32 + ".com"

        response = client.post(REGISTER, json=registration(email=email))
        assert response.status_code == 422

    def test_role_field_cannot_grant_admin(self, client) -> None:
        response = client.post(REGISTER, json=registration(role="admin", is_active=False))

        assert response.status_code == 201
        assert response.json()["user"]["role"] == "individual"
        assert response.json()["user"]["is_active"] is True


class TestLogin:
    """Tests for POST /auth/login."""

    def test_success_updates_last_login(self, client, make_user, fetch) -> None:
        user = make_user(email="a@x.com")
        assert user.last_login is None

        response = client.post(LOGIN, json={"email": "A@x.com", "password": "password123"})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == str(user.id)
        assert fetch(User, user.id).last_login is not None

    @pytest.mark.parametrize(
        "credentials",
        [
            {"email": "a@x.com", "password": "wrong-password"},
            {"email": "nobody@x.com", "password": "password123"},
        ],
    )
    def test_failures_share_one_message(self, client, make_user, credentials) -> None:
        make_user(email="a@x.com")

        response = client.post(LOGIN, json=credentials)
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password"

    def test_inactive_account(self, client, make_user) -> None:
        make_user(email="a@x.com", is_active=False)

        response = client.post(LOGIN, json={"email": "a@x.com", "password": "password123"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Account is deactivated. Please contact support"

    def test_login_token_works(self, client, make_user) -> None:
        make_user(email="a@x.com")
        token = client.post(LOGIN, json={"email": "a@x.com", "password": "password123"}).json()["access_token"]

        response = client.get(ME, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["email"] == "a@x.com"


class TestVerifyToken:
    """Tests for POST /auth/verify-token."""

    def test_valid(self, client, make_user) -> None:
        user = make_user()
        token = client.post(LOGIN, json={"email": user.email, "password": "password123"}).json()["access_token"]

        response = client.post("/api/v1/auth/verify-token", json={"token": token})
        assert response.status_code == 200
        assert response.json()["valid"] is True
        assert response.json()["user"]["id"] == str(user.id)

    def test_invalid(self, client) -> None:
        response = client.post("/api/v1/auth/verify-token", json={"token": "garbage-token-value"})
        assert response.status_code == 401


class TestMe:
    """Tests for GET /auth/me and the shared bearer rejections."""

    def test_missing_header(self, client) -> None:
        response = client.get(ME)
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_scheme(self, client, make_user, auth_headers) -> None:
        token = auth_headers(make_user())["Authorization"].split(" ")[1]

        response = client.get(ME, headers={"Authorization": f"Token {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid authorization header"

    def test_expired_token(self, client, make_user) -> None:
        user = make_user()
        token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(seconds=-5))

        response = client.get(ME, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired. Please log in again"

    def test_tampered_token(self, client, make_user, auth_headers) -> None:
        header = auth_headers(make_user())["Authorization"]

        response = client.get(ME, headers={"Authorization": header[:-4] + "AAAA"})
        assert response.status_code == 401

    def test_inactive_user_with_valid_token(self, client, make_user, auth_headers) -> None:
        user = make_user(is_active=False)

        response = client.get(ME, headers=auth_headers(user))
        assert response.status_code == 401
        assert response.json()["detail"] == "Account is deactivated. Please contact support"
