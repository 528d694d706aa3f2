"""
Authentication tests.

Verifies:
- Registration validates the form and opens a session
- Login / logout / me
- Unauthenticated requests return 401 on every protected resource
"""

import pytest

from conftest import PASSWORD, auth_headers
from facturflow.services import session_service


class TestRegister:

    def test_register_creates_account_and_session(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Alice Martin",
            "email": "Alice@Example.fr",
            "password": PASSWORD,
            "confirm_password": PASSWORD,
        })
        assert resp.status_code == 201
        assert resp.json["user"]["email"] == "alice@example.fr"
        assert resp.json["token"]

        me = client.get("/api/auth/me", headers=auth_headers(resp.json["token"]))
        assert me.status_code == 200
        assert me.json["user"]["name"] == "Alice Martin"

    def test_weak_password(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Alice Martin", "email": "alice@example.fr", "password": "short",
        })
        assert resp.status_code == 400
        assert any(d["field"] == "password" for d in resp.json["details"])

    def test_password_mismatch(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Alice Martin", "email": "alice@example.fr",
            "password": PASSWORD, "confirm_password": "Password124!",
        })
        assert resp.status_code == 400
        assert any(d["field"] == "confirm_password" for d in resp.json["details"])

    def test_duplicate_email(self, client, user):
        resp = client.post("/api/auth/register", json={
            "name": "Jean Bis", "email": user.email, "password": PASSWORD,
        })
        assert resp.status_code == 409


class TestLogin:

    def test_login(self, client, user):
        resp = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json["user"]["id"] == user.id
        assert resp.json["user"]["has_company_profile"] is True

    def test_wrong_password(self, client, user):
        resp = client.post("/api/auth/login", json={"email": user.email, "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "x@example.fr"})
        assert resp.status_code == 400

    def test_inactive_account(self, client, db_session, user):
        user.is_active = False
        db_session.commit()
        resp = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 401


class TestSessions:

    def test_logout_revokes_token(self, client, token):
        headers = auth_headers(token)
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_invalid_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"

    def test_deactivated_user_token_rejected(self, client, db_session, user, token):
        user.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/company"),
            ("PUT", "/api/company"),
            ("GET", "/api/clients"),
            ("POST", "/api/clients"),
            ("GET", "/api/invoices"),
            ("POST", "/api/invoices"),
            ("GET", "/api/invoices/1/pdf"),
            ("GET", "/api/quotes"),
            ("POST", "/api/quotes/1/send"),
            ("GET", "/api/deposits"),
            ("GET", "/api/receipts"),
            ("GET", "/api/siret/search?q=acme"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
