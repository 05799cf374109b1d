"""
tests/test_api_routes.py -- Integration tests for the /api/v1 user and admin routes.

These tests exercise the full stack: FastAPI routing -> dependency injection
-> auth/ workflows -> PrincipalStore -> response model serialization. Unit
tests of the workflows cannot catch a wrong status mapping, a dropped alias,
or a missing Cache-Control header; these can.

Coverage:
  - register/login happy paths for both namespaces (201 / 200)
  - error envelope shape and status codes (400 / 401 / 403 / 409 / 503)
  - weak password body lists failed_rules
  - 422 bodies describe the rejected field without repeating its value
  - login responses are never cacheable
  - delete-all-records: gate failures leave data intact, success wipes both tables
"""

from __future__ import annotations

from sqlalchemy import text

from auth.models import Admin, Permission

STRONG_PASSWORD = "Aa1!aaaa"
DELETE_URL = "/api/v1/admin/delete-all-records"


def _register_admin(client, admin_secret, email="a@b.com", **extra):
    body = {"email": email, "password": STRONG_PASSWORD, "name": "Alice Admin", "secretKey": admin_secret}
    body.update(extra)
    return client.post("/api/v1/admin/register", json=body)


def _register_user(client, email="u@b.com", **extra):
    body = {"email": email, "password": STRONG_PASSWORD, "name": "Uma User"}
    body.update(extra)
    return client.post("/api/v1/user/register", json=body)


def _delete_all(client, **body):
    return client.request("DELETE", DELETE_URL, json=body)


class TestUserRoutes:
    def test_register_returns_201_without_hash(self, api_client):
        client, _ = api_client
        resp = _register_user(client)
        assert resp.status_code == 201
        data = resp.json()
        assert data == {"message": "User registered!", "email": "u@b.com", "name": "Uma User"}

    def test_weak_password_body_lists_failed_rules(self, api_client):
        client, auth_db = api_client
        resp = _register_user(client, password="password")
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "weak_password"
        assert error["failed_rules"] == ["upper", "digit", "special"]
        assert error["message"].startswith("Password must contain:")
        assert auth_db.users.count() == 0

    def test_password_bcrypt_would_truncate_is_refused(self, api_client):
        client, auth_db = api_client
        resp = _register_user(client, password="Aa1!" + "x" * 80)
        assert resp.status_code == 400
        assert resp.json()["error"]["failed_rules"] == ["max_bytes"]
        assert auth_db.users.count() == 0

    def test_missing_fields_is_400_not_422(self, api_client):
        client, _ = api_client
        resp = client.post("/api/v1/user/register", json={"email": "u@b.com"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "missing_fields"

    def test_duplicate_is_409(self, api_client):
        client, _ = api_client
        _register_user(client)
        resp = _register_user(client, name="Other Person")
        assert resp.status_code == 409
        assert resp.json()["error"] == {
            "code": "email_taken",
            "message": "Email already registered",
            "detail": None,
            "failed_rules": None,
        }

    def test_login_is_200_and_not_cacheable(self, api_client):
        client, auth_db = api_client
        _register_user(client)
        resp = client.post("/api/v1/user/login", json={"email": "u@b.com", "password": STRONG_PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["message"] == "User logged in!"
        assert resp.headers["cache-control"] == "no-store"
        assert auth_db.users.find_by_email("u@b.com").last_login is not None

    def test_wrong_password_and_unknown_email_share_one_401_body(self, api_client):
        client, _ = api_client
        _register_user(client)
        wrong = client.post("/api/v1/user/login", json={"email": "u@b.com", "password": "Zz9?zzzz"})
        unknown = client.post("/api/v1/user/login", json={"email": "x@b.com", "password": STRONG_PASSWORD})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.headers["cache-control"] == "no-store"

    def test_non_string_field_is_422(self, api_client):
        client, _ = api_client
        resp = client.post("/api/v1/user/login", json={"email": ["u@b.com"], "password": STRONG_PASSWORD})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_validation_error_never_echoes_the_password(self, api_client):
        client, _ = api_client
        secret_pw = "Aa1!" + "S3cretTail" * 13
        resp = client.post("/api/v1/user/login", json={"email": "u@b.com", "password": secret_pw})
        assert resp.status_code == 422
        assert "S3cretTail" not in resp.text
        assert "password" in resp.json()["error"]["detail"]

    def test_store_failure_is_503(self, api_client):
        client, auth_db = api_client
        with auth_db.engine.begin() as conn:
            conn.execute(text("DROP TABLE users"))
        resp = _register_user(client)
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "store_unavailable"


class TestAdminRoutes:
    def test_register_admin(self, api_client, admin_secret):
        client, _ = api_client
        resp = _register_admin(client, admin_secret)
        assert resp.status_code == 201
        assert resp.json() == {
            "message": "Admin registered!",
            "email": "a@b.com",
            "name": "Alice Admin",
            "role": "admin",
        }

    def test_register_admin_wrong_secret_is_403(self, api_client):
        client, auth_db = api_client
        resp = _register_admin(client, "guess")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "invalid_secret"
        assert auth_db.admins.count() == 0

    def test_register_admin_missing_secret_is_400(self, api_client):
        client, _ = api_client
        resp = client.post(
            "/api/v1/admin/register", json={"email": "a@b.com", "password": STRONG_PASSWORD, "name": "Alice Admin"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "missing_fields"

    def test_admin_login_includes_permissions(self, api_client, admin_secret):
        client, _ = api_client
        _register_admin(client, admin_secret)
        resp = client.post("/api/v1/admin/login", json={"email": "a@b.com", "password": STRONG_PASSWORD})
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Admin logged in!"
        assert data["role"] == "admin"
        assert set(data["permissions"]) == {"read", "write", "delete", "manage_users"}
        assert resp.headers["cache-control"] == "no-store"

    def test_deactivated_admin_login_is_403(self, api_client, hasher):
        client, auth_db = api_client
        auth_db.admins.save(
            Admin(name="Old Admin", email="old@b.com", password_hash=hasher.hash(STRONG_PASSWORD), is_active=False)
        )
        resp = client.post("/api/v1/admin/login", json={"email": "old@b.com", "password": STRONG_PASSWORD})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "account_deactivated"


class TestDeleteAllRecords:
    def test_success_wipes_both_namespaces(self, api_client, admin_secret):
        client, auth_db = api_client
        _register_admin(client, admin_secret)
        _register_user(client, email="u1@b.com")
        _register_user(client, email="u2@b.com")

        resp = _delete_all(client, adminEmail="a@b.com", adminPassword=STRONG_PASSWORD, secretKey=admin_secret)

        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "All records deleted successfully"
        assert data["deleted"] == {"users": 2, "admins": 1}
        assert data["previousCounts"] == {"users": 2, "admins": 1}
        assert data["deletedBy"] == {"email": "a@b.com", "name": "Alice Admin"}
        assert data["timestamp"]
        assert auth_db.users.count() == 0
        assert auth_db.admins.count() == 0

    def test_missing_body_is_400(self, api_client):
        client, _ = api_client
        resp = client.request("DELETE", DELETE_URL)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "missing_fields"

    def test_wrong_secret_is_403_and_keeps_data(self, api_client, admin_secret):
        client, auth_db = api_client
        _register_admin(client, admin_secret)
        resp = _delete_all(client, adminEmail="a@b.com", adminPassword=STRONG_PASSWORD, secretKey="guess")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "invalid_secret"
        assert auth_db.admins.count() == 1

    def test_wrong_password_is_401(self, api_client, admin_secret):
        client, auth_db = api_client
        _register_admin(client, admin_secret)
        resp = _delete_all(client, adminEmail="a@b.com", adminPassword="Zz9?zzzz", secretKey=admin_secret)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_credentials"
        assert auth_db.admins.count() == 1

    def test_admin_without_delete_permission_is_403(self, api_client, admin_secret, hasher):
        client, auth_db = api_client
        reader = Admin(name="Read Only", email="ro@b.com", password_hash=hasher.hash(STRONG_PASSWORD))
        reader.permissions = [Permission.READ]
        auth_db.admins.save(reader)
        _register_user(client)

        resp = _delete_all(client, adminEmail="ro@b.com", adminPassword=STRONG_PASSWORD, secretKey=admin_secret)

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "insufficient_permission"
        assert auth_db.users.count() == 1
        assert auth_db.admins.count() == 1

    def test_users_cannot_delete(self, api_client, admin_secret):
        client, auth_db = api_client
        _register_user(client, email="u@b.com")
        resp = _delete_all(client, adminEmail="u@b.com", adminPassword=STRONG_PASSWORD, secretKey=admin_secret)
        assert resp.status_code == 401
        assert auth_db.users.count() == 1
