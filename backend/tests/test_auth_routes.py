"""HTTP tests for /api/auth and the bearer-token dependency."""

from datetime import timedelta

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from task_api.models.user import User
from task_api.utils.security import TokenService

from .helpers import PASSWORD, login, register


class TestRegister:

    def test_register_defaults_to_regular(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"email": "a@b.com", "password": "password1", "name": "Ann"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "User registered successfully"
        assert body["user"]["role"] == "regular"
        assert body["user"]["email"] == "a@b.com"
        assert body["user"]["name"] == "Ann"
        assert set(body["user"]) == {"id", "email", "name", "role"}

    def test_password_never_leaves_the_server(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"email": "a@b.com", "password": "hunter2hunter2", "name": "Ann"},
        )
        assert "hunter2hunter2" not in resp.text
        assert "password" not in resp.json()["user"]

    def test_password_is_hashed_at_rest(self, client, db_session):
        register(client, "a@b.com", password="hunter2hunter2")
        user = db_session.query(User).filter(User.email == "a@b.com").one()
        assert user.password != "hunter2hunter2"
        assert user.password.startswith("$2")

    def test_email_is_normalized(self, client):
        user = register(client, "  Mixed.Case@Example.COM ")
        assert user["email"] == "mixed.case@example.com"

    def test_duplicate_email(self, client):
        register(client, "a@b.com")
        resp = client.post(
            "/api/auth/register",
            json={"email": "A@B.com", "password": "password1", "name": "Other"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email already registered"}

    def test_admin_role(self, client):
        assert register(client, "root@b.com", role="admin")["role"] == "admin"

    def test_unknown_role_rejected(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"email": "a@b.com", "password": "password1", "name": "Ann", "role": "owner"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Validation failed"

    def test_password_limit_counts_bytes(self, client):
        # 40 characters, 80 bytes
        resp = client.post(
            "/api/auth/register",
            json={"email": "a@b.com", "password": "é" * 40, "name": "Ann"},
        )
        assert resp.status_code == 400
        assert resp.json()["details"] == ["Password cannot exceed 72 bytes"]

    def test_ascii_password_of_72_bytes_accepted(self, client):
        register(client, "a@b.com", password="x" * 72)
        assert login(client, "a@b.com", password="x" * 72)
        resp = client.post(
            "/api/auth/register",
            json={"email": "c@d.com", "password": "x" * 73, "name": "Cid"},
        )
        assert resp.status_code == 400

    def test_multibyte_password_is_checked_in_full(self, client):
        register(client, "a@b.com", password="é" * 36)
        assert login(client, "a@b.com", password="é" * 36)
        resp = client.post("/api/auth/login", json={"email": "a@b.com", "password": "é" * 35 + "zz"})
        assert resp.status_code == 401
        resp = client.post("/api/auth/login", json={"email": "a@b.com", "password": "é" * 36 + "zz"})
        assert resp.status_code == 401

    def test_lost_registration_race(self, client, monkeypatch):
        def conflicting_commit(self):
            raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.email"))

        monkeypatch.setattr(Session, "commit", conflicting_commit)
        resp = client.post(
            "/api/auth/register",
            json={"email": "a@b.com", "password": "password1", "name": "Ann"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email already registered"}

    def test_store_failure_is_reported(self, client, monkeypatch):
        def broken_commit(self):
            raise OperationalError("INSERT INTO users", {}, Exception("disk I/O error"))

        monkeypatch.setattr(Session, "commit", broken_commit)
        resp = client.post(
            "/api/auth/register",
            json={"email": "a@b.com", "password": "password1", "name": "Ann"},
        )
        assert resp.status_code == 500
        assert resp.json()["error"] == "Registration failed"
        assert "disk I/O error" in resp.json()["message"]


class TestLogin:

    def test_token_is_verifiable(self, client, app):
        user = register(client, "a@b.com")
        resp = client.post("/api/auth/login", json={"email": "a@b.com", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful"
        assert body["user"] == user
        identity = app.state.tokens.verify(body["token"])
        assert identity.id == user["id"]
        assert identity.role == "regular"

    def test_login_is_case_insensitive_on_email(self, client):
        register(client, "a@b.com")
        assert login(client, "A@B.COM")

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        register(client, "a@b.com")
        wrong = client.post("/api/auth/login", json={"email": "a@b.com", "password": "nope-nope"})
        unknown = client.post("/api/auth/login", json={"email": "x@b.com", "password": PASSWORD})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"error": "Invalid credentials"}

    def test_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={})
        assert resp.status_code == 400
        assert resp.json()["details"] == ["Email is required", "Password is required"]


class TestBearerToken:

    def test_missing_header(self, client):
        resp = client.get("/api/tasks")
        assert resp.status_code == 401
        assert resp.json() == {"error": "No auth header found"}

    def test_wrong_scheme(self, client):
        resp = client.get("/api/tasks", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "No auth header found"}

    def test_invalid_token(self, client):
        resp = client.get("/api/tasks", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid token"}

    def test_forged_token(self, client):
        user = register(client, "a@b.com")
        forged = TokenService("someone-elses-secret").issue(user["id"], "admin")
        resp = client.get("/api/tasks", headers={"Authorization": f"Bearer {forged}"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid token"}

    def test_expired_token(self, client, settings):
        user = register(client, "a@b.com")
        stale = TokenService(settings.jwt_secret, ttl=timedelta(seconds=-5)).issue(user["id"], "regular")
        resp = client.get("/api/tasks", headers={"Authorization": f"Bearer {stale}"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Token expired"}
