"""
Tests for sign-up, sign-in and sign-out.
"""

from mnemo.models.memory import ActivityLog, User
from tests.factories import TEST_PASSWORD, login


def actions(db, user_id):
    db.expire_all()
    logs = db.query(ActivityLog).filter(ActivityLog.user_id == user_id).order_by(ActivityLog.id).all()
    return [log.action for log in logs]


class TestSignUp:

    def test_creates_user_and_session(self, client, db_session):
        response = client.post("/api/auth/sign-up", json={"email": "new@example.com", "password": "Secret123"})

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["email"] == "new@example.com"
        assert user["role"] == "member"
        assert "password_hash" not in user
        assert "session=" in response.headers["set-cookie"]
        assert "httponly" in response.headers["set-cookie"].lower()

        assert client.get("/api/user").json()["user"]["id"] == user["id"]
        assert actions(db_session, user["id"]) == ["SIGN_UP"]

        stored = db_session.query(User).filter(User.email == "new@example.com").one()
        assert stored.password_hash != "Secret123"

    def test_duplicate_email(self, client, test_user):
        response = client.post("/api/auth/sign-up", json={"email": test_user.email, "password": "Secret123"})

        assert response.status_code == 400
        assert response.json() == {"error": "Email already registered. Please use a different email or sign in."}

    def test_weak_password(self, client):
        response = client.post("/api/auth/sign-up", json={"email": "new@example.com", "password": "alllowercase"})

        assert response.status_code == 400
        assert "uppercase" in response.json()["error"]

    def test_short_password(self, client):
        response = client.post("/api/auth/sign-up", json={"email": "new@example.com", "password": "Ab1"})

        assert response.status_code == 400
        assert response.json() == {"error": "Password must be at least 8 characters"}

    def test_invalid_email(self, client):
        response = client.post("/api/auth/sign-up", json={"email": "not-an-email", "password": "Secret123"})

        assert response.status_code == 400


class TestSignIn:

    def test_valid_credentials(self, client, db_session, test_user):
        response = client.post("/api/auth/sign-in", json={"email": test_user.email, "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == test_user.id
        assert "session=" in response.headers["set-cookie"]
        assert actions(db_session, test_user.id) == ["SIGN_IN"]

    def test_wrong_password(self, client, test_user):
        response = client.post("/api/auth/sign-in", json={"email": test_user.email, "password": "Wrong1234"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password. Please try again."}
        assert "set-cookie" not in response.headers

    def test_unknown_email(self, client):
        response = client.post("/api/auth/sign-in", json={"email": "nobody@example.com", "password": "Secret123"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password. Please try again."}


class TestSignOut:

    def test_clears_cookie_and_logs(self, auth_client, db_session, test_user):
        response = auth_client.post("/api/auth/sign-out")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert "Max-Age=0" in response.headers["set-cookie"]
        assert actions(db_session, test_user.id) == ["SIGN_OUT"]

    def test_requires_session(self, client):
        response = client.post("/api/auth/sign-out")

        assert response.status_code == 401


class TestSessions:

    def test_deleted_user_session_is_rejected(self, client, db_session, test_user):
        login(client, test_user)
        test_user.deleted_at = test_user.created_at
        db_session.commit()

        response = client.get("/api/user")

        assert response.status_code == 401
        assert "Max-Age=0" in response.headers["set-cookie"]

    def test_unknown_user_session_is_rejected(self, client, db_session):
        login(client, User(id=4242))

        response = client.get("/api/user")

        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated"}
