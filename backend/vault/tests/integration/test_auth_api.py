"""Integration tests for the account and session endpoints."""

PASSWORD = "correct-horse-battery"


class TestRegister:
    def test_returns_session_and_user(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "  Ana@Example.com ", "password": PASSWORD, "name": "Ana"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["tokenExpiresAt"].endswith("Z")
        assert body["user"]["email"] == "ana@example.com"
        assert body["user"]["name"] == "Ana"
        assert "password" not in str(body["user"]).lower()

    def test_duplicate_email(self, client, alice):
        response = client.post("/api/auth/register", json={"email": "ALICE@example.com", "password": PASSWORD})
        assert response.status_code == 409

    def test_missing_fields(self, client):
        response = client.post("/api/auth/register", json={"email": "a@example.com"})
        assert response.status_code == 400
        assert response.json() == {"error": "Email and password are required"}

    def test_short_password(self, client):
        response = client.post("/api/auth/register", json={"email": "a@example.com", "password": "short"})
        assert response.status_code == 400

    def test_invalid_json(self, client):
        response = client.post("/api/auth/register", content=b"{not json", headers={"content-type": "application/json"})
        assert response.status_code == 400


class TestLogin:
    def test_login_issues_new_session(self, client, alice):
        response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})

        assert response.status_code == 200
        token = response.json()["token"]
        assert {"Authorization": f"Bearer {token}"} != alice
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["user"]["email"] == "alice@example.com"

    def test_wrong_password(self, client, alice):
        response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong-password"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    def test_unknown_email(self, client):
        response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
        assert response.status_code == 401

    def test_missing_fields(self, client):
        assert client.post("/api/auth/login", json={}).status_code == 400


class TestSessionEndpoints:
    def test_me(self, client, alice):
        response = client.get("/api/auth/me", headers=alice)
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alice@example.com"

    def test_me_requires_auth(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_malformed_bearer_is_anonymous(self, client):
        assert client.get("/api/auth/me", headers={"Authorization": "Token abc"}).status_code == 401

    def test_logout_revokes_only_that_session(self, client, alice):
        other = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD}).json()
        other_headers = {"Authorization": f"Bearer {other['token']}"}

        response = client.post("/api/auth/logout", headers=alice)

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out"}
        assert client.get("/api/auth/me", headers=alice).status_code == 401
        assert client.get("/api/auth/me", headers=other_headers).status_code == 200

    def test_session_expires(self, client, alice, clock):
        clock.advance(8 * 24 * 3600)
        assert client.get("/api/auth/me", headers=alice).status_code == 401
