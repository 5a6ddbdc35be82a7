"""
Auth and application endpoints
"""


class TestApp:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "version" in response.json()

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestLogin:

    def test_login_success(self, client, receptionist):
        response = client.post("/auth/login", json={"username": "reception", "password": "123456"})
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["access_token"]
        assert body["staff"]["name"] == "Reception Minh"

    def test_wrong_password(self, client, receptionist):
        response = client.post("/auth/login", json={"username": "reception", "password": "wrong!"})
        assert response.status_code == 401

    def test_unknown_user(self, client):
        response = client.post("/auth/login", json={"username": "ghost", "password": "123456"})
        assert response.status_code == 401

    def test_disabled_account(self, client, db_session, receptionist):
        receptionist.is_active = False
        db_session.commit()
        response = client.post("/auth/login", json={"username": "reception", "password": "123456"})
        assert response.status_code == 401


class TestCurrentUser:

    def test_me(self, client, staff_headers):
        response = client.get("/auth/me", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["username"] == "reception"

    def test_me_without_token(self, client):
        assert client.get("/auth/me").status_code in (401, 403)

    def test_me_with_bad_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
