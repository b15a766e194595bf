import pyotp

from conftest import ADMIN_USERNAME, ADMIN_PASSWORD, login


def test_login_returns_profile_without_secrets(client):
    resp = login(client)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["username"] == ADMIN_USERNAME
    assert body["isFirstLogin"] is True
    assert body["twoFactorEnabled"] is False
    assert "password" not in body
    assert "twoFactorSecret" not in body


def test_login_wrong_password(client):
    resp = login(client, password="wrong")
    assert resp.status_code == 401
    assert resp.get_json() == {"message": "Invalid credentials"}


def test_login_locked_account(client):
    for _ in range(5):
        login(client, password="wrong")
    resp = login(client)
    assert resp.status_code == 401
    assert resp.get_json() == {"message": "Account is locked"}


def test_login_requires_fields(client):
    resp = client.post("/api/login", json={"username": ADMIN_USERNAME})
    assert resp.status_code == 400
    assert "password" in resp.get_json()["message"]


def test_session_cookie_flags(client):
    resp = login(client)
    cookie = resp.headers["Set-Cookie"]
    assert "HttpOnly" in cookie
    assert "SameSite=Lax" in cookie
    assert "Expires=" in cookie


def test_admin_requires_session(client):
    resp = client.get("/api/admin")
    assert resp.status_code == 401
    assert resp.get_json() == {"message": "Authentication required"}


def test_admin_profile(logged_in):
    resp = logged_in.get("/api/admin")
    assert resp.status_code == 200
    assert resp.get_json()["username"] == ADMIN_USERNAME


def test_logout_invalidates_old_session_cookie(client):
    assert login(client).status_code == 200
    old_cookie = client.get_cookie("session").value

    assert client.post("/api/logout").status_code == 200
    assert client.get("/api/admin").status_code == 401

    # replaying the cookie from before the logout does not bring the session back
    client.set_cookie("session", old_cookie)
    assert client.get("/api/admin").status_code == 401


def test_logout_without_session_succeeds(client):
    assert client.post("/api/logout").status_code == 200


def test_change_password(logged_in, client):
    resp = logged_in.post("/api/change-password", json={"currentPassword": "wrong", "newPassword": "brand-new-pass"})
    assert resp.status_code == 400
    assert resp.get_json() == {"message": "Current password is incorrect"}

    resp = logged_in.post("/api/change-password", json={"currentPassword": ADMIN_PASSWORD, "newPassword": "brand-new-pass"})
    assert resp.status_code == 200
    assert logged_in.get("/api/admin").get_json()["isFirstLogin"] is False

    logged_in.post("/api/logout")
    assert login(client).status_code == 401
    assert login(client, password="brand-new-pass").status_code == 200


def test_change_password_rejects_short_password(logged_in):
    resp = logged_in.post("/api/change-password", json={"currentPassword": ADMIN_PASSWORD, "newPassword": "short"})
    assert resp.status_code == 400


def test_two_factor_login_flow(logged_in, client):
    resp = logged_in.post("/api/setup-2fa")
    assert resp.status_code == 200
    secret = resp.get_json()["secret"]
    logged_in.post("/api/logout")

    resp = login(client)
    assert resp.status_code == 401
    assert resp.get_json() == {"requires2FA": True}
    assert client.get("/api/admin").status_code == 401

    resp = login(client, totp_code="123")
    assert resp.status_code == 401
    assert resp.get_json() == {"message": "Invalid 2FA code"}

    resp = login(client, totp_code=pyotp.TOTP(secret).now())
    assert resp.status_code == 200
    assert resp.get_json()["twoFactorEnabled"] is True


def test_setup_2fa_requires_session(client):
    assert client.post("/api/setup-2fa").status_code == 401


def test_activity_feed(logged_in):
    logged_in.post("/api/setup-2fa")
    resp = logged_in.get("/api/activity")
    assert resp.status_code == 200
    actions = [entry["action"] for entry in resp.get_json()]
    assert actions[:2] == ["2fa_enabled", "login"]


def test_unknown_route_is_json(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert "message" in resp.get_json()


def test_lockout_ends_open_sessions(app, logged_in):
    attacker = app.test_client()
    for _ in range(5):
        login(attacker, password="wrong")
    assert login(attacker).get_json() == {"message": "Account is locked"}

    resp = logged_in.get("/api/admin")
    assert resp.status_code == 401
    assert resp.get_json() == {"message": "Authentication required"}


def test_login_again_revokes_previous_session(client):
    assert login(client).status_code == 200
    first_cookie = client.get_cookie("session").value

    assert login(client).status_code == 200
    assert client.get("/api/admin").status_code == 200

    client.set_cookie("session", first_cookie)
    assert client.get("/api/admin").status_code == 401
