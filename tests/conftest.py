"""Shared fixtures: an app on in-memory SQLite with two seeded admins."""

import datetime as dt

import pytest

from clonepoints import create_app, db

ADMIN_USERNAME = "nginx"
ADMIN_PASSWORD = "#Nx2025@Admin$"
OTHER_USERNAME = "asmaa"
OTHER_PASSWORD = "@As2025#Secure!"

WALLET_1 = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
WALLET_2 = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
WALLET_3 = "4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"


class FakeClock:
    def __init__(self, now=None):
        self.now = now or dt.datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += dt.timedelta(**kwargs)


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "PASSWORD_HASH_METHOD": "pbkdf2:sha256:1000",
        "SEED_ADMINS": [(ADMIN_USERNAME, ADMIN_PASSWORD), (OTHER_USERNAME, OTHER_PASSWORD)],
        "RATELIMIT_ENABLED": False,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_service(app):
    return app.extensions["auth_service"]


@pytest.fixture
def registration(app):
    return app.extensions["registration_service"]


@pytest.fixture
def clock(auth_service):
    fake = FakeClock()
    auth_service.clock = fake
    return fake


def login(client, username=ADMIN_USERNAME, password=ADMIN_PASSWORD, totp_code=None):
    body = {"username": username, "password": password}
    if totp_code is not None:
        body["totpCode"] = totp_code
    return client.post("/api/login", json=body)


@pytest.fixture
def logged_in(client):
    resp = login(client)
    assert resp.status_code == 200
    return client
