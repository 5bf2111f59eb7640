"""
Shared fixtures.

Every app runs against its own in-memory SQLite database and a cheap
password hash so the suite stays fast.
"""

import pytest

from app import create_app
from models import db

PASSWORD = 'Abc12345!'

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'SECRET_KEY': 'test-secret',
    'JWT_SECRET': 'test-jwt-secret',
    'JWT_EXPIRY_MINUTES': 30,
    'PASSWORD_HASH_METHOD': 'pbkdf2:sha256:1000',
    'TRANSACTIONS_LIST_POLICY': 'authenticated',
    'LOG_LEVEL': 'WARNING',
}


@pytest.fixture
def make_app():
    """Build an app with TEST_CONFIG plus keyword overrides."""
    apps = []

    def _make(**overrides):
        app = create_app({**TEST_CONFIG, **overrides})
        apps.append(app)
        return app

    yield _make

    for app in apps:
        with app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


def bearer(token):
    return {'Authorization': f'Bearer {token}'}


def signup(client, name, email, password=PASSWORD):
    """Register and log in, returning the public user fields plus auth headers."""
    resp = client.post('/auth/register', json={'name': name, 'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    user = resp.get_json()
    resp = client.post('/auth/login', json={'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    token = resp.get_json()['token']
    return {**user, 'token': token, 'headers': bearer(token)}


@pytest.fixture
def ann(client):
    return signup(client, 'Ann', 'ann@x.com')


@pytest.fixture
def bob(client):
    return signup(client, 'Bob', 'bob@x.com')
