"""Shared test fixtures."""
from datetime import datetime

import pytest

from app import create_app
from config import Config
from models import db
from models.user import User, Role
from security.password import hash_password
from utils.seed import seed_roles

PASSWORD = "secret123"

# Monday; 2025-06-10 is a Tuesday, open 09:00-19:00 by default
FROZEN_NOW = datetime(2025, 6, 9, 8, 0)


class TestingConfig(Config):
    TESTING = True
    BCRYPT_ROUNDS = 4
    TRANSACTION_RETRY_BACKOFF_SECONDS = 0
    SQLALCHEMY_ENGINE_OPTIONS = {}


@pytest.fixture
def app(tmp_path):
    class _Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db")

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin the shop clock used by the customer routes and the CLI."""
    import app as app_module
    import routes.booking

    def _freeze(value=FROZEN_NOW):
        monkeypatch.setattr(routes.booking, "local_now", lambda: value)
        monkeypatch.setattr(app_module, "local_now", lambda: value)
        return value

    _freeze()
    return _freeze


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _create(email=None, full_name=None, verified=True, admin=False, disabled=False):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"user{n}@example.com",
            password_hash=hash_password(PASSWORD, rounds=4),
            full_name=full_name or f"Customer {n}",
            phone_number="0641234567",
            verified=verified,
            disabled=disabled,
        )
        user.roles.append(Role.query.filter_by(name="ADMIN" if admin else "USER").first())
        db.session.add(user)
        db.session.commit()
        return user

    return _create


def login(client, email, password=PASSWORD):
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp


@pytest.fixture
def admin_client(app, make_user):
    admin = make_user(email="admin@example.com", full_name="Shop Admin", admin=True)
    client = app.test_client()
    login(client, admin.email)
    client.user_id = admin.id
    return client


@pytest.fixture
def user_client(app, make_user):
    user = make_user(email="ana@example.com", full_name="Ana Anic")
    client = app.test_client()
    login(client, user.email)
    client.user_id = user.id
    return client
