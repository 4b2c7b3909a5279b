import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

# Add backend to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../backend')))

from coredex.config import Settings
from coredex.db.engine import build_engine, init_db
from coredex.main import create_app

ADMIN_EMAIL = "admin@coredex.ai"
ADMIN_PASSWORD = "admin123"


@pytest.fixture
def settings(tmp_path):
    # No GROQ key: every remote call fails fast without touching the network
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'coredex-test.db'}",
        JWT_SECRET="test-secret",
        GROQ_API_KEY="",
        GROQ_MAX_RETRIES=1,
        BCRYPT_ROUNDS=4,
        STATS_INTERVAL_SECONDS=0,
        DEFAULT_ADMIN_EMAIL=ADMIN_EMAIL,
        DEFAULT_ADMIN_PASSWORD=ADMIN_PASSWORD,
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    init_db(engine, settings)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(client):
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def register(client):
    def _register(name="Alice", email="alice@example.com", password="secret1"):
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()
    return _register
