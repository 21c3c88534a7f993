"""Shared test fixtures for the auth core and the HTTP adapter."""

from datetime import datetime, timedelta, timezone

import pytest

from api import create_app
from models.db_storage import DBStorage
from repositories.memory import InMemoryTokenStore, InMemoryUserRepository
from repositories.sql import SqlTokenStore, SqlUserRepository
from services.auth_service import AuthSessionManager
from utils.security import CredentialHasher
from utils.tokens import TokenIssuer

STRONG_PASSWORD = "SecurePass123!"


@pytest.fixture
def hasher():
    # minimum argon2 cost keeps the suite fast
    return CredentialHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def issuer():
    return TokenIssuer(
        access_secret="test-access-secret",
        refresh_secret="test-refresh-secret",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
    )


@pytest.fixture
def past_issuer():
    """Same secrets, clock an hour behind: every token it signs is already expired."""
    return TokenIssuer(
        access_secret="test-access-secret",
        refresh_secret="test-refresh-secret",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(minutes=15),
        clock=lambda: datetime.now(timezone.utc) - timedelta(hours=1),
    )


@pytest.fixture
def sql_storage():
    storage = DBStorage("sqlite://")
    storage.reload()
    yield storage
    storage.drop_all()


@pytest.fixture(params=["memory", "sql"])
def repositories(request):
    """(users, tokens) pair for each storage variant."""
    if request.param == "memory":
        yield InMemoryUserRepository(), InMemoryTokenStore()
        return
    storage = request.getfixturevalue("sql_storage")
    yield SqlUserRepository(storage), SqlTokenStore(storage)


@pytest.fixture
def users(repositories):
    return repositories[0]


@pytest.fixture
def tokens(repositories):
    return repositories[1]


@pytest.fixture
def manager(users, tokens, hasher, issuer):
    return AuthSessionManager(users=users, tokens=tokens, hasher=hasher, issuer=issuer)


@pytest.fixture
def registered(manager):
    return manager.register("alice@example.com", STRONG_PASSWORD, "Alice", "Smith")


@pytest.fixture
def app():
    return create_app("testing")


@pytest.fixture
def client(app):
    return app.test_client()
