import logging

import pytest

from api import build_auth_manager, create_app
from api.config import DevelopmentConfig, ProductionConfig, TestingConfig, get_config
from repositories import build_repositories
from repositories.memory import InMemoryTokenStore, InMemoryUserRepository
from repositories.sql import SqlTokenStore, SqlUserRepository
from utils.rate_limit import FixedWindowLimiter


@pytest.mark.parametrize(
    "name,expected",
    [("prod", ProductionConfig), ("production", ProductionConfig),
     ("test", TestingConfig), ("testing", TestingConfig), ("dev", DevelopmentConfig)],
)
def test_get_config_by_name(name, expected):
    assert get_config(name) is expected


def test_get_config_from_app_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    assert get_config(None) is ProductionConfig


def test_default_rate_limits():
    assert TestingConfig.LOGIN_RATE_LIMIT == 5
    assert TestingConfig.RATE_LIMIT_WINDOW.total_seconds() == 15 * 60


def test_access_and_refresh_secrets_differ():
    assert DevelopmentConfig.ACCESS_TOKEN_SECRET != DevelopmentConfig.REFRESH_TOKEN_SECRET


def test_build_repositories_variants(sql_storage):
    users, tokens = build_repositories("memory")
    assert isinstance(users, InMemoryUserRepository)
    assert isinstance(tokens, InMemoryTokenStore)

    users, tokens = build_repositories("sql", sql_storage)
    assert isinstance(users, SqlUserRepository)
    assert isinstance(tokens, SqlTokenStore)


def test_build_repositories_rejects_bad_input():
    with pytest.raises(ValueError):
        build_repositories("sql")
    with pytest.raises(ValueError):
        build_repositories("redis")


def test_manager_is_built_once_per_app():
    app = create_app("testing")
    assert app.extensions["auth_manager"] is app.extensions["auth_manager"]
    assert app.extensions["db_storage"] is None


def test_build_auth_manager_uses_config():
    app = create_app("testing")
    manager = build_auth_manager(app.config)
    user = manager.register("carol@example.com", "SecurePass123!", "Carol", "C")
    assert user["email"] == "carol@example.com"


def test_fixed_window_limiter():
    clock = {"now": 0.0}
    limiter = FixedWindowLimiter(10, now=lambda: clock["now"])
    assert limiter.hit("k", 2).allowed
    assert limiter.hit("k", 2).remaining == 0
    denied = limiter.hit("k", 2)
    assert not denied.allowed
    assert denied.retry_after == 10
    assert limiter.hit("other", 2).allowed
    clock["now"] = 10.0
    assert limiter.hit("k", 2).allowed


def test_limiter_drops_expired_windows():
    clock = {"now": 0.0}
    limiter = FixedWindowLimiter(60, now=lambda: clock["now"])
    for n in range(1000):
        limiter.hit(f"10.0.{n // 256}.{n % 256}", 5)
    assert len(limiter) == 1000

    clock["now"] = 60.0
    limiter.hit("10.9.9.9", 5)
    assert len(limiter) == 1


def test_limiter_keeps_live_windows_when_sweeping():
    clock = {"now": 0.0}
    limiter = FixedWindowLimiter(60, now=lambda: clock["now"])
    limiter.hit("old", 1)
    clock["now"] = 30.0
    limiter.hit("young", 1)
    clock["now"] = 61.0
    limiter.hit("new", 1)
    assert len(limiter) == 2
    assert not limiter.hit("young", 1).allowed


def test_create_app_leaves_root_logger_alone():
    root = logging.getLogger()
    before = root.level
    create_app("testing", overrides={"LOG_LEVEL": "CRITICAL"})
    assert root.level == before
