import pytest

from locallibrary.config import DEV_JWT_SECRET, Settings


def test_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///other.db")
    monkeypatch.setenv("JWT_SECRET", "from-env")
    monkeypatch.setenv("TOKEN_EXPIRE_MINUTES", "30")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings.from_env()
    assert settings.database_url == "sqlite:///other.db"
    assert settings.jwt_secret == "from-env"
    assert settings.token_expire_minutes == 30
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.log_level == "DEBUG"


def test_defaults():
    settings = Settings()
    assert settings.token_expire_minutes == 7 * 24 * 60
    assert settings.jwt_algorithm == "HS256"


def test_dev_secret_refused_outside_development():
    with pytest.raises(RuntimeError):
        Settings(jwt_secret=DEV_JWT_SECRET, environment="production").check()
    Settings(jwt_secret=DEV_JWT_SECRET).check()
