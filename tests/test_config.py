import pytest

from config import DEFAULT_JWT_SECRET, Settings


def test_defaults_are_demo_friendly(monkeypatch):
    for name in ("DATABASE_URL", "JWT_SECRET", "STRIPE_SECRET_KEY", "APP_ENV", "CORS_ORIGINS", "SEED_ON_STARTUP"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.jwt_secret == DEFAULT_JWT_SECRET
    assert settings.stripe_secret_key is None
    assert not settings.payments_live
    assert settings.cors_origins == ["*"]
    assert settings.seed_on_startup is True


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_NAME", "shop")
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_abc")
    monkeypatch.setenv("PAYMENT_CURRENCY", "EUR")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test, https://b.test")
    monkeypatch.setenv("SEED_ON_STARTUP", "false")
    settings = Settings.from_env()
    assert settings.database_name == "shop"
    assert settings.payments_live
    assert settings.currency == "eur"
    assert settings.cors_origins == ["https://a.test", "https://b.test"]
    assert settings.seed_on_startup is False


def test_production_requires_real_secret(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ValueError):
        Settings.from_env()

    monkeypatch.setenv("JWT_SECRET", "a-long-random-secret")
    assert Settings.from_env().is_production
