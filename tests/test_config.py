from lodge.config import Settings, DEV_SECRET_KEY


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./out/other.db")
    monkeypatch.setenv("JWT_SECRET", "s3cret")
    monkeypatch.setenv("CANCELLATION_LEAD_HOURS", "48")
    monkeypatch.setenv("ADMIN_UPDATE_CHECKS_OVERLAP", "true")
    monkeypatch.setenv("CORS_ORIGINS", "https://lodge.example.com, https://admin.example.com")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()
    assert settings.database_url == "sqlite:///./out/other.db"
    assert settings.jwt_secret == "s3cret"
    assert settings.cancellation_lead_hours == 48
    assert settings.admin_update_checks_overlap is True
    assert settings.cors_origins == ["https://lodge.example.com", "https://admin.example.com"]
    assert settings.log_level == "DEBUG"


def test_settings_defaults(monkeypatch):
    for name in ("JWT_SECRET", "ADMIN_UPDATE_CHECKS_OVERLAP", "CORS_ORIGINS", "CANCELLATION_LEAD_HOURS", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.jwt_secret == DEV_SECRET_KEY
    assert settings.cancellation_lead_hours == 24
    assert settings.admin_update_checks_overlap is False
    assert settings.debug is False
