import pytest

from dbpower.config.settings import Settings, get_settings


def test_default_settings():
    """Test default settings values."""
    settings = Settings()

    assert settings.app_name == "DBPower Edge"
    assert settings.version == "1.0.0"
    assert settings.environment == "development"
    assert settings.deletion_batch_size == 20
    assert settings.deletion_finalize_attempts == 3
    assert settings.deletion_stale_claim_s == 900


def test_production_blocks_debug():
    """Test that production environment blocks DEBUG=true."""
    with pytest.raises(ValueError, match="DEBUG=true is not allowed in production"):
        Settings(environment="production", debug=True)


def test_production_allows_debug_off():
    settings = Settings(environment="production", debug=False)
    assert settings.environment == "production"


def test_trailing_slashes_are_stripped():
    settings = Settings(
        supabase_url="https://p.example.co/",
        site_url="https://x.io/",
    )

    assert settings.supabase_url == "https://p.example.co"
    assert settings.site_url == "https://x.io"


def test_batch_size_bounds():
    with pytest.raises(ValueError):
        Settings(deletion_batch_size=0)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DELETION_BATCH_SIZE", "5")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "from-env")

    settings = Settings()

    assert settings.deletion_batch_size == 5
    assert settings.supabase_service_role_key == "from-env"


def test_settings_dependency_injection():
    """Test the get_settings dependency function."""
    settings = get_settings()
    assert isinstance(settings, Settings)
    assert settings.app_name == "DBPower Edge"
