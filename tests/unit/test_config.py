import json

from config import DEFAULT_CONFIG, ConfigManager


def test_defaults_written_on_first_start(data_dir):
    config = ConfigManager()

    assert config.data_dir == data_dir
    assert config.config_file.exists()
    assert config.get_cache_settings()["stats_ttl_seconds"] == 3600
    assert config.get_refresh_settings()["schedule"] == DEFAULT_CONFIG["refresh"]["schedule"]
    assert config.environment == "production"


def test_secrets_generated_and_encrypted_on_disk(data_dir):
    """Cron and JWT secrets are generated once and never stored in plaintext"""
    config = ConfigManager()

    with open(config.config_file, "r") as f:
        saved = json.load(f)

    assert config.cron_secret
    assert config.jwt_secret
    assert saved["cron_secret"] != config.cron_secret
    assert saved["cron_secret"].startswith("gAAAA")
    assert saved["jwt_secret"].startswith("gAAAA")


def test_secrets_survive_reload(data_dir):
    first = ConfigManager()
    second = ConfigManager()

    assert second.cron_secret == first.cron_secret
    assert second.jwt_secret == first.jwt_secret


def test_partial_config_is_merged_with_defaults(data_dir):
    data_dir.mkdir(parents=True)
    with open(data_dir / "config.json", "w") as f:
        json.dump({"cache": {"stats_ttl_seconds": 60}}, f)

    config = ConfigManager()

    assert config.get_cache_settings()["stats_ttl_seconds"] == 60
    assert config.get_cache_settings()["backend"] == "sqlite"
    assert config.get_provider_settings()["page_size"] == 1000


def test_env_overrides(data_dir, monkeypatch):
    monkeypatch.setenv("R2DASH_CRON_SECRET", "from-env")
    monkeypatch.setenv("R2DASH_ENVIRONMENT", "development")

    config = ConfigManager()

    assert config.cron_secret == "from-env"
    assert config.environment == "development"


def test_update_section_persists(data_dir):
    config = ConfigManager()
    config.update_section("refresh", schedule="0 * * * *")

    assert ConfigManager().get_refresh_settings()["schedule"] == "0 * * * *"
    assert ConfigManager().get_refresh_settings()["stats_workers"] == 8
