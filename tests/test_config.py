from unittest.mock import patch

from walletsync.infrastructure.config import load_config


@patch("walletsync.infrastructure.config.load_dotenv")
def test_defaults(mock_load_dotenv, monkeypatch):
    for name in (
        "BRIDGE_API_KEY",
        "BRIDGE_API_URL",
        "BRIDGE_MAX_RETRIES",
        "SYNC_PAGE_SIZE",
        "PROFILE_CACHE_TTL_SECONDS",
        "ENABLE_METRICS",
    ):
        monkeypatch.delenv(name, raising=False)

    config = load_config()

    mock_load_dotenv.assert_called_once()
    assert config.bridge_api_key == ""
    assert config.bridge_configured is False
    assert config.bridge_api_url == "https://api.sandbox.bridge.xyz/v0"
    assert config.bridge_max_retries == 3
    assert config.sync_page_size == 100
    assert config.profile_cache_ttl_seconds == 300.0
    assert config.enable_metrics is True


@patch("walletsync.infrastructure.config.load_dotenv")
def test_from_environment(mock_load_dotenv, monkeypatch):
    monkeypatch.setenv("BRIDGE_API_KEY", "sk-live-abc")
    monkeypatch.setenv("BRIDGE_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("SYNC_PAGE_SIZE", "50")
    monkeypatch.setenv("ENABLE_METRICS", "FALSE")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = load_config()

    assert config.bridge_configured is True
    assert config.bridge_timeout_seconds == 12.5
    assert config.sync_page_size == 50
    assert config.enable_metrics is False
    assert config.log_level == "DEBUG"
