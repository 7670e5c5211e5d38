import logging
from datetime import date
from pathlib import Path

import pytest

from exceptions import ConfigurationError
from log_config import log_file_path, setup_logging
from settings import load_settings, settings_from_env

BASE_ENV = {
    "SHOPIFY_SHOP_NAME": "gammatek-test",
    "SHOPIFY_ACCESS_TOKEN": "shpat_abc",
    "SHOPIFY_LOCATION_ID": "70000001",
    "GAMMATEK_API_KEY": "gk_secret",
}


def test_defaults():
    settings = settings_from_env(BASE_ENV)
    assert settings.shopify_api_version == "2024-01"
    assert settings.sync_interval_minutes == 60
    assert settings.shopify_page_limit == 250
    assert settings.strict_title_match is True
    assert settings.gammatek_category is None
    assert settings.pending_file is None


def test_missing_required_variables_are_all_reported():
    with pytest.raises(ConfigurationError) as exc:
        settings_from_env({"SHOPIFY_SHOP_NAME": "x", "GAMMATEK_API_KEY": "  "})
    message = str(exc.value)
    assert "SHOPIFY_ACCESS_TOKEN" in message
    assert "SHOPIFY_LOCATION_ID" in message
    assert "GAMMATEK_API_KEY" in message
    assert "SHOPIFY_SHOP_NAME" not in message


def test_overrides_are_parsed():
    settings = settings_from_env(dict(
        BASE_ENV,
        SYNC_INTERVAL_MINUTES="15",
        STRICT_TITLE_MATCH="false",
        SHOPIFY_PAGE_LIMIT="50",
        GAMMATEK_CATEGORY="Screen Protector",
        LOG_LEVEL="debug",
        SHOPIFY_ACCESS_TOKEN=' "shpat_xyz" ',
    ))
    assert settings.sync_interval_minutes == 15
    assert settings.strict_title_match is False
    assert settings.shopify_page_limit == 50
    assert settings.gammatek_category == "Screen Protector"
    assert settings.log_level == "DEBUG"
    assert settings.shopify_access_token == "shpat_xyz"


@pytest.mark.parametrize("overrides", [
    {"SYNC_INTERVAL_MINUTES": "0"},
    {"SYNC_INTERVAL_MINUTES": "hourly"},
    {"SHOPIFY_PAGE_LIMIT": "500"},
])
def test_invalid_values(overrides):
    with pytest.raises(ConfigurationError):
        settings_from_env(dict(BASE_ENV, **overrides))


def test_masked_hides_secrets():
    masked = settings_from_env(BASE_ENV).masked()
    assert "shpat_abc" not in masked["shopify_access_token"]
    assert "gk_secret" not in masked["gammatek_api_key"]
    assert masked["shopify_shop_name"] == "gammatek-test"


def test_load_settings_reads_dotenv(tmp_path, monkeypatch):
    for key in BASE_ENV:
        monkeypatch.setenv(key, "stale")
    env_file = tmp_path / ".env"
    env_file.write_text("\n".join(f"{k}={v}" for k, v in BASE_ENV.items()) + "\nSYNC_INTERVAL_MINUTES=5\n")
    monkeypatch.setenv("SYNC_INTERVAL_MINUTES", "99")

    settings = load_settings(str(env_file))

    assert settings.shopify_location_id == "70000001"
    assert settings.sync_interval_minutes == 5


def test_log_file_path_is_daily(tmp_path):

    assert log_file_path(tmp_path, date(2026, 10, 19)) == Path(tmp_path) / "sync-2026-10-19.log"


def test_setup_logging_writes_file(tmp_path):
    path = setup_logging(tmp_path / "logs", "info")
    logging.getLogger("sync_engine").info("Sync completed successfully")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert path.parent == tmp_path / "logs"
    assert "Sync completed successfully" in path.read_text(encoding="utf-8")

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
