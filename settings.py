# ============================================================================
#  settings.py — Environment Configuration
#  Version: 1.0.0
# ============================================================================
import os
import logging
from typing import Mapping, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator
from exceptions import ConfigurationError
from gammatek_client import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

REQUIRED_VARS = (
    "SHOPIFY_SHOP_NAME",
    "SHOPIFY_ACCESS_TOKEN",
    "SHOPIFY_LOCATION_ID",
    "GAMMATEK_API_KEY",
)


class SyncSettings(BaseModel):
    shopify_shop_name: str
    shopify_access_token: str
    shopify_location_id: str
    gammatek_api_key: str
    shopify_api_version: str = "2024-01"
    gammatek_base_url: str = DEFAULT_BASE_URL
    gammatek_category: Optional[str] = None
    sync_interval_minutes: float = 60
    delay_between_products: float = 0
    shopify_page_limit: int = 250
    shopify_max_pages: int = 20
    strict_title_match: bool = True
    metafield_namespace: str = "gammatek"
    metafield_key: str = "gammatek_sync"
    log_dir: str = "logs"
    log_level: str = "INFO"
    pending_file: Optional[str] = None

    @field_validator("shopify_access_token", "shopify_shop_name")
    @classmethod
    def _strip_quotes(cls, value: str) -> str:
        # .env files often carry quoted or padded values
        return value.strip().strip('"\'').strip()

    @field_validator("sync_interval_minutes")
    @classmethod
    def _positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than 0")
        return value

    @field_validator("shopify_page_limit")
    @classmethod
    def _page_limit(cls, value: int) -> int:
        if not 1 <= value <= 250:
            raise ValueError("must be between 1 and 250")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    def masked(self) -> dict:
        data = self.model_dump()
        for key in ("shopify_access_token", "gammatek_api_key"):
            data[key] = f"{'*' * min(len(data[key]), 20)}... (hidden)"
        return data


def settings_from_env(environ: Mapping[str, str]) -> SyncSettings:
    missing = [var for var in REQUIRED_VARS if not (environ.get(var) or "").strip()]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    fields = SyncSettings.model_fields
    values = {name: environ[name.upper()] for name in fields
              if environ.get(name.upper()) not in (None, "")}
    try:
        return SyncSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_settings(env_file: str = ".env") -> SyncSettings:
    """Loads the dotenv file (overriding the process env) and validates it."""
    load_dotenv(env_file, override=True)
    return settings_from_env(os.environ)


def log_settings(settings: SyncSettings) -> None:
    logger.info("=" * 80)
    logger.info("Configuration Summary:")
    for key, value in settings.masked().items():
        logger.info(f"  {key.upper()}: {value}")
    logger.info("=" * 80)
# ============================================================================
# End of settings.py — Version: 1.0.0
# ============================================================================
