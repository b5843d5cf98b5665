"""Application configuration using pydantic-settings."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    APP_NAME: str = "UniFi Guest Voucher Service"
    VOUCHER_TYPES: str = "480,0,,,;"

    UNIFI_IP: str = "192.168.1.1"
    UNIFI_PORT: int = 443
    UNIFI_USERNAME: str = "admin"
    UNIFI_PASSWORD: str = "password"
    UNIFI_SITE_ID: str = "default"
    UNIFI_VERIFY_SSL: bool = False
    UNIFI_TIMEOUT_SECONDS: float = 10.0

    SECURITY_CODE: str = "0000"
    DISABLE_AUTH: bool = False
    SERVICE_API: bool = True

    VOUCHER_NOTE: Optional[str] = None

    AUTO_SYNC_INTERVAL_MINUTES: int = 15
    LOG_LEVEL: str = "INFO"
    OPTIONS_FILE: str = "/data/options.json"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def unifi_base_url(self) -> str:
        """Base URL of the controller."""
        return f"https://{self.UNIFI_IP}:{self.UNIFI_PORT}"


def read_options_file(path: str) -> dict:
    """Read add-on options and map them onto Settings field names.

    The add-on supervisor writes lower-case keys (``voucher_types``,
    ``unifi_ip``...). Unknown keys are ignored.

    Args:
        path: Location of the options JSON file.

    Returns:
        Dictionary of Settings overrides, empty if the file does not exist.
    """
    options_path = Path(path)
    if not options_path.is_file():
        return {}

    with options_path.open(encoding="utf-8") as fh:
        raw = json.load(fh)

    logger.info("[Options] Found at %s", options_path)
    overrides = {}
    for key, value in raw.items():
        name = key.upper()
        if name in Settings.model_fields and value not in (None, ""):
            overrides[name] = value
    return overrides


def load_settings(options_file: Optional[str] = None) -> Settings:
    """Build settings from the environment, overridden by the options file.

    Args:
        options_file: Path of the options file. Defaults to the
                      ``OPTIONS_FILE`` setting; an empty string skips it.
    """
    if options_file is None:
        options_file = Settings().OPTIONS_FILE
    overrides = read_options_file(options_file) if options_file else {}
    return Settings(**overrides)


settings = load_settings()
