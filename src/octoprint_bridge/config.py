"""Configuration handling for the bridge.

Settings are read from (highest priority first) explicit keyword arguments, ``OCTOPRINT_*``
environment variables, a ``.env`` file and ``config.json`` in the user config directory.
"""

import json
import pathlib
import typing

import platformdirs
import pydantic
import pydantic_settings
import structlog

from octoprint_bridge import consts

logger = structlog.get_logger(__name__)


def get_config_path() -> pathlib.Path:
    """Location of the bridge's ``config.json``."""
    return pathlib.Path(platformdirs.user_config_dir(consts.APP_NAME, consts.APP_AUTHOR)) / "config.json"


def get_default_thumbnail_dir() -> pathlib.Path:
    """Default directory downloaded thumbnails are stored in."""
    return pathlib.Path(platformdirs.user_cache_dir(consts.APP_NAME, consts.APP_AUTHOR)) / "thumbnails"


def load_json_config() -> dict[str, typing.Any]:
    """Load configuration from config.json."""
    config_file = get_config_path()
    logger.debug("Attempting to load config.json", config_file=str(config_file))
    if config_file.exists():
        try:
            with config_file.open("r", encoding="utf-8") as f:
                return json.load(f)
        except Exception:
            # Fallback if JSON is malformed
            logger.exception("Failed to read config.json", config_file=str(config_file))
            return {}
    logger.debug("No config.json found.")
    return {}


class Settings(pydantic_settings.BaseSettings):
    """Bridge settings: where OctoPrint lives and how often to poll it."""

    host: str | None = None
    port: int = consts.DEFAULT_PORT
    api_key: pydantic.SecretStr | None = None
    use_https: bool = False
    allow_self_signed: bool = False
    timeout: float = pydantic.Field(default=consts.DEFAULT_TIMEOUT, gt=0)

    refresh_interval: int = pydantic.Field(default=consts.DEFAULT_REFRESH_INTERVAL, ge=1)
    refresh_interval_operational: int = pydantic.Field(default=consts.DEFAULT_REFRESH_INTERVAL_OPERATIONAL, ge=1)
    refresh_interval_printing: int = pydantic.Field(default=consts.DEFAULT_REFRESH_INTERVAL_PRINTING, ge=1)

    custom_name: str | None = None
    plugin_slicer_thumbnails: bool = False
    plugin_display_layer_progress: bool = False
    thumbnail_dir: pathlib.Path = pydantic.Field(default_factory=get_default_thumbnail_dir)
    date_format: str = consts.DEFAULT_DATE_FORMAT

    model_config = pydantic_settings.SettingsConfigDict(env_prefix="OCTOPRINT_", env_file=".env", extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[pydantic_settings.BaseSettings],
        init_settings: pydantic_settings.PydanticBaseSettingsSource,
        env_settings: pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[pydantic_settings.PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include config.json."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            pydantic_settings.InitSettingsSource(settings_cls, load_json_config()),
            file_secret_settings,
        )

    @property
    def base_url(self) -> str:
        """Root URL of the OctoPrint instance."""
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.host}:{self.port}"

    def missing_required(self) -> list[str]:
        """Names of required settings that are not configured."""
        missing = []
        if not self.host:
            missing.append("host")
        if self.api_key is None or not self.api_key.get_secret_value():
            missing.append("api_key")
        return missing
