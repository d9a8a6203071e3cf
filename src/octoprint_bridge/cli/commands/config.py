"""Configuration inspection."""

from octoprint_bridge.cli import common
from octoprint_bridge.config import get_config_path


def config_command():
    """Show the effective settings and where config.json is read from."""
    common.logger.debug("Command started", command="config")
    settings = common.get_settings(require_printer=False)

    rows = []
    for name, value in settings.model_dump().items():
        if name == "api_key":
            value = "********" if value else None
        rows.append([name, common.format_value(value)])
    rows.append(["base_url", settings.base_url if settings.host else ""])

    common.output_table("Settings", ["Setting", "Value"], rows, column_styles=["cyan", "green"])
    common.output_message(f"config.json: {get_config_path()}")
