"""OctoPrint bridge CLI package.

This module provides the command-line tool `octobridge` used to run the bridge and to inspect or
drive a printer through it.
"""

from octoprint_bridge.cli.common import console, get_settings, logger
from octoprint_bridge.cli.main import app, main

__all__ = [
    "app",
    "console",
    "get_settings",
    "logger",
    "main",
]
