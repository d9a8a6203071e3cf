"""Constants used across the OctoPrint bridge.

How to use the most important parts:
- Import this module to reference default ports, poll intervals and the minimum supported
  OctoPrint version without hardcoding them in your application logic.
"""

APP_NAME = "octoprint-bridge"
APP_AUTHOR = "octoprint-bridge"

# API Defaults
DEFAULT_PORT = 80
DEFAULT_TIMEOUT = 10.0
API_KEY_HEADER = "X-Api-Key"

# Oldest OctoPrint release this bridge is tested against
SUPPORTED_VERSION = "1.9.0"

# Statuses the executor hands back to callers instead of raising
ACCEPTED_STATUSES = frozenset({200, 204, 409})

# Poll intervals (seconds)
DEFAULT_REFRESH_INTERVAL = 60
DEFAULT_REFRESH_INTERVAL_OPERATIONAL = 30
DEFAULT_REFRESH_INTERVAL_PRINTING = 10
NOT_CONNECTED_INTERVAL = 10
DETECTING_RETRY_DELAY = 2

DEFAULT_DATE_FORMAT = "%d.%m.%Y %H:%M:%S"

# Tree namespaces
FILES_NAMESPACE = "files"
TOOLS_NAMESPACE = "tools"
LAYER_PROGRESS_NAMESPACE = "plugins.displayLayerProgress"

# Nodes written by earlier releases that must not survive a restart
LEGACY_STATES = ("printjob.progress.printtime_left",)
LEGACY_SUBTREES = ("temperature",)

THUMBNAIL_SOURCE = "prusaslicerthumbnails"
