"""OctoPrint bridge.

This package mirrors the state of an OctoPrint server into a hierarchical home-automation
state tree and turns user writes on that tree into OctoPrint commands.

How to use the most important parts:
- `OctoPrintBridge`: Start here. Give it `Settings` and a `StateTreeAdapter` and it polls
  OctoPrint adaptively until stopped.
- `MemoryStateTree`: In-process state tree, handy for scripts and tests.
- Explore `engine`, `commands`, `files` and `scheduler` for the individual building blocks.
"""

import logging

import structlog

# Set default library logging level to WARNING if the user hasn't configured structlog
if not structlog.is_configured():
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))

from octoprint_bridge.__version__ import __version__
from octoprint_bridge.bridge import OctoPrintBridge
from octoprint_bridge.config import Settings
from octoprint_bridge.executor import OctoPrintExecutor, RequestExecutor
from octoprint_bridge.store import MemoryStateTree, StateTreeAdapter

__all__ = [
    "MemoryStateTree",
    "OctoPrintBridge",
    "OctoPrintExecutor",
    "RequestExecutor",
    "Settings",
    "StateTreeAdapter",
    "__version__",
]
