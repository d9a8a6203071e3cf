"""Typed wrappers over the OctoPrint REST API, one service per resource."""

from octoprint_bridge.executor import RequestExecutor
from octoprint_bridge.services.base import BaseService
from octoprint_bridge.services.connection import ConnectionService
from octoprint_bridge.services.files import FileService
from octoprint_bridge.services.jobs import JobService
from octoprint_bridge.services.plugins import PluginService
from octoprint_bridge.services.printer import PrinterService
from octoprint_bridge.services.system import SystemService

__all__ = [
    "BaseService",
    "ConnectionService",
    "FileService",
    "JobService",
    "OctoPrintApi",
    "PluginService",
    "PrinterService",
    "SystemService",
]


class OctoPrintApi:
    """All services bound to one executor.

    Usage Example:
    ```python
        >>> api = OctoPrintApi(OctoPrintExecutor("http://octopi.local:80", api_key="ABC"))
        >>> version = await api.connection.version()
    ```
    """

    def __init__(self, executor: RequestExecutor):
        """Initialize all services."""
        self.executor = executor
        self.connection = ConnectionService(executor)
        self.printer = PrinterService(executor)
        self.job = JobService(executor)
        self.files = FileService(executor)
        self.system = SystemService(executor)
        self.plugins = PluginService(executor)
