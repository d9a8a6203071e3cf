import copy
import logging
import os
import typing

import pytest
import structlog

from octoprint_bridge import config, exceptions
from octoprint_bridge.executor import ApiResponse
from octoprint_bridge.models import SyncEngineState
from octoprint_bridge.monitor import ConnectionMonitor
from octoprint_bridge.services import OctoPrintApi
from octoprint_bridge.store import MemoryStateTree


def pytest_load_initial_conftests(early_config, parser, args):
    """Conditionally append coverage report to GITHUB_STEP_SUMMARY.

    Only applies when running in GitHub Actions.
    """
    summary_file = os.getenv("GITHUB_STEP_SUMMARY")
    if (
        os.getenv("GITHUB_ACTIONS") == "true"
        and summary_file
        and not any(arg.startswith("--cov-report=markdown-append:") for arg in args)
    ):
        args.append(f"--cov-report=markdown-append:{summary_file}")


@pytest.fixture(autouse=True)
def debug_logging():
    """Let debug events through so `capture_logs` sees every level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG))
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep the user's config.json and OCTOPRINT_* variables out of the tests."""
    monkeypatch.setattr(config, "load_json_config", lambda: {})
    for name in list(os.environ):
        if name.startswith("OCTOPRINT_"):
            monkeypatch.delenv(name)


VERSION = {"server": "1.10.2", "api": "0.1", "text": "OctoPrint 1.10.2"}

CONNECTION = {
    "current": {"state": "Operational", "port": "/dev/ttyACM0", "baudrate": 115200, "printerProfile": "_default"},
    "options": {"ports": ["/dev/ttyACM0"], "baudrates": [115200]},
}

PRINTER = {
    "temperature": {
        "tool0": {"actual": 214.8, "target": 215.0, "offset": 0},
        "bed": {"actual": 60.1, "target": 60.0, "offset": 5},
        "history": [{"time": 1700000000, "tool0": {"actual": 214.8, "target": 215.0}}],
    },
    "state": {"text": "Operational", "flags": {"operational": True, "printing": False}},
}

JOB = {
    "job": {
        "file": {
            "name": "benchy.gcode",
            "display": "benchy.gcode",
            "origin": "local",
            "path": "boats/benchy.gcode",
            "size": 2048000,
            "date": 1700000000,
        },
        "estimatedPrintTime": 3600.5,
        "filament": {"tool0": {"length": 4123.4, "volume": 9.876}},
    },
    "progress": {"completion": 42.6, "filepos": 1024000, "printTime": 1530, "printTimeLeft": 2070},
    "state": "Printing",
}

FILES = {
    "files": [
        {
            "name": "boats",
            "display": "boats",
            "path": "boats",
            "type": "folder",
            "origin": "local",
            "children": [
                {
                    "name": "benchy.gcode",
                    "display": "benchy.gcode",
                    "path": "boats/benchy.gcode",
                    "type": "machinecode",
                    "origin": "local",
                    "size": 2048000,
                    "date": 1700000000,
                    "thumbnail": "plugin/prusaslicerthumbnails/thumbnail/boats/benchy.png?20231114",
                    "thumbnail_src": "prusaslicerthumbnails",
                }
            ],
        },
        {
            "name": "cube.gcode",
            "display": "Cube (v2).gcode",
            "path": "cube.gcode",
            "type": "machinecode",
            "origin": "local",
            "size": 51200,
            "date": 1690000000,
        },
        {"name": "notes.stl", "path": "notes.stl", "type": "model", "origin": "local", "size": 10},
        {"name": "sd.gcode", "path": "sd.gcode", "type": "machinecode", "origin": "sdcard", "size": 10},
    ],
    "free": 123456789,
    "total": 987654321,
}

SYSTEM_COMMANDS = {
    "core": [
        {"action": "shutdown", "source": "core", "name": "Shutdown system", "confirm": "Really?"},
        {"action": "reboot", "source": "core", "name": "Reboot system"},
    ],
    "custom": [{"action": "lights_on", "source": "custom", "name": "Lights on"}],
}

LAYER_PROGRESS = {
    "fanSpeed": "69%",
    "feedrate": "3000",
    "layer": {
        "averageLayerDurationInSeconds": 63,
        "current": "39",
        "lastLayerDurationInSeconds": "-",
        "total": "49",
    },
}


class FakeExecutor:
    """In-memory `RequestExecutor`.

    Routes map ``(method, path)`` to an `ApiResponse`, a JSON body (served as 200) or an exception.
    Unrouted POSTs answer 204; unrouted GETs are rejected with 404.
    """

    base_url = "http://octopi.local:80"

    def __init__(self, routes: dict[tuple[str, str], typing.Any] | None = None):
        self.routes = dict(routes or {})
        self.binaries: dict[str, bytes] = {}
        self.calls: list[tuple[str, str, typing.Any]] = []
        self.downloads: list[str] = []

    def route(self, method: str, path: str, result: typing.Any) -> None:
        self.routes[(method, path)] = result

    def paths(self, method: str | None = None) -> list[str]:
        return [path for m, path, _ in self.calls if method is None or m == method]

    async def execute(self, method: str, path: str, body: dict[str, typing.Any] | None = None) -> ApiResponse:
        self.calls.append((method, path, body))
        result = self.routes.get((method, path))
        if result is None:
            if method == "POST":
                return ApiResponse(status=204)
            raise exceptions.PrinterApiError(message="Request failed: Not Found", status_code=404, response_body=None)
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, ApiResponse):
            return result
        return ApiResponse(status=200, body=copy.deepcopy(result))

    async def fetch_binary(self, url: str) -> bytes:
        self.downloads.append(url)
        if url not in self.binaries:
            raise exceptions.PrinterApiError(message="Download failed: Not Found", status_code=404, response_body=None)
        return self.binaries[url]


def operational_routes() -> dict[tuple[str, str], typing.Any]:
    return {
        ("GET", "/api/version"): VERSION,
        ("GET", "/api/connection"): CONNECTION,
        ("GET", "/api/printer"): PRINTER,
        ("GET", "/api/job"): JOB,
        ("GET", "/api/files?recursive=true"): FILES,
        ("GET", "/api/system/commands"): SYSTEM_COMMANDS,
        ("GET", "/plugin/DisplayLayerProgress/values"): LAYER_PROGRESS,
    }


def with_phase(phase: str) -> dict[str, typing.Any]:
    """Connection payload reporting ``phase``."""
    payload = copy.deepcopy(CONNECTION)
    payload["current"]["state"] = phase
    return payload


@pytest.fixture
def tree():
    return MemoryStateTree()


@pytest.fixture
def state():
    return SyncEngineState()


@pytest.fixture
def fake_executor():
    return FakeExecutor(operational_routes())


@pytest.fixture
def api(fake_executor):
    return OctoPrintApi(fake_executor)


@pytest.fixture
def monitor(state, tree):
    return ConnectionMonitor(state, tree)


@pytest.fixture
def settings(tmp_path):
    return config.Settings(host="octopi.local", api_key="SECRET", thumbnail_dir=tmp_path / "thumbs", _env_file=None)
