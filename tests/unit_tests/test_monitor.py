import asyncio

from octoprint_bridge import exceptions
from octoprint_bridge.models import PrinterPhase, VersionInfo
from octoprint_bridge.monitor import error_kind

VERSION = VersionInfo(server="1.10.2", api="0.1")


def test_observe_ok_publishes_status(monitor, state, tree):
    asyncio.run(monitor.observe(VERSION))

    assert state.api_connected is True
    assert state.server_version == "1.10.2"
    assert tree.get_state("info.connection").val is True
    assert tree.get_state("info.connection").ack is True
    assert tree.get_state("printer_status").val == "API not connected"


def test_unchanged_observations_do_not_write(monitor, tree):
    async def scenario():
        await monitor.observe(VERSION)
        await monitor.observe_phase("Operational")
        writes = tree.writes
        await monitor.observe(VERSION)
        await monitor.observe_phase("Operational")
        return writes

    writes = asyncio.run(scenario())
    assert tree.writes == writes


def test_phase_change_updates_derived_flags(monitor, tree):
    async def scenario():
        await monitor.observe(VERSION)
        await monitor.observe_phase("Printing")

    asyncio.run(scenario())

    assert tree.get_state("printer_status").val == "Printing"
    assert tree.get_state("operational").val is True
    assert tree.get_state("printing").val is True


def test_unknown_phase_passes_through(monitor, state, tree):
    asyncio.run(monitor.observe_phase("Levelling bed"))

    assert state.printer_phase == "Levelling bed"
    assert tree.get_state("printer_status").val == "Levelling bed"
    assert tree.get_state("operational").val is False


def test_observe_error_marks_disconnected(monitor, state, tree):
    async def scenario():
        await monitor.observe(VERSION)
        await monitor.observe_phase("Printing")
        await monitor.observe(exceptions.PrinterNetworkError("refused", error_code="ECONNREFUSED"))

    asyncio.run(scenario())

    assert state.api_connected is False
    assert state.printer_phase == PrinterPhase.API_NOT_CONNECTED
    assert state.last_error_kind == "ECONNREFUSED"
    assert tree.get_state("info.connection").val is False
    assert tree.get_state("printing").val is False


def test_error_kind():
    assert error_kind(exceptions.PrinterApiError("nope", status_code=403, response_body=None)) == "HTTP 403"
    assert error_kind(exceptions.RequestSetupError("bad url")) == "RequestSetupError"
