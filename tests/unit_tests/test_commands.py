"""Tests for the translation of user writes into OctoPrint commands."""

import asyncio
from unittest import mock

import pytest
from structlog.testing import capture_logs

from octoprint_bridge import exceptions
from octoprint_bridge.commands import CommandDispatcher
from octoprint_bridge.executor import ApiResponse
from octoprint_bridge.models import StateChange
from octoprint_bridge.models import tree as spec


@pytest.fixture
def dispatcher(state, tree, api):
    state.api_connected = True
    return CommandDispatcher(state, tree, api, refresh_hook=mock.Mock())


def send(dispatcher, path, value):
    return asyncio.run(dispatcher.handle(StateChange(path=path, value=value, ack=False)))


def posts(fake_executor):
    return [(path, body) for method, path, body in fake_executor.calls if method == "POST"]


def test_unknown_job_command_is_rejected(dispatcher, fake_executor, tree):
    with capture_logs() as cap_logs:
        assert send(dispatcher, "command.printjob", "explode") is False

    assert fake_executor.calls == []
    errors = [log for log in cap_logs if log["log_level"] == "error"]
    assert len(errors) == 1
    assert errors[0]["event"] == "Command not allowed"
    assert errors[0]["allowed"] == ["start", "pause", "resume", "cancel", "restart"]
    assert tree.get_state("command.printjob") is None


def test_pause_sends_explicit_action(dispatcher, fake_executor, tree):
    assert send(dispatcher, "command.printjob", "pause") is True

    assert posts(fake_executor) == [("/api/job", {"command": "pause", "action": "pause"})]
    assert tree.get_state("command.printjob").val == "pause"
    assert tree.get_state("command.printjob").ack is True


def test_resume_is_rewritten_to_pause(dispatcher, fake_executor):
    send(dispatcher, "command.printjob", "resume")

    assert posts(fake_executor) == [("/api/job", {"command": "pause", "action": "resume"})]


@pytest.mark.parametrize("command", ["start", "cancel", "restart"])
def test_plain_job_commands(dispatcher, fake_executor, command):
    send(dispatcher, "command.printjob", command)

    assert posts(fake_executor) == [("/api/job", {"command": command})]


def test_tool_target(dispatcher, fake_executor, tree):
    assert send(dispatcher, "tools.tool1.targetTemperature", 215) is True

    assert posts(fake_executor) == [("/api/printer/tool", {"command": "target", "targets": {"tool1": 215}})]
    assert tree.get_state("tools.tool1.targetTemperature").ack is True


def test_extrude(dispatcher, fake_executor):
    send(dispatcher, "tools.tool0.extrude", -5)

    assert posts(fake_executor) == [("/api/printer/tool", {"command": "extrude", "amount": -5})]


def test_bed_target(dispatcher, fake_executor):
    send(dispatcher, "tools.bed.targetTemperature", 60)

    assert posts(fake_executor) == [("/api/printer/bed", {"command": "target", "target": 60})]


def test_connection_commands_trigger_refresh(dispatcher, fake_executor):
    send(dispatcher, "command.printer", "connect")

    assert posts(fake_executor) == [("/api/connection", {"command": "connect"})]
    dispatcher.refresh_hook.assert_called_once_with("command command.printer")


def test_home(dispatcher, fake_executor):
    send(dispatcher, "command.printer", "home")

    assert posts(fake_executor) == [("/api/printer/printhead", {"command": "home", "axes": ["x", "y", "z"]})]
    dispatcher.refresh_hook.assert_not_called()


def test_unknown_printer_command(dispatcher, fake_executor):
    with capture_logs() as cap_logs:
        assert send(dispatcher, "command.printer", "reboot") is False

    assert fake_executor.calls == []
    assert cap_logs[0]["allowed"] == ["connect", "disconnect", "fake_ack", "home"]


@pytest.mark.parametrize("command,accepted", [("init", True), ("release", True), ("format", False)])
def test_sd_commands(dispatcher, fake_executor, command, accepted):
    assert send(dispatcher, "command.sd", command) is accepted

    expected = [("/api/printer/sd", {"command": command})] if accepted else []
    assert posts(fake_executor) == expected


def test_custom_command_is_sent_unchecked(dispatcher, fake_executor):
    send(dispatcher, "command.custom", "M117 Hello")

    assert posts(fake_executor) == [("/api/printer/command", {"command": "M117 Hello"})]


def test_system_command_must_be_registered(dispatcher, fake_executor, state):
    state.system_commands = ["core/shutdown"]

    assert send(dispatcher, "command.system", "core/reboot") is False
    assert send(dispatcher, "command.system", "core/shutdown") is True

    assert posts(fake_executor) == [("/api/system/commands/core/shutdown", {})]


def test_jog(dispatcher, fake_executor):
    with capture_logs() as cap_logs:
        assert send(dispatcher, "command.jog.z", 0) is False
        assert send(dispatcher, "command.jog.z", 0.0) is False
    assert [log["event"] for log in cap_logs if log["log_level"] == "error"] == ["Command not allowed"] * 2

    assert send(dispatcher, "command.jog.z", 10) is True
    assert send(dispatcher, "command.jog.x", -2.5) is True

    assert posts(fake_executor) == [
        ("/api/printer/printhead", {"command": "jog", "z": 10}),
        ("/api/printer/printhead", {"command": "jog", "x": -2.5}),
    ]


def test_jog_only_rejects_zero_distance(dispatcher, fake_executor):
    assert send(dispatcher, "command.jog.y", "5") is True
    assert posts(fake_executor) == [("/api/printer/printhead", {"command": "jog", "y": "5"})]


def test_file_print_uses_stored_path(dispatcher, fake_executor, tree):
    async def prepare():
        await tree.ensure_node("files.local_cube.path", spec.text("File path"))
        await tree.write_if_changed("files.local_cube.path", "local/cube.gcode")

    asyncio.run(prepare())

    assert send(dispatcher, "files.local_cube.print", True) is True

    assert posts(fake_executor) == [("/api/files/local/cube.gcode", {"command": "select", "print": True})]
    dispatcher.refresh_hook.assert_called_once_with("command files.local_cube.print")


def test_file_select_without_path(dispatcher, fake_executor):
    with capture_logs() as cap_logs:
        assert send(dispatcher, "files.unknown.select", True) is False

    assert fake_executor.calls == []
    assert cap_logs[-1]["event"] == "Command failed"


def test_conflict_leaves_state_unacknowledged(dispatcher, fake_executor, tree):
    fake_executor.route("POST", "/api/job", ApiResponse(status=409, body="Printer is not operational"))

    with capture_logs() as cap_logs:
        assert send(dispatcher, "command.printjob", "start") is False

    assert tree.get_state("command.printjob") is None
    rejected = [log for log in cap_logs if log["event"] == "Command rejected"]
    assert rejected[0]["status_code"] == 409
    assert rejected[0]["body"] == "Printer is not operational"
    assert rejected[0]["log_level"] == "error"


def test_transport_failure_logs_debug(dispatcher, fake_executor):
    fake_executor.route("POST", "/api/job", exceptions.PrinterNetworkError("refused", error_code="ECONNREFUSED"))

    with capture_logs() as cap_logs:
        assert send(dispatcher, "command.printjob", "start") is False

    assert [log["log_level"] for log in cap_logs if log["event"] == "Command failed"] == ["debug"]


def test_commands_ignored_while_disconnected(dispatcher, fake_executor, state):
    state.api_connected = False

    assert send(dispatcher, "command.printjob", "pause") is False
    assert fake_executor.calls == []


def test_acknowledged_and_unrelated_changes_are_ignored(dispatcher, fake_executor):
    assert asyncio.run(dispatcher.handle(StateChange(path="command.printjob", value="pause", ack=True))) is False
    assert send(dispatcher, "printjob.progress.completion", 50) is False
    assert fake_executor.calls == []


def test_listener_dispatches_user_writes(dispatcher, fake_executor, tree):
    tree.subscribe(dispatcher.on_change)

    async def scenario():
        tree.set_state("command.sd", "refresh")
        await dispatcher.wait_idle()

    asyncio.run(scenario())

    assert posts(fake_executor) == [("/api/printer/sd", {"command": "refresh"})]
    assert tree.get_state("command.sd").ack is True
