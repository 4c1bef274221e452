"""
Tests for the MCP server process handle.

These spawn the fake MCP server from tests/support as a real subprocess.
"""

import asyncio

import pytest

from hubspot_bridge.exceptions import ProcessExitedError, ProcessNotRunningError, ProcessSpawnError
from hubspot_bridge.process import ChildProcess, EventKind, ProcessState, RequestCorrelator


async def wait_for_state(handle: ChildProcess, state: ProcessState, timeout: float = 5.0) -> None:
    async def _poll():
        while handle.state != state:
            await asyncio.sleep(0.02)

    await asyncio.wait_for(_poll(), timeout=timeout)


def make_handle(fake_command, **kwargs) -> ChildProcess:
    kwargs.setdefault("handshake_delay", 0.05)
    kwargs.setdefault("terminate_grace", 2)
    return ChildProcess(command=fake_command, **kwargs)


class TestLifecycle:
    """Tests for spawn, handshake and exit detection."""

    @pytest.mark.asyncio
    async def test_reaches_ready_after_handshake(self, fake_command):
        """Test that a well-behaved server becomes ready."""
        handle = make_handle(fake_command)
        assert handle.state == ProcessState.NOT_STARTED

        await handle.start()
        assert handle.state in (ProcessState.STARTING, ProcessState.READY)
        await wait_for_state(handle, ProcessState.READY)

        snapshot = handle.snapshot()
        assert snapshot["state"] == "ready"
        assert snapshot["pid"] is not None
        assert snapshot["serverInfo"] == {"name": "fake-hubspot", "version": "0.0.1"}
        await handle.terminate()

    @pytest.mark.asyncio
    async def test_concurrent_start_spawns_once(self, fake_command):
        """Test that overlapping start() calls track a single process."""
        handle = make_handle(fake_command)

        await asyncio.gather(handle.start(), handle.start(), handle.start())
        pid = handle.pid
        await handle.start()

        assert pid is not None
        assert handle.pid == pid
        await handle.terminate()

    @pytest.mark.asyncio
    async def test_immediate_exit_publishes_event(self, fake_command, monkeypatch):
        """Test that a process dying at startup ends up EXITED with its code."""
        monkeypatch.setenv("FAKE_MCP_MODE", "exit_immediately")
        handle = make_handle(fake_command)

        await handle.start()
        await wait_for_state(handle, ProcessState.EXITED)

        event = await asyncio.wait_for(handle.events.get(), timeout=5)
        assert event.kind == EventKind.EXITED
        assert event.returncode == 2
        assert handle.returncode == 2
        assert handle.pid is None

    @pytest.mark.asyncio
    async def test_rejected_initialize_stays_starting(self, fake_command, monkeypatch):
        """Test that an initialize error never marks the process ready."""
        monkeypatch.setenv("FAKE_MCP_MODE", "init_error")
        handle = make_handle(fake_command)

        await handle.start()
        await asyncio.sleep(0.5)

        assert handle.state == ProcessState.STARTING
        await handle.terminate()

    @pytest.mark.asyncio
    async def test_spawn_failure_raises(self, tmp_path):
        """Test that a missing executable surfaces as ProcessSpawnError."""
        handle = ChildProcess(command=[str(tmp_path / "no-such-binary")], handshake_delay=0.05)

        with pytest.raises(ProcessSpawnError) as exc_info:
            await handle.start()

        assert exc_info.value.details["command"] == str(tmp_path / "no-such-binary")
        assert handle.state == ProcessState.EXITED

    @pytest.mark.asyncio
    async def test_terminate_marks_exited(self, fake_command):
        """Test that terminate() stops the process and records the exit."""
        handle = make_handle(fake_command)
        await handle.start()
        await wait_for_state(handle, ProcessState.READY)

        await handle.terminate()

        assert handle.state == ProcessState.EXITED
        assert handle.pid is None
        event = await asyncio.wait_for(handle.events.get(), timeout=5)
        assert event.kind == EventKind.EXITED

    @pytest.mark.asyncio
    async def test_restart_after_exit(self, fake_command):
        """Test that start() after an exit spawns a fresh process."""
        handle = make_handle(fake_command)
        await handle.start()
        await wait_for_state(handle, ProcessState.READY)
        first_pid = handle.pid
        await handle.terminate()

        await handle.start()
        await wait_for_state(handle, ProcessState.READY)

        assert handle.pid != first_pid
        await handle.terminate()

    @pytest.mark.asyncio
    async def test_send_without_process_raises(self, fake_command):
        """Test that writing with no tracked process fails."""
        handle = make_handle(fake_command)

        with pytest.raises(ProcessNotRunningError):
            await handle.send({"jsonrpc": "2.0", "method": "ping", "id": 1})


class TestWithCorrelator:
    """End-to-end tests of the handle driven by the correlator."""

    @pytest.mark.asyncio
    async def test_token_is_passed_to_child(self, fake_command):
        """Test that the access token reaches the child environment."""
        handle = make_handle(fake_command, access_token="pat-test-123")
        correlator = RequestCorrelator(handle, request_timeout=3, ready_poll_interval=0.05, ready_poll_attempts=60)

        result = await correlator.call("tools/call", {"name": "env", "arguments": {}})

        assert result == {"token": "pat-test-123"}
        await handle.terminate()
        await correlator.stop()

    @pytest.mark.asyncio
    async def test_call_against_immediately_exiting_child(self, fake_command, monkeypatch):
        """Test that a child exiting at startup fails the call with an exit error."""
        monkeypatch.setenv("FAKE_MCP_MODE", "exit_immediately")
        handle = make_handle(fake_command)
        correlator = RequestCorrelator(handle, request_timeout=3, ready_poll_interval=0.05, ready_poll_attempts=60)

        with pytest.raises(ProcessExitedError, match="exited"):
            await correlator.call("tools/list")

        await correlator.stop()

    @pytest.mark.asyncio
    async def test_crash_mid_request_rejects_call(self, fake_command):
        """Test that a crash while a request is pending fails that request."""
        handle = make_handle(fake_command)
        correlator = RequestCorrelator(handle, request_timeout=3, ready_poll_interval=0.05, ready_poll_attempts=60)

        with pytest.raises(ProcessExitedError) as exc_info:
            await correlator.call("tools/call", {"name": "crash", "arguments": {}})

        assert exc_info.value.returncode == 3
        assert correlator.pending_count == 0
        await correlator.stop()
