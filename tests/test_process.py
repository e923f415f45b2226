from __future__ import annotations

import os
import subprocess
import time

import pytest

from texteditor.lsp.process import ProcessSupervisor, ServerProcessError, split_command


def test_split_command_collapses_spaces_and_tabs():
    assert split_command("clangd  --log=error\t-j=2 ") == ["clangd", "--log=error", "-j=2"]
    assert split_command("   ") == []


def test_empty_command_is_rejected():
    with pytest.raises(ServerProcessError):
        ProcessSupervisor().start("  ")


def test_missing_executable_raises_server_process_error():
    with pytest.raises(ServerProcessError, match="could not start"):
        ProcessSupervisor().start("definitely-not-a-real-language-server-binary")


def test_spawned_server_has_non_blocking_read_end(fake_server_command):
    process = ProcessSupervisor().start(fake_server_command())
    try:
        assert process.is_alive()
        assert process.read_fd >= 0
        with pytest.raises(BlockingIOError):
            os.read(process.read_fd, 1)
    finally:
        process.stop(200)


def test_stop_is_idempotent(fake_server_command):
    process = ProcessSupervisor().start(fake_server_command())
    process.stop(1000)
    assert not process.is_alive()
    assert process.read_fd == -1
    code = process.returncode()
    process.stop(1000)
    assert process.returncode() == code


def test_stop_escalates_to_kill_for_stubborn_server(fake_server_command):
    process = ProcessSupervisor().start(fake_server_command("ignore-exit"))
    # Let the child install its SIGTERM handler.
    time.sleep(0.3)
    started = time.monotonic()
    process.stop(100)
    elapsed = time.monotonic() - started
    assert not process.is_alive()
    assert process.returncode() is not None
    assert elapsed < 5.0


def test_process_factory_without_pipes_is_cleaned_up(fake_server_command):
    def factory(argv, **kwargs):
        kwargs["stdin"] = subprocess.DEVNULL
        return subprocess.Popen(argv, **kwargs)

    with pytest.raises(ServerProcessError, match="without pipes"):
        ProcessSupervisor(process_factory=factory).start(fake_server_command())
