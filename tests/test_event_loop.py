from __future__ import annotations

import os
import time

from PySide6.QtCore import QCoreApplication

from texteditor.lsp.event_loop import LspEventLoop, QtSessionPump

from conftest import INITIALIZE_RESULT


def test_run_once_without_server_reports_host_fds(session):
    loop = LspEventLoop(session)
    read_fd, write_fd = os.pipe()
    try:
        assert loop.run_once(10, [read_fd]) == []
        os.write(write_fd, b"k")
        assert loop.run_once(10, [read_fd]) == [read_fd]
    finally:
        os.close(read_fd)
        os.close(write_fd)


def test_run_once_with_nothing_to_wait_on_returns_immediately(session):
    started = time.monotonic()
    assert LspEventLoop(session).run_once(500) == []
    assert time.monotonic() - started < 0.4


def test_run_once_dispatches_server_messages(session, supervisor, tmp_path, record):
    ready = record(session.ready)
    session.start("clangd", root_path=str(tmp_path))
    loop = LspEventLoop(session)
    assert loop.run_once(0) == []
    assert len(ready) == 0

    supervisor.server.reply(1, INITIALIZE_RESULT)
    loop.run_once(100)
    assert len(ready) == 1


def test_run_once_ticks_scheduled_work(session, supervisor, tmp_path, clock):
    session.start("clangd", root_path=str(tmp_path))
    path = str(tmp_path / "a.c")
    session.did_open(path, "x", "c")
    session.did_change(path, "y")
    before = supervisor.server.methods().count("textDocument/semanticTokens/full")
    clock.advance(150)
    LspEventLoop(session).run_once(0)
    assert supervisor.server.methods().count("textDocument/semanticTokens/full") == before + 1


def _process_events_until(predicate, timeout_s: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        QCoreApplication.processEvents()
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_qt_pump_follows_session_lifecycle(session, supervisor, tmp_path, record):
    pump = QtSessionPump(session)
    assert not pump.is_active()

    ready = record(session.ready)
    session.start("clangd", root_path=str(tmp_path))
    assert pump.is_active()

    supervisor.server.reply(1, INITIALIZE_RESULT)
    assert _process_events_until(lambda: len(ready) == 1)

    session.stop()
    assert not pump.is_active()
