from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest
from PySide6.QtCore import QCoreApplication

from texteditor.lsp.json_rpc import LspMessageParser, encode_lsp_message
from texteditor.lsp.lsp_client import LspSession
from texteditor.lsp.process import ServerProcessError

FAKE_SERVER = Path(__file__).with_name("fake_lsp_server.py")


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv[:1])
    return app


class FakeClock:
    def __init__(self, start_ms: int = 10_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, delta_ms: int) -> None:
        self.now += delta_ms


class ScriptedServer:
    """In-process stand-in for a language server, wired through os.pipe()."""

    def __init__(self, command_line: str = "scripted-server") -> None:
        to_server_r, to_server_w = os.pipe()
        from_server_r, from_server_w = os.pipe()
        os.set_blocking(to_server_r, False)
        os.set_blocking(from_server_r, False)
        self.stdin = open(to_server_w, "wb", buffering=0)
        self.command_line = command_line
        self._to_server_r = to_server_r
        self._from_server_r = from_server_r
        self._from_server_w: int | None = from_server_w
        self._parser = LspMessageParser()
        self.messages: list[dict[str, Any]] = []
        self.stopped = False
        self.stop_calls: list[int] = []

    @property
    def read_fd(self) -> int:
        return -1 if self.stopped else self._from_server_r

    def stop(self, timeout_ms: int = 1200) -> None:
        self.stop_calls.append(timeout_ms)
        if self.stopped:
            return
        self.drain()
        self.stopped = True
        self.stdin.close()
        os.close(self._to_server_r)
        os.close(self._from_server_r)
        self.close_output()

    def drain(self) -> list[dict[str, Any]]:
        fresh: list[dict[str, Any]] = []
        if self.stopped:
            return fresh
        while True:
            try:
                data = os.read(self._to_server_r, 65536)
            except BlockingIOError:
                break
            if not data:
                break
            fresh.extend(self._parser.feed(data))
        self.messages.extend(fresh)
        return fresh

    def methods(self) -> list[str]:
        self.drain()
        return [str(msg.get("method", "")) for msg in self.messages]

    def last(self, method: str) -> dict[str, Any]:
        self.drain()
        for msg in reversed(self.messages):
            if msg.get("method") == method:
                return msg
        raise AssertionError(f"{method} was never sent")

    def send(self, payload: dict[str, Any]) -> None:
        assert self._from_server_w is not None
        os.write(self._from_server_w, encode_lsp_message(payload))

    def send_raw(self, data: bytes) -> None:
        assert self._from_server_w is not None
        os.write(self._from_server_w, data)

    def reply(self, request_id: int, result: Any = None, error: dict[str, Any] | None = None) -> None:
        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            payload["error"] = error
        else:
            payload["result"] = result
        self.send(payload)

    def close_output(self) -> None:
        if self._from_server_w is not None:
            os.close(self._from_server_w)
            self._from_server_w = None


class ScriptedSupervisor:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.servers: list[ScriptedServer] = []
        self.commands: list[str] = []

    @property
    def server(self) -> ScriptedServer:
        return self.servers[-1]

    def start(self, command_line: str, *, cwd: str | None = None) -> ScriptedServer:
        self.commands.append(command_line)
        if self.fail:
            raise ServerProcessError(f"could not start '{command_line}': boom")
        server = ScriptedServer(command_line)
        self.servers.append(server)
        return server


INITIALIZE_RESULT: dict[str, Any] = {
    "capabilities": {
        "hoverProvider": True,
        "completionProvider": {"triggerCharacters": ["."]},
        "semanticTokensProvider": {
            "legend": {"tokenTypes": ["variable", "function", "TypeA"], "tokenModifiers": []},
            "full": True,
        },
    }
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def supervisor() -> ScriptedSupervisor:
    return ScriptedSupervisor()


@pytest.fixture
def session(supervisor, clock):
    lsp = LspSession(supervisor=supervisor, clock=clock)
    yield lsp
    lsp.stop()


@pytest.fixture
def ready_session(session, supervisor, tmp_path):
    """A started session whose initialize request has been answered."""
    assert session.start("scripted-server", root_path=str(tmp_path))
    init = supervisor.server.last("initialize")
    supervisor.server.reply(init["id"], INITIALIZE_RESULT)
    session.process_available()
    assert session.is_ready()
    return session


class SignalRecorder:
    def __init__(self, signal) -> None:
        self.calls: list[tuple[Any, ...]] = []
        signal.connect(self._record)

    def _record(self, *args) -> None:
        self.calls.append(args)

    def __len__(self) -> int:
        return len(self.calls)

    @property
    def last(self) -> tuple[Any, ...]:
        return self.calls[-1]


@pytest.fixture
def record():
    return SignalRecorder


@pytest.fixture
def fake_server_command():
    def build(mode: str = "normal") -> str:
        return f"{sys.executable} {FAKE_SERVER} {mode}"

    return build
