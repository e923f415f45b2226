"""Language server child process lifecycle."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable

log = logging.getLogger(__name__)

ProcessFactory = Callable[..., subprocess.Popen]

_TERMINATE_WAIT_S = 0.5


class ServerProcessError(RuntimeError):
    """Raised when a language server cannot be spawned."""


def split_command(command_line: str) -> list[str]:
    return [part for part in str(command_line or "").replace("\t", " ").split(" ") if part]


class ServerProcess:
    """A running language server bound to a pair of pipes."""

    def __init__(self, proc: subprocess.Popen, command_line: str) -> None:
        self._proc = proc
        self.command_line = command_line
        self._stopped = False

    @property
    def pid(self) -> int:
        return int(self._proc.pid)

    @property
    def stdin(self):
        return self._proc.stdin

    @property
    def read_fd(self) -> int:
        if self._stopped or self._proc.stdout is None:
            return -1
        return self._proc.stdout.fileno()

    def is_alive(self) -> bool:
        return not self._stopped and self._proc.poll() is None

    def returncode(self) -> int | None:
        return self._proc.poll()

    def stop(self, timeout_ms: int = 1200) -> None:
        """Close the pipes and reap the child, escalating to a kill."""
        if self._stopped:
            return
        self._stopped = True
        for stream in (self._proc.stdin, self._proc.stdout):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                pass

        try:
            self._proc.wait(timeout=max(0, int(timeout_ms)) / 1000.0)
            return
        except subprocess.TimeoutExpired:
            log.info("Language server pid %s ignored exit; terminating", self.pid)

        try:
            self._proc.terminate()
            self._proc.wait(timeout=_TERMINATE_WAIT_S)
            return
        except subprocess.TimeoutExpired:
            log.warning("Language server pid %s ignored SIGTERM; killing", self.pid)
        except OSError:
            pass

        try:
            self._proc.kill()
        except OSError:
            pass
        self._proc.wait()


class ProcessSupervisor:
    """Spawns language servers with their stderr discarded."""

    def __init__(self, process_factory: ProcessFactory = subprocess.Popen) -> None:
        self._process_factory = process_factory

    def start(self, command_line: str, *, cwd: str | None = None) -> ServerProcess:
        argv = split_command(command_line)
        if not argv:
            raise ServerProcessError("empty language server command")
        try:
            proc = self._process_factory(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                bufsize=0,
                cwd=cwd or None,
            )
        except (OSError, ValueError) as exc:
            raise ServerProcessError(f"could not start '{argv[0]}': {exc}") from exc

        if proc.stdin is None or proc.stdout is None:
            _discard(proc)
            raise ServerProcessError(f"'{argv[0]}' started without pipes")
        try:
            os.set_blocking(proc.stdout.fileno(), False)
        except OSError as exc:
            _discard(proc)
            raise ServerProcessError(f"could not configure pipes for '{argv[0]}': {exc}") from exc

        log.info("Started language server '%s' (pid %s)", argv[0], proc.pid)
        return ServerProcess(proc, " ".join(argv))


def _discard(proc: subprocess.Popen) -> None:
    for stream in (proc.stdin, proc.stdout):
        if stream is not None:
            try:
                stream.close()
            except OSError:
                pass
    try:
        proc.kill()
    except OSError:
        pass
    proc.wait()
