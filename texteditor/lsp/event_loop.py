"""Hooks that let a host loop drive an `LspSession`."""

from __future__ import annotations

import selectors
from typing import Iterable

from PySide6.QtCore import QObject, QSocketNotifier, QTimer

from .lsp_client import LspSession

TICK_INTERVAL_MS = 25


class LspEventLoop:
    """Select-based loop for hosts without a Qt event loop."""

    def __init__(self, session: LspSession) -> None:
        self.session = session

    def run_once(self, timeout_ms: int, extra_fds: Iterable[int] = ()) -> list[int]:
        """Tick, wait up to `timeout_ms` and dispatch server traffic.

        Returns the host descriptors from `extra_fds` that became readable.
        """
        self.session.tick()

        selector = selectors.DefaultSelector()
        try:
            server_fd = self.session.fileno()
            if server_fd >= 0:
                selector.register(server_fd, selectors.EVENT_READ, None)
            for fd in extra_fds:
                fd = int(fd)
                if fd < 0 or fd == server_fd:
                    continue
                selector.register(fd, selectors.EVENT_READ, fd)

            if not selector.get_map():
                return []

            ready: list[int] = []
            server_ready = False
            for key, _events in selector.select(max(0, int(timeout_ms)) / 1000.0):
                if key.data is None:
                    server_ready = True
                else:
                    ready.append(int(key.data))
        finally:
            selector.close()

        if server_ready:
            self.session.process_available()
        return ready


class QtSessionPump(QObject):
    """Drives a session from the Qt event loop."""

    def __init__(self, session: LspSession, parent: QObject | None = None, *, interval_ms: int = TICK_INTERVAL_MS) -> None:
        super().__init__(parent)
        self.session = session
        self._notifier: QSocketNotifier | None = None

        self._timer = QTimer(self)
        self._timer.setInterval(max(1, int(interval_ms)))
        self._timer.timeout.connect(self.session.tick)

        self.session.started.connect(self._attach)
        self.session.stopped.connect(self._detach)
        if self.session.is_running():
            self._attach()

    def is_active(self) -> bool:
        return self._notifier is not None

    def _attach(self) -> None:
        self._detach()
        fd = self.session.fileno()
        if fd < 0:
            return
        notifier = QSocketNotifier(fd, QSocketNotifier.Type.Read, self)
        notifier.activated.connect(self._on_readable)
        self._notifier = notifier
        self._timer.start()

    def _detach(self) -> None:
        self._timer.stop()
        notifier = self._notifier
        self._notifier = None
        if notifier is not None:
            notifier.setEnabled(False)
            notifier.deleteLater()

    def _on_readable(self, *_args) -> None:
        self.session.process_available()
