"""Editor-facing glue: routes open buffers to the right language server."""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Mapping

from PySide6.QtCore import QObject, Signal

from .lsp_client import LspSession
from .server_config import LanguageServerRegistry

log = logging.getLogger(__name__)


def _canonical_path(file_path: str) -> str:
    text = str(file_path or "")
    if text and os.path.exists(text):
        return os.path.realpath(text)
    return text


class LspWorkspace(QObject):
    """Tracks which editors show which files and keeps one server running.

    Only one server runs at a time. Attaching a file whose language needs a
    different command stops the current server first; documents that were
    open on it lose their diagnostics.
    """

    diagnosticsUpdated = Signal(str, object)  # file_path, list[Diagnostic]
    semanticTokensUpdated = Signal(str, object)  # file_path, list[SemanticToken]
    hoverReady = Signal(str, int, int, object)
    hoverCleared = Signal()
    completionReady = Signal(str, int, int, object)
    statusMessage = Signal(str)
    lspTraffic = Signal(str, str)

    def __init__(
        self,
        settings: Mapping[str, Any],
        parent: QObject | None = None,
        *,
        session: LspSession | None = None,
        workspace_root: str = "",
        canonicalize: Callable[[str], str] = _canonical_path,
    ) -> None:
        super().__init__(parent)
        self._canonicalize = canonicalize
        self.workspace_root = str(workspace_root or "") or os.getcwd()
        self._servers = LanguageServerRegistry.from_settings(settings)

        lsp_settings = settings.get("lsp") if isinstance(settings, Mapping) else None
        self._session = session or LspSession(self, settings=dict(lsp_settings or {}))
        self._session.diagnosticsUpdated.connect(self.diagnosticsUpdated.emit)
        self._session.semanticTokensUpdated.connect(self.semanticTokensUpdated.emit)
        self._session.hoverReady.connect(self.hoverReady.emit)
        self._session.hoverCleared.connect(self.hoverCleared.emit)
        self._session.completionReady.connect(self.completionReady.emit)
        self._session.statusMessage.connect(self.statusMessage.emit)
        self._session.trafficLogged.connect(self.lspTraffic.emit)

        self._editor_to_path: dict[str, str] = {}
        self._path_refcount: dict[str, int] = {}
        self._active_command = ""

    @property
    def session(self) -> LspSession:
        return self._session

    @property
    def servers(self) -> LanguageServerRegistry:
        return self._servers

    @property
    def active_command(self) -> str:
        return self._active_command if self._session.is_running() else ""

    def supports_file(self, file_path: str) -> bool:
        return self._servers.has_server(file_path)

    def path_for_editor(self, editor_id: str) -> str | None:
        return self._editor_to_path.get(str(editor_id or "").strip())

    def attach_editor(self, *, editor_id: str, file_path: str, source_text: str) -> bool:
        editor_key = str(editor_id or "").strip()
        if not editor_key:
            return False
        cpath = self._canonicalize(file_path)

        prev_path = self._editor_to_path.get(editor_key, "")
        if prev_path and prev_path == cpath:
            return self._session.documents.is_open(cpath)
        if prev_path:
            self.detach_editor(editor_key)

        if not self.supports_file(cpath):
            return False
        config = self._servers.config_for_path(cpath)
        if config is None:
            return False

        if not self._ensure_server(config.command):
            return False

        self._editor_to_path[editor_key] = cpath
        prev_count = int(self._path_refcount.get(cpath, 0))
        self._path_refcount[cpath] = prev_count + 1
        if prev_count > 0 and self._session.documents.is_open(cpath):
            self._session.did_change(cpath, source_text or "")
            return True
        return self._session.did_open(cpath, source_text or "", config.name)

    def detach_editor(self, editor_id: str) -> None:
        editor_key = str(editor_id or "").strip()
        if not editor_key:
            return
        cpath = self._editor_to_path.pop(editor_key, None)
        if not cpath:
            return

        current = max(0, int(self._path_refcount.get(cpath, 0)) - 1)
        if current > 0:
            self._path_refcount[cpath] = current
            return

        self._path_refcount.pop(cpath, None)
        self._session.did_close(cpath)
        self.diagnosticsUpdated.emit(cpath, [])

    def document_changed(self, *, file_path: str, source_text: str) -> int:
        cpath = self._canonicalize(file_path)
        if cpath not in self._path_refcount:
            return 0
        return self._session.did_change(cpath, source_text or "")

    def schedule_hover(self, *, file_path: str, line: int, column: int, screen_x: int = 0, screen_y: int = 0) -> None:
        cpath = self._canonicalize(file_path)
        if cpath not in self._path_refcount:
            return
        self._session.schedule_hover(cpath, line, column, screen_x, screen_y)

    def clear_hover(self) -> None:
        self._session.clear_hover()

    def request_completion(self, *, file_path: str, line: int, column: int, trigger: str = "") -> int:
        cpath = self._canonicalize(file_path)
        if cpath not in self._path_refcount:
            return 0
        return self._session.request_completion(
            cpath,
            line,
            column,
            trigger=trigger,
            trigger_kind=2 if trigger else 1,
        )

    def clear_all_diagnostics(self) -> None:
        for path in list(self._path_refcount.keys()):
            self.diagnosticsUpdated.emit(path, [])

    def shutdown(self) -> None:
        self.clear_all_diagnostics()
        self._editor_to_path.clear()
        self._path_refcount.clear()
        self._active_command = ""
        self._session.stop()

    def _ensure_server(self, command: str) -> bool:
        if self._session.is_running() and command == self._active_command:
            return True
        if self._session.is_running():
            log.info("Switching language server from '%s' to '%s'", self._active_command, command)
            self._forget_open_documents()
            self._session.stop()
        if not self._session.start(command, root_path=self.workspace_root):
            self._active_command = ""
            return False
        self._active_command = command
        return True

    def _forget_open_documents(self) -> None:
        self.clear_all_diagnostics()
        stale = set(self._path_refcount.keys())
        self._path_refcount.clear()
        for editor_key, path in list(self._editor_to_path.items()):
            if path in stale:
                self._editor_to_path.pop(editor_key, None)
