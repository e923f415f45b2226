"""Routing of unsolicited server notifications."""

from __future__ import annotations

import logging
from typing import Any, Callable

from .documents import DocumentSyncTracker
from .types import Diagnostic, DiagnosticSeverity

log = logging.getLogger(__name__)

PUBLISH_DIAGNOSTICS = "textDocument/publishDiagnostics"

DiagnosticsHandler = Callable[[str, list[Diagnostic]], None]
NotificationHandler = Callable[[object], None]


def _position(obj: object) -> tuple[int, int]:
    if not isinstance(obj, dict):
        return 0, 0
    try:
        return max(0, int(obj.get("line", 0))), max(0, int(obj.get("character", 0)))
    except (TypeError, ValueError):
        return 0, 0


def _severity(value: object) -> DiagnosticSeverity:
    if value is None:
        return DiagnosticSeverity.ERROR
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DiagnosticSeverity.ERROR
    if number == 1:
        return DiagnosticSeverity.ERROR
    if number == 2:
        return DiagnosticSeverity.WARNING
    if number == 3:
        return DiagnosticSeverity.INFO
    return DiagnosticSeverity.HINT


def parse_diagnostics(diagnostics_obj: object) -> list[Diagnostic]:
    diagnostics = diagnostics_obj if isinstance(diagnostics_obj, list) else []
    out: list[Diagnostic] = []
    for item in diagnostics:
        if not isinstance(item, dict):
            continue
        rng = item.get("range") if isinstance(item.get("range"), dict) else {}
        line, col = _position(rng.get("start"))
        end_line, end_col = _position(rng.get("end"))
        message = item.get("message")
        source = item.get("source")
        out.append(
            Diagnostic(
                line=line,
                col=col,
                end_line=end_line,
                end_col=end_col,
                severity=_severity(item.get("severity")),
                message=message if isinstance(message, str) else "",
                source=source if isinstance(source, str) else "",
            )
        )
    return out


class NotificationDispatcher:
    """Method-name handler table; unknown methods are ignored."""

    def __init__(self, documents: DocumentSyncTracker, on_diagnostics: DiagnosticsHandler) -> None:
        self._documents = documents
        self._on_diagnostics = on_diagnostics
        self._handlers: dict[str, NotificationHandler] = {
            PUBLISH_DIAGNOSTICS: self._publish_diagnostics,
        }

    def dispatch(self, message: dict[str, Any]) -> bool:
        method = message.get("method")
        if not isinstance(method, str):
            return False
        handler = self._handlers.get(method)
        if handler is None:
            log.debug("Ignoring LSP notification %s", method)
            return False
        handler(message.get("params"))
        return True

    def _publish_diagnostics(self, params_obj: object) -> None:
        params = params_obj if isinstance(params_obj, dict) else {}
        uri = params.get("uri")
        if not isinstance(uri, str) or not uri:
            return
        doc = self._documents.find_by_uri(uri)
        if doc is None:
            # The document may have been closed after the triggering change.
            log.debug("Dropping diagnostics for unopened document %s", uri)
            return
        self._on_diagnostics(doc.path, parse_diagnostics(params.get("diagnostics")))
