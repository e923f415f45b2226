"""Single-server LSP session driven by the editor's own loop."""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Mapping

from PySide6.QtCore import QObject, Signal

from texteditor.settings_models import normalize_lsp_settings

from .capabilities import CapabilityNegotiator, ServerCapabilities, build_initialize_params
from .content import (
    completion_items_from_result,
    completion_prefix_at,
    hover_contents_to_text,
    prefix_matches,
)
from .documents import DocumentSyncTracker
from .json_rpc import make_notification, make_request
from .notifications import NotificationDispatcher
from .process import ProcessSupervisor, ServerProcess, ServerProcessError
from .registry import RequestContext, RequestKind, RequestRegistry
from .scheduler import CompletionTracker, HoverScheduler, HoverTarget, SemanticTokenRefresh, monotonic_ms
from .semantic_tokens import decode_semantic_tokens
from .transport import MessageTransport
from .types import CompletionList, Diagnostic
from .uris import path_to_uri, uri_to_path

log = logging.getLogger(__name__)

Clock = Callable[[], int]

METHOD_NOT_FOUND = -32601


class LspSession(QObject):
    """JSON-RPC client for one language server at a time.

    Nothing here blocks except writes to the server. The host puts
    `fileno()` into its wait primitive, calls `process_available()` when it
    is readable and `tick()` on every loop iteration.
    """

    started = Signal()
    stopped = Signal()
    ready = Signal()
    diagnosticsUpdated = Signal(str, object)  # path, list[Diagnostic]
    semanticTokensUpdated = Signal(str, object)  # path, list[SemanticToken]
    hoverReady = Signal(str, int, int, object)  # path, line, col, text | None
    hoverCleared = Signal()
    completionReady = Signal(str, int, int, object)  # path, line, col, CompletionList
    statusMessage = Signal(str)
    trafficLogged = Signal(str, str)  # direction, payload

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        supervisor: ProcessSupervisor | None = None,
        clock: Clock | None = None,
        settings: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(parent)
        self._supervisor = supervisor or ProcessSupervisor()
        self._clock: Clock = clock or monotonic_ms
        self._process: ServerProcess | None = None
        self._transport: MessageTransport | None = None

        self._registry = RequestRegistry()
        self._negotiator = CapabilityNegotiator()
        self._documents = DocumentSyncTracker()
        self._dispatcher = NotificationDispatcher(self._documents, self._emit_diagnostics)
        self._token_refresh = SemanticTokenRefresh()
        self._hover = HoverScheduler()
        self._completion = CompletionTracker()

        self._log_traffic = False
        self._shutdown_timeout_ms = 1200
        self.command_line = ""
        self.update_settings(dict(settings or {}))

    @staticmethod
    def path_to_uri(path: str) -> str:
        return path_to_uri(path)

    @staticmethod
    def uri_to_path(uri: str) -> str:
        return uri_to_path(uri)

    def update_settings(self, lsp_settings: dict[str, Any]) -> None:
        settings = normalize_lsp_settings(lsp_settings)
        self._token_refresh.delay_ms = settings["semantic_tokens_delay_ms"]
        self._hover.delay_ms = settings["hover_delay_ms"]
        self._hover.timeout_ms = settings["hover_timeout_ms"]
        self._shutdown_timeout_ms = settings["shutdown_timeout_ms"]
        self._log_traffic = settings["log_lsp_traffic"]

    def set_log_traffic(self, enabled: bool) -> None:
        self._log_traffic = bool(enabled)

    @property
    def capabilities(self) -> ServerCapabilities:
        return self._negotiator.capabilities

    @property
    def documents(self) -> DocumentSyncTracker:
        return self._documents

    def is_running(self) -> bool:
        return self._transport is not None

    def is_ready(self) -> bool:
        return self.is_running() and self._negotiator.received

    def hover_is_supported(self) -> bool:
        return self.capabilities.hover_supported

    def completion_is_supported(self) -> bool:
        return self.capabilities.completion_supported

    def fileno(self) -> int:
        if self._transport is None:
            return -1
        return self._transport.read_fd

    # ------------------------------------------------------------------
    # lifecycle

    def start(self, command_line: str, *, root_path: str = "") -> bool:
        if self.is_running():
            return True

        self._reset_protocol_state()
        root = str(root_path or "").strip() or os.getcwd()
        try:
            process = self._supervisor.start(command_line, cwd=root if os.path.isdir(root) else None)
        except ServerProcessError as exc:
            log.warning("%s", exc)
            self.statusMessage.emit(f"LSP start failed: {exc}")
            return False

        self._process = process
        self._transport = MessageTransport(process.stdin, process.read_fd)
        self.command_line = process.command_line
        self.started.emit()

        params = build_initialize_params(process_id=os.getpid(), root_uri=path_to_uri(root))
        request_id = self._request("initialize", params, RequestContext(RequestKind.INITIALIZE))
        return request_id > 0

    def stop(self) -> None:
        transport = self._transport
        process = self._process
        if transport is None or process is None:
            return

        # Best effort: the reply to shutdown is never awaited.
        shutdown_id = self._registry.register(RequestContext(RequestKind.SHUTDOWN))
        for payload in (make_request(shutdown_id, "shutdown"), make_notification("exit")):
            self._log_payload("out", payload)
            if not transport.send(payload):
                break

        self._transport = None
        self._process = None
        process.stop(self._shutdown_timeout_ms)
        log.info("Stopped language server '%s'", self.command_line)
        self._reset_protocol_state()
        self.stopped.emit()

    def _disable(self, reason: str) -> None:
        process = self._process
        self._transport = None
        self._process = None
        if process is not None:
            process.stop(0)
        log.warning("Language server '%s' disabled: %s", self.command_line, reason)
        self._reset_protocol_state()
        self.statusMessage.emit(f"LSP disabled: {reason}")
        self.stopped.emit()

    def _reset_protocol_state(self) -> None:
        self._registry.clear()
        self._negotiator = CapabilityNegotiator()
        self._documents.clear()
        self._token_refresh.clear()
        self._hover.clear()
        self._completion.clear()

    # ------------------------------------------------------------------
    # document sync

    def did_open(self, path: str, text: str, language_id: str = "") -> bool:
        if not self.is_running():
            return False
        params = self._documents.open(path, text, language_id)
        if params is None:
            return False
        if not self._notify("textDocument/didOpen", params):
            return False
        if self._negotiator.document_opened():
            self._notify("initialized", {})
        self.request_semantic_tokens(path)
        return True

    def did_change(self, path: str, text: str) -> int:
        if not self.is_running():
            return 0
        params = self._documents.change(path, text)
        if params is None:
            return 0
        if not self._notify("textDocument/didChange", params):
            return 0
        self._token_refresh.mark_changed(path, self._clock())
        return int(params["textDocument"]["version"])

    def did_close(self, path: str) -> bool:
        if not self.is_running():
            return False
        params = self._documents.close(path)
        if params is None:
            return False
        self._token_refresh.discard(path)
        target = self._hover.target
        if target is not None and target.path == path:
            self.clear_hover()
        return self._notify("textDocument/didClose", params)

    # ------------------------------------------------------------------
    # requests

    def request_semantic_tokens(self, path: str) -> int:
        doc = self._documents.get(path) if self.is_running() else None
        if doc is None:
            return 0
        params = {"textDocument": {"uri": doc.uri}}
        context = RequestContext(RequestKind.SEMANTIC_TOKENS, path=path, uri=doc.uri)
        return self._request("textDocument/semanticTokens/full", params, context)

    def schedule_hover(self, path: str, line: int, col: int, screen_x: int = 0, screen_y: int = 0) -> None:
        target = HoverTarget(path=path, line=int(line), col=int(col), screen_x=int(screen_x), screen_y=int(screen_y))
        if self._hover.set_target(target, self._clock()):
            self.hoverCleared.emit()

    def clear_hover(self) -> None:
        if self._hover.clear():
            self.hoverCleared.emit()

    def request_hover(self, path: str, line: int, col: int) -> int:
        doc = self._documents.get(path) if self.is_running() else None
        if doc is None:
            return 0
        self._hover.begin(path, line, col, self._clock())
        params = {
            "textDocument": {"uri": doc.uri},
            "position": {"line": int(line), "character": int(col)},
        }
        context = RequestContext(RequestKind.HOVER, path=path, uri=doc.uri, line=int(line), col=int(col))
        return self._request("textDocument/hover", params, context)

    def request_completion(self, path: str, line: int, col: int, *, trigger: str = "", trigger_kind: int = 1) -> int:
        doc = self._documents.get(path) if self.is_running() else None
        if doc is None or not self.completion_is_supported():
            return 0
        self._completion.begin(path, line, col, self._clock())
        context_obj: dict[str, Any] = {"triggerKind": int(trigger_kind) if int(trigger_kind) > 0 else 1}
        if trigger:
            context_obj["triggerCharacter"] = str(trigger)
        params = {
            "textDocument": {"uri": doc.uri},
            "position": {"line": int(line), "character": int(col)},
            "context": context_obj,
        }
        context = RequestContext(RequestKind.COMPLETION, path=path, uri=doc.uri, line=int(line), col=int(col))
        return self._request("textDocument/completion", params, context)

    # ------------------------------------------------------------------
    # loop integration

    def tick(self) -> None:
        if not self.is_running():
            return
        now = self._clock()
        for path in self._token_refresh.due(now):
            self.request_semantic_tokens(path)

        target = self._hover.due(now)
        if target is not None and self._documents.is_open(target.path):
            self.request_hover(target.path, target.line, target.col)

        if self._hover.expired(now):
            self._hover.displayed = False
            self.statusMessage.emit("Hover: no response")
            self.hoverCleared.emit()

    def process_available(self) -> int:
        transport = self._transport
        if transport is None:
            return 0
        messages = transport.poll_incoming()
        handled = 0
        for message in messages:
            if self._transport is not transport:
                break
            self._log_payload("in", message)
            self._handle_message(message)
            handled += 1
        if self._transport is transport and transport.closed:
            self._disable("language server exited")
        return handled

    # ------------------------------------------------------------------
    # incoming

    def _handle_message(self, message: dict[str, Any]) -> None:
        if "id" in message and "method" not in message:
            self._handle_response(message)
            return

        method = message.get("method")
        if not isinstance(method, str) or not method:
            return

        # Server request: respond "method not found" to keep protocol healthy.
        if "id" in message:
            self._send(
                {
                    "jsonrpc": "2.0",
                    "id": message.get("id"),
                    "error": {"code": METHOD_NOT_FOUND, "message": f"Method not supported: {method}"},
                }
            )
            return

        self._dispatcher.dispatch(message)

    def _handle_response(self, message: dict[str, Any]) -> None:
        context = self._registry.resolve(message.get("id"))
        if context is None:
            log.debug("Ignoring LSP response with unknown id %r", message.get("id"))
            return

        result = message.get("result")
        error = message.get("error")
        if context.kind is RequestKind.INITIALIZE:
            self._on_initialize_result(result, error)
        elif context.kind is RequestKind.SEMANTIC_TOKENS:
            self._on_semantic_tokens_result(context, result)
        elif context.kind is RequestKind.HOVER:
            self._on_hover_result(context, result, error)
        elif context.kind is RequestKind.COMPLETION:
            self._on_completion_result(context, result, error)

    def _on_initialize_result(self, result: object, error: object) -> None:
        if not isinstance(result, dict):
            self.statusMessage.emit(f"LSP initialize failed: {_error_message(error) or 'no result'}")
            return
        self._negotiator.accept_initialize_result(result)
        self.ready.emit()

    def _on_semantic_tokens_result(self, context: RequestContext, result: object) -> None:
        if not isinstance(result, dict) or "data" not in result:
            return
        doc = self._documents.find_by_uri(context.uri)
        if doc is None:
            return
        tokens = decode_semantic_tokens(result.get("data"), self.capabilities.token_legend)
        self.semanticTokensUpdated.emit(doc.path, tokens)

    def _on_hover_result(self, context: RequestContext, result: object, error: object) -> None:
        if not self._hover.accept(context.path, context.line, context.col):
            log.debug("Dropping stale hover for %s:%s:%s", context.path, context.line, context.col)
            return
        error_text = _error_message(error)
        if result is None and error_text:
            text: str | None = f"Hover error: {error_text}"
        elif isinstance(result, dict):
            text = hover_contents_to_text(result.get("contents"))
        else:
            text = None
        self._hover.displayed = text is not None
        self.hoverReady.emit(context.path, context.line, context.col, text)

    def _on_completion_result(self, context: RequestContext, result: object, error: object) -> None:
        if not self._completion.accept(context.path, context.line, context.col):
            log.debug("Dropping stale completion for %s:%s:%s", context.path, context.line, context.col)
            return
        if result is None and error is not None:
            completions = CompletionList()
        else:
            items, is_incomplete = completion_items_from_result(result)
            doc = self._documents.get(context.path)
            prefix = completion_prefix_at(doc.text, context.line, context.col) if doc is not None else ""
            completions = CompletionList(
                items=items,
                is_incomplete=is_incomplete,
                prefix=prefix,
                prefix_match=prefix_matches(items, prefix),
            )
        self.completionReady.emit(context.path, context.line, context.col, completions)

    def _emit_diagnostics(self, path: str, diagnostics: list[Diagnostic]) -> None:
        self.diagnosticsUpdated.emit(path, diagnostics)

    # ------------------------------------------------------------------
    # outgoing

    def _request(self, method: str, params: dict[str, Any], context: RequestContext) -> int:
        request_id = self._registry.register(context)
        if not self._send(make_request(request_id, method, params)):
            return 0
        return request_id

    def _notify(self, method: str, params: dict[str, Any]) -> bool:
        return self._send(make_notification(method, params))

    def _send(self, payload: dict[str, Any]) -> bool:
        transport = self._transport
        if transport is None:
            return False
        self._log_payload("out", payload)
        if transport.send(payload):
            return True
        self._disable("write to language server failed")
        return False

    def _log_payload(self, direction: str, payload: dict[str, Any]) -> None:
        if not self._log_traffic:
            return
        text = str(payload)
        log.debug("LSP %s: %s", direction, text)
        self.trafficLogged.emit(str(direction), text)


def _error_message(error: object) -> str:
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return ""
