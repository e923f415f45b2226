from .event_loop import LspEventLoop, QtSessionPump
from .json_rpc import LspMessageParser, encode_lsp_message
from .lsp_client import LspSession
from .server_config import LanguageServerConfig, LanguageServerRegistry
from .types import CompletionItem, CompletionList, Diagnostic, DiagnosticSeverity, SemanticToken, SemanticTokenType
from .workspace import LspWorkspace

__all__ = [
    "CompletionItem",
    "CompletionList",
    "Diagnostic",
    "DiagnosticSeverity",
    "LanguageServerConfig",
    "LanguageServerRegistry",
    "LspEventLoop",
    "LspMessageParser",
    "LspSession",
    "LspWorkspace",
    "QtSessionPump",
    "SemanticToken",
    "SemanticTokenType",
    "encode_lsp_message",
]
