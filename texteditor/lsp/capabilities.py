"""Initialize handshake: what we announce and what the server supports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .semantic_tokens import CLIENT_TOKEN_TYPES


def build_initialize_params(*, process_id: int, root_uri: str = "") -> dict[str, Any]:
    params: dict[str, Any] = {
        "processId": int(process_id),
        "clientInfo": {"name": "texteditor"},
        "capabilities": {
            "textDocument": {
                "synchronization": {"dynamicRegistration": False},
                "publishDiagnostics": {"relatedInformation": True},
                "hover": {
                    "dynamicRegistration": False,
                    "contentFormat": ["plaintext", "markdown"],
                },
                "completion": {
                    "dynamicRegistration": False,
                    "completionItem": {"documentationFormat": ["plaintext", "markdown"]},
                    "contextSupport": True,
                },
                "semanticTokens": {
                    "dynamicRegistration": False,
                    "requests": {"full": True},
                    "tokenTypes": list(CLIENT_TOKEN_TYPES),
                    "tokenModifiers": [],
                    "formats": ["relative"],
                },
            },
        },
    }
    if root_uri:
        params["rootUri"] = str(root_uri)
    return params


def _provider_enabled(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, dict)


@dataclass(frozen=True)
class ServerCapabilities:
    token_legend: tuple[str, ...] = ()
    hover_supported: bool = False
    completion_supported: bool = False

    @classmethod
    def from_initialize_result(cls, result_obj: object) -> ServerCapabilities:
        result = result_obj if isinstance(result_obj, dict) else {}
        caps = result.get("capabilities")
        if not isinstance(caps, dict):
            return cls()

        legend: tuple[str, ...] = ()
        provider = caps.get("semanticTokensProvider")
        if isinstance(provider, dict):
            legend_obj = provider.get("legend")
            if isinstance(legend_obj, dict) and isinstance(legend_obj.get("tokenTypes"), list):
                legend = tuple(str(name) if isinstance(name, str) else "" for name in legend_obj["tokenTypes"])

        return cls(
            token_legend=legend,
            hover_supported=_provider_enabled(caps.get("hoverProvider")),
            completion_supported=_provider_enabled(caps.get("completionProvider")),
        )


class CapabilityNegotiator:
    """Tracks the handshake state of one server run."""

    def __init__(self) -> None:
        self.capabilities = ServerCapabilities()
        self._received = False
        self._initialized_sent = False

    @property
    def received(self) -> bool:
        return self._received

    def accept_initialize_result(self, result_obj: object) -> ServerCapabilities:
        if not self._received:
            self.capabilities = ServerCapabilities.from_initialize_result(result_obj)
            self._received = True
        return self.capabilities

    def document_opened(self) -> bool:
        """True exactly once: the caller then sends `initialized`."""
        if self._initialized_sent:
            return False
        self._initialized_sent = True
        return True
