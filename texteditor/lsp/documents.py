"""Per-document open/change/close protocol state."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from .uris import path_to_uri, uri_to_path


@dataclass
class DocumentState:
    uri: str
    path: str
    language_id: str
    version: int = 1
    opened: bool = True
    text: str = ""


class DocumentSyncTracker:
    """Full-text document sync with strictly increasing versions.

    Each method returns the `params` object of the notification to send, or
    None when nothing must go out.
    """

    def __init__(self) -> None:
        self._docs: dict[str, DocumentState] = {}
        # Path as given -> URI sent in didOpen; later calls reuse it even if
        # the path resolves differently once the file exists.
        self._uri_by_path: dict[str, str] = {}

    def __len__(self) -> int:
        return sum(1 for doc in self._docs.values() if doc.opened)

    def open(self, path: str, text: str, language_id: str = "") -> dict[str, Any] | None:
        if self.get(path) is not None:
            return None
        uri = path_to_uri(path)
        if not uri:
            return None
        existing = self._docs.get(uri)
        if existing is not None and existing.opened:
            return None
        doc = DocumentState(
            uri=uri,
            path=str(path),
            language_id=str(language_id or "plaintext").strip() or "plaintext",
            text=str(text or ""),
        )
        self._docs[uri] = doc
        self._uri_by_path[str(path)] = uri
        return {
            "textDocument": {
                "uri": doc.uri,
                "languageId": doc.language_id,
                "version": doc.version,
                "text": doc.text,
            }
        }

    def change(self, path: str, text: str) -> dict[str, Any] | None:
        doc = self._docs.get(self._uri_for(path))
        if doc is None or not doc.opened:
            return None
        doc.version += 1
        doc.text = str(text or "")
        return {
            "textDocument": {"uri": doc.uri, "version": doc.version},
            "contentChanges": [{"text": doc.text}],
        }

    def close(self, path: str) -> dict[str, Any] | None:
        doc = self._docs.get(self._uri_for(path))
        if doc is None or not doc.opened:
            return None
        doc.opened = False
        return {"textDocument": {"uri": doc.uri}}

    def get(self, path: str) -> DocumentState | None:
        doc = self._docs.get(self._uri_for(path))
        if doc is None or not doc.opened:
            return None
        return doc

    def is_open(self, path: str) -> bool:
        return self.get(path) is not None

    def find_by_uri(self, uri: str) -> DocumentState | None:
        doc = self._docs.get(str(uri or ""))
        if doc is not None:
            return doc if doc.opened else None
        # Servers may re-encode the URI; fall back to comparing local paths.
        wanted = os.path.normpath(uri_to_path(uri))
        for doc in self._docs.values():
            if doc.opened and os.path.normpath(uri_to_path(doc.uri)) == wanted:
                return doc
        return None

    def clear(self) -> None:
        self._docs.clear()
        self._uri_by_path.clear()

    def _uri_for(self, path: str) -> str:
        return self._uri_by_path.get(str(path)) or path_to_uri(path)
