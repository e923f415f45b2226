"""Conversion between editor file paths and `file://` URIs."""

from __future__ import annotations

import os

from PySide6.QtCore import QUrl

_FILE_SCHEME = "file://"


def path_to_uri(path: str) -> str:
    text = str(path or "").strip()
    if not text:
        return ""
    # Paths that cannot be resolved (e.g. unsaved files) are wrapped as given.
    resolved = os.path.realpath(text) if os.path.exists(text) else text
    if not os.path.isabs(resolved):
        return _FILE_SCHEME + resolved
    return bytes(QUrl.fromLocalFile(resolved).toEncoded()).decode("ascii")


def uri_to_path(uri: str) -> str:
    text = str(uri or "").strip()
    if not text.startswith(_FILE_SCHEME):
        return text
    rest = text[len(_FILE_SCHEME) :]
    if not rest.startswith("/"):
        return rest
    url = QUrl(text)
    if url.isLocalFile():
        return str(url.toLocalFile())
    return rest
