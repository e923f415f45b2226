"""JSON-RPC framing helpers for LSP transport over stdio pipes."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

log = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"

_CONTENT_LENGTH_RE = re.compile(rb"content-length[ \t]*:[ \t]*(-?\d+)", re.IGNORECASE)


def encode_lsp_message(payload: dict[str, Any]) -> bytes:
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


def make_request(request_id: int, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"jsonrpc": "2.0", "id": int(request_id), "method": str(method or "")}
    if params is not None:
        payload["params"] = params
    return payload


def make_notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"jsonrpc": "2.0", "method": str(method or "")}
    if params is not None:
        payload["params"] = params
    return payload


class ReadBuffer:
    """Growable byte buffer with append/find/consume semantics."""

    def __init__(self) -> None:
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    def append(self, data: bytes | bytearray) -> None:
        if data:
            self._data.extend(data)

    def find(self, needle: bytes) -> int:
        return self._data.find(needle)

    def consume(self, size: int) -> bytes:
        count = max(0, min(len(self._data), int(size)))
        chunk = bytes(self._data[:count])
        del self._data[:count]
        return chunk


class LspMessageParser:
    """Incremental parser for `Content-Length` framed LSP messages."""

    def __init__(self) -> None:
        self._buffer = ReadBuffer()
        self._expected_length: int | None = None

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes | bytearray) -> list[dict[str, Any]]:
        self._buffer.append(data)

        messages: list[dict[str, Any]] = []
        while True:
            if self._expected_length is None:
                header_end = self._buffer.find(HEADER_TERMINATOR)
                if header_end < 0:
                    break

                header_blob = self._buffer.consume(header_end + len(HEADER_TERMINATOR))
                self._expected_length = self._parse_content_length(header_blob[:header_end])
                if self._expected_length is None:
                    # Malformed header: only the header region is dropped.
                    log.debug("Dropping LSP header without Content-Length: %r", header_blob[:80])
                    continue

            if len(self._buffer) < self._expected_length:
                break

            body = self._buffer.consume(self._expected_length)
            self._expected_length = None

            try:
                decoded = json.loads(body.decode("utf-8"))
            except (UnicodeDecodeError, ValueError):
                log.debug("Dropping undecodable LSP payload (%d bytes)", len(body))
                continue
            if isinstance(decoded, dict):
                messages.append(decoded)
            else:
                log.debug("Dropping non-object LSP payload of type %s", type(decoded).__name__)
        return messages

    @staticmethod
    def _parse_content_length(header_blob: bytes) -> int | None:
        # The last occurrence wins so stray output or a dropped body ahead of
        # a real header does not hide it.
        matches = _CONTENT_LENGTH_RE.findall(bytes(header_blob))
        if not matches:
            return None
        content_length = int(matches[-1])
        if content_length < 0:
            return None
        return content_length
