"""Framed message exchange over the two pipes of a language server."""

from __future__ import annotations

import errno
import logging
import os
from typing import Any, BinaryIO

from .json_rpc import LspMessageParser, encode_lsp_message

log = logging.getLogger(__name__)

_READ_CHUNK = 4096


class MessageTransport:
    """Writes framed payloads to the server and drains framed replies.

    Writes block until the whole frame is handed to the pipe. Reads never
    block: the read descriptor is expected to be in non-blocking mode.
    """

    def __init__(self, writer: BinaryIO, read_fd: int) -> None:
        self._writer = writer
        self._read_fd = int(read_fd)
        self._parser = LspMessageParser()
        self.usable = True
        self.closed = False

    @property
    def read_fd(self) -> int:
        return self._read_fd

    @property
    def buffered(self) -> int:
        return self._parser.buffered

    def send(self, payload: dict[str, Any]) -> bool:
        if not self.usable:
            return False
        frame = memoryview(encode_lsp_message(payload))
        written = 0
        while written < len(frame):
            try:
                count = self._writer.write(frame[written:])
            except InterruptedError:
                continue
            except (OSError, ValueError) as exc:
                log.warning("LSP write failed: %s", exc)
                self.usable = False
                return False
            if count is None:
                # Non-blocking writer with a full pipe; retry until drained.
                continue
            written += int(count)
        try:
            self._writer.flush()
        except (OSError, ValueError) as exc:
            log.warning("LSP flush failed: %s", exc)
            self.usable = False
            return False
        return True

    def poll_incoming(self) -> list[dict[str, Any]]:
        if self.closed or self._read_fd < 0:
            return []
        chunks: list[bytes] = []
        while True:
            try:
                data = os.read(self._read_fd, _READ_CHUNK)
            except BlockingIOError:
                break
            except InterruptedError:
                continue
            except OSError as exc:
                if exc.errno in (errno.EAGAIN, errno.EWOULDBLOCK):
                    break
                log.warning("LSP read failed: %s", exc)
                self.closed = True
                break
            if not data:
                self.closed = True
                break
            chunks.append(data)
        if not chunks:
            return []
        return self._parser.feed(b"".join(chunks))
