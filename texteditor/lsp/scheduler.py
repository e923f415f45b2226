"""Debounce and staleness bookkeeping for latency-sensitive requests.

Nothing here owns a timer. The session calls the `due`/`expired` checks on
every loop tick with the current monotonic time in milliseconds, and a
response is only applied when it carries the tag of the latest request.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

SEMANTIC_TOKENS_DELAY_MS = 150
HOVER_DELAY_MS = 250
HOVER_TIMEOUT_MS = 1000


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


@dataclass(frozen=True)
class HoverTarget:
    path: str
    line: int
    col: int
    screen_x: int = 0
    screen_y: int = 0


@dataclass(frozen=True)
class InFlight:
    path: str
    line: int
    col: int
    sent_ms: int


class SemanticTokenRefresh:
    """Per-document 'changed, refresh later' marks."""

    def __init__(self, delay_ms: int = SEMANTIC_TOKENS_DELAY_MS) -> None:
        self.delay_ms = int(delay_ms)
        self._last_change_ms: dict[str, int] = {}

    def mark_changed(self, path: str, now_ms: int) -> None:
        self._last_change_ms[path] = int(now_ms)

    def discard(self, path: str) -> None:
        self._last_change_ms.pop(path, None)

    def due(self, now_ms: int) -> list[str]:
        ready = [path for path, changed in self._last_change_ms.items() if now_ms - changed >= self.delay_ms]
        for path in ready:
            del self._last_change_ms[path]
        return ready

    def clear(self) -> None:
        self._last_change_ms.clear()


class HoverScheduler:
    """Hover fires once the pointer target has been still long enough."""

    def __init__(self, delay_ms: int = HOVER_DELAY_MS, timeout_ms: int = HOVER_TIMEOUT_MS) -> None:
        self.delay_ms = int(delay_ms)
        self.timeout_ms = int(timeout_ms)
        self.target: HoverTarget | None = None
        self.in_flight: InFlight | None = None
        self.displayed = False
        self._pending = False
        self._last_move_ms = 0

    def set_target(self, target: HoverTarget, now_ms: int) -> bool:
        """Record a pointer target; returns True if visible state was dropped."""
        cleared = False
        if target != self.target:
            cleared = self.clear()
        self.target = target
        self._last_move_ms = int(now_ms)
        self._pending = True
        return cleared

    def clear(self) -> bool:
        had_state = self.displayed or self.in_flight is not None
        self.displayed = False
        self.in_flight = None
        self._pending = False
        return had_state

    def due(self, now_ms: int) -> HoverTarget | None:
        if not self._pending or self.target is None:
            return None
        if now_ms - self._last_move_ms < self.delay_ms:
            return None
        self._pending = False
        return self.target

    def begin(self, path: str, line: int, col: int, now_ms: int) -> None:
        self.in_flight = InFlight(path=path, line=int(line), col=int(col), sent_ms=int(now_ms))

    def accept(self, path: str, line: int, col: int) -> bool:
        current = self.in_flight
        if current is None:
            return False
        if current.path != path or current.line != line or current.col != col:
            return False
        self.in_flight = None
        return True

    def expired(self, now_ms: int) -> bool:
        if self.in_flight is None:
            return False
        if now_ms - self.in_flight.sent_ms <= self.timeout_ms:
            return False
        self.in_flight = None
        return True


class CompletionTracker:
    """Completion is sent at once; only the latest (line, col) tag applies."""

    def __init__(self) -> None:
        self.in_flight: InFlight | None = None

    def begin(self, path: str, line: int, col: int, now_ms: int) -> None:
        self.in_flight = InFlight(path=path, line=int(line), col=int(col), sent_ms=int(now_ms))

    def accept(self, path: str, line: int, col: int) -> bool:
        current = self.in_flight
        if current is None:
            return False
        if current.path != path or current.line != line or current.col != col:
            return False
        self.in_flight = None
        return True

    def clear(self) -> None:
        self.in_flight = None
