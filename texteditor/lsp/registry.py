"""Request id allocation and response correlation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RequestKind(Enum):
    INITIALIZE = "initialize"
    SHUTDOWN = "shutdown"
    SEMANTIC_TOKENS = "semantic_tokens"
    HOVER = "hover"
    COMPLETION = "completion"


@dataclass(frozen=True)
class RequestContext:
    kind: RequestKind
    path: str = ""
    uri: str = ""
    line: int = -1
    col: int = -1


@dataclass(frozen=True)
class PendingRequest:
    id: int
    context: RequestContext


class RequestRegistry:
    """Sequential ids from 1; each pending entry is consumed at most once."""

    def __init__(self) -> None:
        self._next_id = 1
        self._pending: dict[int, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def register(self, context: RequestContext) -> int:
        request_id = self._next_id
        self._next_id += 1
        self._pending[request_id] = PendingRequest(id=request_id, context=context)
        return request_id

    def resolve(self, request_id: object) -> RequestContext | None:
        # Ids we send are plain ints; "2", 2.0 and True never match them.
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            return None
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return None
        return pending.context

    def clear(self) -> None:
        """Forget pending requests; the next server run numbers from 1 again."""
        self._pending.clear()
        self._next_id = 1
