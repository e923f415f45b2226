"""Decoding of delta-encoded `textDocument/semanticTokens/full` results."""

from __future__ import annotations

from collections.abc import Sequence

from .types import SemanticToken, SemanticTokenType

# Token types announced to the server, in legend order.
CLIENT_TOKEN_TYPES: tuple[str, ...] = tuple(
    item.value for item in SemanticTokenType if item is not SemanticTokenType.UNKNOWN
)

_TYPES_BY_NAME: dict[str, SemanticTokenType] = {name: SemanticTokenType(name) for name in CLIENT_TOKEN_TYPES}

_FIELDS_PER_TOKEN = 5


def token_type_for_name(name: object) -> SemanticTokenType:
    if not isinstance(name, str):
        return SemanticTokenType.UNKNOWN
    return _TYPES_BY_NAME.get(name, SemanticTokenType.UNKNOWN)


def decode_semantic_tokens(data: object, legend: Sequence[str]) -> list[SemanticToken]:
    """Turn the flat wire array into absolute tokens, in wire order.

    Each token is ``[deltaLine, deltaStartChar, length, tokenType, modifiers]``.
    A new line resets the column to ``deltaStartChar``; on the same line the
    column is relative to the previous token. Empty or misaligned arrays
    decode to no tokens.
    """
    if not isinstance(data, list) or not data or len(data) % _FIELDS_PER_TOKEN != 0:
        return []
    if not all(isinstance(value, int) and not isinstance(value, bool) for value in data):
        return []

    tokens: list[SemanticToken] = []
    line = 0
    col = 0
    for offset in range(0, len(data), _FIELDS_PER_TOKEN):
        delta_line, delta_col, length, type_index = data[offset : offset + 4]
        if delta_line > 0:
            line += delta_line
            col = delta_col
        else:
            col += delta_col

        type_name = legend[type_index] if 0 <= type_index < len(legend) else ""
        tokens.append(
            SemanticToken(
                line=line,
                col=col,
                length=length,
                type=token_type_for_name(type_name),
                type_name=str(type_name or ""),
            )
        )
    return tokens
