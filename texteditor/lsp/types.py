"""Decoded LSP values handed to the editor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class DiagnosticSeverity(IntEnum):
    ERROR = 1
    WARNING = 2
    INFO = 3
    HINT = 4


class SemanticTokenType(Enum):
    VARIABLE = "variable"
    PARAMETER = "parameter"
    FUNCTION = "function"
    METHOD = "method"
    PROPERTY = "property"
    CLASS = "class"
    ENUM = "enum"
    ENUM_MEMBER = "enumMember"
    TYPE = "type"
    NAMESPACE = "namespace"
    KEYWORD = "keyword"
    MODIFIER = "modifier"
    COMMENT = "comment"
    STRING = "string"
    NUMBER = "number"
    OPERATOR = "operator"
    MACRO = "macro"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Diagnostic:
    line: int
    col: int
    end_line: int
    end_col: int
    severity: DiagnosticSeverity
    message: str
    source: str = ""


@dataclass(frozen=True)
class SemanticToken:
    line: int
    col: int
    length: int
    type: SemanticTokenType
    type_name: str = ""  # legend entry as sent by the server


@dataclass(frozen=True)
class CompletionItem:
    label: str
    detail: str = ""
    documentation: str = ""

    @property
    def summary(self) -> str:
        """First non-blank documentation line."""
        for raw_line in self.documentation.splitlines():
            text = raw_line.strip()
            if text:
                return text
        return ""


@dataclass(frozen=True)
class CompletionList:
    items: list[CompletionItem] = field(default_factory=list)
    is_incomplete: bool = False
    prefix: str = ""
    prefix_match: bool = True
