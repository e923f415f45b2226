"""Plain-text extraction from hover and completion results."""

from __future__ import annotations

from .types import CompletionItem


def strip_markdown_fences(text: str) -> str:
    return "\n".join(line for line in str(text or "").split("\n") if not line.startswith("```"))


def _append_segment(parts: list[str], text: object) -> None:
    if isinstance(text, str) and text:
        parts.append(text)


def _marked_string_text(value: object) -> object:
    if isinstance(value, dict):
        return value.get("value")
    return value


def hover_contents_to_text(contents: object) -> str | None:
    """Flatten `Hover.contents` (string, MarkedString[] or MarkupContent)."""
    parts: list[str] = []
    if isinstance(contents, str):
        _append_segment(parts, contents)
    elif isinstance(contents, list):
        for item in contents:
            _append_segment(parts, _marked_string_text(item))
    elif isinstance(contents, dict):
        value = contents.get("value")
        if isinstance(value, str) and contents.get("kind") == "markdown":
            value = strip_markdown_fences(value)
        _append_segment(parts, value)

    text = "\n".join(parts)
    return text if text.strip() else None


def completion_doc_to_text(doc: object) -> str:
    if isinstance(doc, str):
        return doc
    if isinstance(doc, dict) and isinstance(doc.get("value"), str):
        return doc["value"]
    return ""


def completion_items_from_result(result: object) -> tuple[list[CompletionItem], bool]:
    """Return the usable items and the `isIncomplete` flag."""
    items_obj: object = None
    is_incomplete = False
    if isinstance(result, list):
        items_obj = result
    elif isinstance(result, dict):
        items_obj = result.get("items")
        is_incomplete = result.get("isIncomplete") is True

    items: list[CompletionItem] = []
    if not isinstance(items_obj, list):
        return items, is_incomplete
    for item in items_obj:
        if not isinstance(item, dict):
            continue
        label = item.get("label")
        if not isinstance(label, str) or not label:
            continue
        detail = item.get("detail")
        items.append(
            CompletionItem(
                label=label,
                detail=detail if isinstance(detail, str) else "",
                documentation=completion_doc_to_text(item.get("documentation")),
            )
        )
    return items, is_incomplete


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def completion_prefix_at(text: str, line: int, col: int) -> str:
    """Identifier characters ending just left of ``col`` on ``line``."""
    lines = str(text or "").split("\n")
    if line < 0 or line >= len(lines):
        return ""
    line_text = lines[line]
    end = int(col)
    if end <= 0 or end > len(line_text) or not _is_word_char(line_text[end - 1]):
        return ""
    start = end - 1
    while start > 0 and _is_word_char(line_text[start - 1]):
        start -= 1
    return line_text[start:end]


def prefix_matches(items: list[CompletionItem], prefix: str) -> bool:
    if not prefix:
        return True
    return any(item.label.startswith(prefix) for item in items)
