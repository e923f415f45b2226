from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypedDict

APP_DIR_NAME = "texteditor"
SETTINGS_FILE_NAME = "editor.json"


class LanguageSettings(TypedDict, total=False):
    extensions: list[str]
    lsp: str


class LspSettings(TypedDict, total=False):
    hover_delay_ms: int
    hover_timeout_ms: int
    semantic_tokens_delay_ms: int
    shutdown_timeout_ms: int
    log_lsp_traffic: bool


class EditorSettings(TypedDict, total=False):
    languages: dict[str, LanguageSettings]
    lsp: LspSettings


_DEFAULT_LANGUAGES: dict[str, LanguageSettings] = {
    "c": {"extensions": [".c", ".h", ".cpp", ".hpp", ".cc", ".cxx"], "lsp": "clangd --log=error"},
    "python": {"extensions": [".py", ".pyw"], "lsp": "pylsp"},
    "javascript": {"extensions": [".js", ".jsx", ".ts", ".tsx"]},
    "java": {"extensions": [".java"]},
    "go": {"extensions": [".go"], "lsp": "gopls"},
    "rust": {"extensions": [".rs"], "lsp": "rust-analyzer"},
    "json": {"extensions": [".json"]},
    "markdown": {"extensions": [".md", ".markdown"], "lsp": "./md-lsp"},
}

_DEFAULT_LSP_SETTINGS: LspSettings = {
    "hover_delay_ms": 250,
    "hover_timeout_ms": 1000,
    "semantic_tokens_delay_ms": 150,
    "shutdown_timeout_ms": 1200,
    "log_lsp_traffic": False,
}


def default_languages() -> dict[str, LanguageSettings]:
    return deepcopy(_DEFAULT_LANGUAGES)


def default_editor_settings() -> EditorSettings:
    return {"languages": default_languages(), "lsp": deepcopy(_DEFAULT_LSP_SETTINGS)}


def normalize_lsp_settings(raw: dict[str, Any] | None) -> LspSettings:
    data: dict[str, Any] = dict(_DEFAULT_LSP_SETTINGS)
    if isinstance(raw, dict):
        data.update(raw)
    out: LspSettings = {
        "hover_delay_ms": _clamp_int(data.get("hover_delay_ms"), 250, 0, 5000),
        "hover_timeout_ms": _clamp_int(data.get("hover_timeout_ms"), 1000, 100, 60000),
        "semantic_tokens_delay_ms": _clamp_int(data.get("semantic_tokens_delay_ms"), 150, 0, 5000),
        "shutdown_timeout_ms": _clamp_int(data.get("shutdown_timeout_ms"), 1200, 0, 30000),
        "log_lsp_traffic": bool(data.get("log_lsp_traffic", False)),
    }
    return out


def _clamp_int(value: object, default: int, low: int, high: int) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        number = default
    return max(low, min(high, number))


@dataclass(frozen=True)
class SettingsPaths:
    """Candidate `editor.json` locations, most specific first."""

    candidates: tuple[Path, ...]

    @classmethod
    def default(cls, cwd: Path | None = None, environ: dict[str, str] | None = None) -> SettingsPaths:
        env = os.environ if environ is None else environ
        found: list[Path] = [Path(cwd or Path.cwd()) / SETTINGS_FILE_NAME]
        xdg = str(env.get("XDG_CONFIG_HOME") or "").strip()
        if xdg:
            found.append(Path(xdg) / APP_DIR_NAME / SETTINGS_FILE_NAME)
        home = str(env.get("HOME") or "").strip()
        home_dir = Path(home) if home else Path.home()
        found.append(home_dir / ".config" / APP_DIR_NAME / SETTINGS_FILE_NAME)
        return cls(candidates=tuple(found))

    def first_existing(self) -> Path | None:
        for path in self.candidates:
            if path.is_file():
                return path
        return None
