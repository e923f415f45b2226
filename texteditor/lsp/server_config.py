"""Language-to-server routing from editor settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class LanguageServerConfig:
    name: str
    extensions: tuple[str, ...]
    command: str = ""

    @property
    def has_server(self) -> bool:
        return bool(self.command)


def _normalize_extension(raw: object) -> str:
    text = str(raw or "").strip().lower()
    if not text:
        return ""
    return text if text.startswith(".") else f".{text}"


class LanguageServerRegistry:
    """Maps file extensions (case-insensitively) to language configs."""

    def __init__(self, configs: list[LanguageServerConfig] | None = None) -> None:
        self._configs: list[LanguageServerConfig] = list(configs or [])

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> LanguageServerRegistry:
        languages = settings.get("languages") if isinstance(settings, Mapping) else None
        configs: list[LanguageServerConfig] = []
        if isinstance(languages, Mapping):
            for name, raw in languages.items():
                if not isinstance(raw, Mapping):
                    continue
                exts_obj = raw.get("extensions")
                if not isinstance(exts_obj, list):
                    continue
                extensions = tuple(ext for ext in (_normalize_extension(item) for item in exts_obj) if ext)
                if not extensions:
                    continue
                command = raw.get("lsp")
                configs.append(
                    LanguageServerConfig(
                        name=str(name),
                        extensions=extensions,
                        command=command.strip() if isinstance(command, str) else "",
                    )
                )
        return cls(configs)

    def all(self) -> list[LanguageServerConfig]:
        return list(self._configs)

    def config_for_extension(self, extension: str) -> LanguageServerConfig | None:
        wanted = _normalize_extension(extension)
        if not wanted:
            return None
        for config in self._configs:
            if wanted in config.extensions:
                return config
        return None

    def config_for_path(self, file_path: str) -> LanguageServerConfig | None:
        suffix = os.path.splitext(str(file_path or ""))[1]
        if not suffix:
            return None
        return self.config_for_extension(suffix)

    def command_for_path(self, file_path: str) -> str | None:
        config = self.config_for_path(file_path)
        if config is None or not config.has_server:
            return None
        return config.command

    def has_server(self, file_path: str) -> bool:
        return self.command_for_path(file_path) is not None
