from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Iterable, Mapping

from texteditor.settings_models import EditorSettings, SettingsPaths, default_editor_settings

log = logging.getLogger(__name__)


class SettingsStoreError(RuntimeError):
    """Raised when a settings file cannot be loaded."""


def deep_merge_defaults(
    data: Mapping[str, Any],
    defaults: Mapping[str, Any],
    *,
    replace_keys: Iterable[str] = (),
) -> dict[str, Any]:
    """Merge defaults into data without overwriting explicitly provided values.

    Top-level keys named in ``replace_keys`` are taken whole from ``data``
    when present instead of being merged with the defaults.
    """
    replaced = set(replace_keys)
    merged = deepcopy(dict(data))
    for key, default_value in defaults.items():
        if key not in merged:
            merged[key] = deepcopy(default_value)
            continue
        if key in replaced:
            continue
        current = merged[key]
        if isinstance(current, dict) and isinstance(default_value, dict):
            merged[key] = deep_merge_defaults(current, default_value)
    return merged


class JsonSettingsStore:
    """Read-only JSON settings file layered over defaults."""

    def __init__(
        self,
        path: Path | None,
        defaults: Mapping[str, Any],
        *,
        replace_keys: Iterable[str] = (),
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.defaults: dict[str, Any] = deepcopy(dict(defaults))
        self.replace_keys = tuple(replace_keys)
        self.data: dict[str, Any] = {}
        self.last_error: str | None = None

    def load(self) -> dict[str, Any]:
        self.last_error = None
        loaded: dict[str, Any] = {}
        if self.path is not None and self.path.exists():
            try:
                loaded = self._read()
            except SettingsStoreError as exc:
                # Keep the editor usable without touching the invalid file.
                self.last_error = str(exc)
                log.warning("%s", exc)
                loaded = {}
        self.data = deep_merge_defaults(loaded, self.defaults, replace_keys=self.replace_keys)
        return self.data

    def _read(self) -> dict[str, Any]:
        assert self.path is not None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SettingsStoreError(f"Could not read settings file '{self.path}': {exc}") from exc
        if not isinstance(raw, dict):
            raise SettingsStoreError(
                f"Settings root in '{self.path}' must be a JSON object, found {type(raw).__name__}."
            )
        return raw


def load_editor_settings(paths: SettingsPaths | None = None) -> EditorSettings:
    """Load the first `editor.json` found, or the built-in defaults."""
    search = paths or SettingsPaths.default()
    store = JsonSettingsStore(
        search.first_existing(),
        default_editor_settings(),
        replace_keys=("languages",),
    )
    data = store.load()
    if store.path is not None and store.last_error is None:
        log.info("Loaded editor settings from %s", store.path)
    return data  # type: ignore[return-value]
