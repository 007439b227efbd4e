from __future__ import annotations

import json
import os
from typing import Any

from .logger import get_logger

_logger = get_logger("settings")


class SettingsManager:
    def __init__(self, settings_path: str):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "row_height": 24,
        "overscan": 5,
        "cache_size": 1000,
        "search_debounce_ms": 300,
        "status_fade_delay_ms": 2000,
        "fetch_workers": 4,
        "case_sensitive": False,
        "use_regex": False,
    }

    def load(self) -> None:
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
        except Exception as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self) -> None:
        try:
            parent = os.path.dirname(self.settings_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except Exception as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        self._settings[key] = value
        self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    def _positive_int(self, key: str) -> int:
        try:
            value = int(self.get(key))
        except (TypeError, ValueError):
            _logger.warning("setting %s invalid: %r; using default", key, self._settings.get(key))
            return int(self.DEFAULTS[key])
        if value <= 0:
            _logger.warning("setting %s must be positive: %r; using default", key, value)
            return int(self.DEFAULTS[key])
        return value

    @property
    def row_height(self) -> int:
        return self._positive_int("row_height")

    @property
    def overscan(self) -> int:
        try:
            return max(0, int(self.get("overscan")))
        except (TypeError, ValueError):
            return int(self.DEFAULTS["overscan"])

    @property
    def cache_size(self) -> int:
        return self._positive_int("cache_size")

    @property
    def search_debounce_ms(self) -> int:
        return self._positive_int("search_debounce_ms")

    @property
    def status_fade_delay_ms(self) -> int:
        return self._positive_int("status_fade_delay_ms")

    @property
    def fetch_workers(self) -> int:
        return self._positive_int("fetch_workers")

    @property
    def case_sensitive(self) -> bool:
        return bool(self.get("case_sensitive", False))

    @property
    def use_regex(self) -> bool:
        return bool(self.get("use_regex", False))
