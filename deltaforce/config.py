"""Plugin configuration persisted as a single JSON document."""

from __future__ import annotations

import copy
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)

SCHEMA_VERSION = 1

DEFAULT_CONFIG: Dict[str, Any] = {
    "schema_version": SCHEMA_VERSION,
    "api_key": "",
    "clientID": "",
    # auto | default | eo
    "api_mode": "auto",
    "api_base_url": "",
    "command_prefix": ["三角洲", "^"],
    "master_qq": "",
    "push_daily_keyword": {
        "enabled": False,
        "cron": "0 8 * * *",
        "push_to": {"group": [], "private": []},
    },
    "push_place_status": {"enabled": False, "cron": "*/5 * * * *"},
    "push_daily_report": {"enabled": False, "cron": "0 10 * * *"},
    "push_weekly_report": {"enabled": False, "cron": "0 10 * * 1"},
    "websocket": {"auto_connect": False},
    "broadcast_notification": {
        "enabled": False,
        "push_to": {"group": [], "private": [], "private_enabled": False},
    },
    "tts": {
        "enabled": True,
        # blacklist | whitelist
        "mode": "blacklist",
        "group_list": [],
        "user_list": [],
        "max_length": 800,
        "ai_tts": {
            "enabled": True,
            "mode": "blacklist",
            "group_list": [],
            "user_list": [],
        },
    },
    "debug": False,
}


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay ``override`` on ``base``; nested sections merge key by key."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigStore:
    """Holds the active config and mirrors every change to disk.

    The file path occasionally ends up as a directory (a container volume
    mounted before the file existed); both ``load`` and ``save`` repair that.
    """

    def __init__(self, path: Path, defaults: Optional[Dict[str, Any]] = None) -> None:
        self.path = Path(path)
        self.defaults = copy.deepcopy(defaults if defaults is not None else DEFAULT_CONFIG)
        self._config: Dict[str, Any] = copy.deepcopy(self.defaults)

    def _prepare_path(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.is_dir():
            log.warning("config path %s is a directory, recreating it as a file", self.path)
            shutil.rmtree(self.path, ignore_errors=True)

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def load(self) -> Dict[str, Any]:
        try:
            self._prepare_path()
            if not self.path.exists():
                self._write(self.defaults)
                log.info("created default config at %s", self.path)
            parsed = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except Exception as exc:
            log.error("failed to load config %s: %s", self.path, exc)
            return self.get()
        if not isinstance(parsed, dict):
            log.error("config %s must hold a JSON object, got %s", self.path, type(parsed).__name__)
            return self.get()
        self._config = merge_config(self.defaults, parsed)
        log.debug("config loaded from %s", self.path)
        return self.get()

    def save(self, partial: Optional[Dict[str, Any]] = None) -> bool:
        self._config = merge_config(self._config, partial or {})
        try:
            self._prepare_path()
            self._write(self._config)
        except Exception as exc:
            log.error("failed to save config %s: %s", self.path, exc)
            return False
        log.info("config saved to %s", self.path)
        return True

    def get(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    def section(self, name: str) -> Dict[str, Any]:
        value = self._config.get(name)
        if isinstance(value, dict):
            return copy.deepcopy(value)
        default = self.defaults.get(name)
        return copy.deepcopy(default) if isinstance(default, dict) else {}

    def value(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    @property
    def debug(self) -> bool:
        return self._config.get("debug") is True

    @property
    def prefixes(self) -> list:
        raw = self._config.get("command_prefix") or []
        if isinstance(raw, str):
            raw = [raw]
        return [str(item) for item in raw if str(item)]
