"""Once-per-day usage marks, persisted as ``{subject: "YYYY-MM-DD"}``."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict

log = logging.getLogger(__name__)


def utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class DailyQuota:
    """Lets each subject consume a guarded resource once per UTC day.

    The file is re-read on every check. A mark that could not be written is
    held in memory for the rest of the day so the cap still applies.
    """

    def __init__(self, path: Path, *, today: Callable[[], str] = utc_today) -> None:
        self.path = Path(path)
        self._today = today
        self._lock = asyncio.Lock()
        self._unsaved: Dict[str, str] = {}

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except Exception as exc:
            log.warning("failed to read quota file %s: %s", self.path, exc)
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(key): str(value) for key, value in payload.items()}

    def _write(self, usage: Dict[str, str]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(usage, ensure_ascii=False), encoding="utf-8")
        except Exception as exc:
            log.error("failed to write quota file %s: %s", self.path, exc)
            return False
        return True

    async def try_consume(self, subject: str) -> bool:
        loop = asyncio.get_running_loop()
        async with self._lock:
            stamp = self._today()
            usage = await loop.run_in_executor(None, self._read)
            key = str(subject)
            if stamp in (usage.get(key), self._unsaved.get(key)):
                log.debug("quota already used today by %s", subject)
                return False
            usage[key] = stamp
            if await loop.run_in_executor(None, self._write, usage):
                self._unsaved.pop(key, None)
            else:
                self._unsaved[key] = stamp
        return True
