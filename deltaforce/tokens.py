"""Per-user API tokens persisted to ``tokens.json``."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Optional

log = logging.getLogger(__name__)

SEPARATOR = ":"


def scoped_key(user_id: str, scope: str) -> str:
    return f"{user_id}{SEPARATOR}{scope}"


class TokenStore:
    """Bare ``user`` tokens plus composite ``user:scope`` tokens.

    The whole file is read once on construction and rewritten on every
    mutation. Mutations take ``_lock`` so overlapping requests cannot lose
    each other's writes.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._tokens: Dict[str, str] = {}
        self._group_tokens: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except Exception as exc:
            log.warning("failed to load tokens from %s: %s", self.path, exc)
            return
        if not isinstance(payload, dict):
            log.warning("token file %s is not an object, ignoring it", self.path)
            return
        for target, section in ((self._tokens, "tokens"), (self._group_tokens, "groupTokens")):
            entries = payload.get(section) or {}
            if isinstance(entries, dict):
                for key, secret in entries.items():
                    if secret:
                        target[str(key)] = str(secret)
        log.debug("loaded tokens for %d users", len(self._tokens))

    def _snapshot(self) -> dict:
        return {"tokens": dict(self._tokens), "groupTokens": dict(self._group_tokens)}

    def _write(self, snapshot: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(snapshot, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except Exception as exc:
            log.warning("failed to persist tokens to %s: %s", self.path, exc)

    async def _persist(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, self._snapshot())

    def get(self, key: str) -> Optional[str]:
        if SEPARATOR in key:
            return self._group_tokens.get(key)
        return self._tokens.get(key)

    async def set(self, key: str, secret: str) -> None:
        async with self._lock:
            if SEPARATOR in key:
                self._group_tokens[key] = secret
            else:
                self._tokens[key] = secret
            await self._persist()

    async def clear(self, user_id: str) -> int:
        """Drop ``user_id`` and every ``user_id:*`` entry; returns how many went.

        Composite keys are found by a linear prefix scan.
        """
        prefix = f"{user_id}{SEPARATOR}"
        async with self._lock:
            removed = 1 if self._tokens.pop(user_id, None) is not None else 0
            for key in [key for key in self._group_tokens if key.startswith(prefix)]:
                del self._group_tokens[key]
                removed += 1
            await self._persist()
        return removed

    def get_active(self, user_id: str) -> Optional[str]:
        return self._tokens.get(str(user_id))

    async def set_active(self, user_id: str, token: str) -> None:
        await self.set(str(user_id), token)

    def get_group(self, user_id: str, scope: str) -> Optional[str]:
        return self._group_tokens.get(scoped_key(str(user_id), scope))

    async def set_group(self, user_id: str, scope: str, token: str) -> None:
        await self.set(scoped_key(str(user_id), scope), token)

    def scopes(self, user_id: str) -> Dict[str, str]:
        prefix = f"{user_id}{SEPARATOR}"
        return {
            key[len(prefix):]: secret
            for key, secret in self._group_tokens.items()
            if key.startswith(prefix)
        }
