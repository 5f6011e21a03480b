"""Runtime context wiring the stores, caches and clients together."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

from .api import DeltaForceApi
from .cache import PRESET_CACHE_TTL, TTLCache
from .config import ConfigStore
from .handlers import HANDLERS, Message, Reply
from .quota import DailyQuota
from .router import CommandRouter
from .speech import MAX_SPEECH_LENGTH, PublicTts, SpeechPipeline
from .tokens import TokenStore

log = logging.getLogger(__name__)

PACKAGE_LOGGER = "deltaforce"


class DeltaForceBot:
    """Owns every component; handlers reach them through this object only."""

    def __init__(
        self,
        *,
        config_path: str = "data/config.json",
        data_dir: str = "data",
        router: Optional[CommandRouter] = None,
        api: Optional[DeltaForceApi] = None,
        public_tts: Optional[PublicTts] = None,
    ) -> None:
        data_path = Path(data_dir)
        self.config = ConfigStore(Path(config_path))
        self.config.load()
        self._apply_debug()
        self.tokens = TokenStore(data_path / "users" / "tokens.json")
        self.quota = DailyQuota(data_path / "tts-usage.json")
        self.presets: TTLCache[list] = TTLCache(PRESET_CACHE_TTL, name="ai presets")
        self.api = api or DeltaForceApi(self.config)
        self.public_tts = public_tts or PublicTts()
        max_length = self._speech_length()
        self.speech = SpeechPipeline(
            quota=self.quota,
            primary=self._primary_speech,
            secondary=self.public_tts.synthesize,
            max_length=max_length,
        )
        self.router = router or CommandRouter.from_file()
        self._started = time.time()

    def _speech_length(self) -> int:
        raw = self.config.section("tts").get("max_length")
        try:
            length = int(raw)
        except (TypeError, ValueError):
            if raw is not None:
                log.warning("tts.max_length %r is not a number, using %d", raw, MAX_SPEECH_LENGTH)
            return MAX_SPEECH_LENGTH
        if length <= 0:
            log.warning("tts.max_length must be positive, using %d", MAX_SPEECH_LENGTH)
            return MAX_SPEECH_LENGTH
        return length

    def _apply_debug(self) -> None:
        level = logging.DEBUG if self.config.debug else logging.INFO
        logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    def set_debug(self, enabled: bool) -> None:
        self.config.save({"debug": enabled})
        self._apply_debug()

    async def _primary_speech(self, text: str) -> Optional[str]:
        result = await self.api.tts_synthesize(text)
        if result.ok and isinstance(result.data, dict):
            return result.data.get("url") or None
        return None

    def uptime(self) -> float:
        return time.time() - self._started

    def uptime_text(self) -> str:
        elapsed = int(self.uptime())
        days, rest = divmod(elapsed, 86400)
        hours, rest = divmod(rest, 3600)
        minutes, seconds = divmod(rest, 60)
        if days:
            return f"{days}天{hours}小时{minutes}分钟"
        if hours:
            return f"{hours}小时{minutes}分钟"
        return f"{minutes}分钟{seconds}秒"

    async def handle_message(
        self,
        user_id: str,
        text: str,
        *,
        group_id: Optional[str] = None,
    ) -> List[Reply]:
        if not text:
            return []
        route = self.router.match(text, self.config.prefixes)
        if route is None:
            return []
        handler = HANDLERS.get(route.command.handler)
        if handler is None:
            log.warning("no handler registered for %s", route.command.handler)
            return []
        log.debug("%s -> %s (%s)", user_id, route.command.name, route.args)
        message = Message(user_id=str(user_id), text=text, group_id=group_id)
        return await handler(self, message, route.args)

    async def close(self) -> None:
        await self.api.close()
