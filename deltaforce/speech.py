"""Voice delivery for AI commentary.

Three strategies run in order and the first one that yields audio wins:

1. the data API's own synthesiser (no cap);
2. a public redirect-based TTS endpoint, at most once per user per day;
3. text only, which cannot fail.

Quota for strategy 2 is charged when the attempt starts, whether or not the
download succeeds.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import aiohttp

from .quota import DailyQuota

log = logging.getLogger(__name__)

FALLBACK_TTS_URL = "https://i.elaina.vin/api/tts/"
FALLBACK_TTS_CHAR_ID = "2538"
SPEECH_TIMEOUT = 30
MAX_SPEECH_LENGTH = 800

Synthesizer = Callable[[str], Awaitable[Optional[str]]]


class Strategy(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TEXT_ONLY = "text"


@dataclass
class Attempt:
    ordinal: int
    strategy: Strategy
    ok: bool
    audio: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class SpeechResult:
    strategy: Strategy
    text: str
    audio: Optional[str] = None
    attempts: List[Attempt] = field(default_factory=list)

    @property
    def has_audio(self) -> bool:
        return bool(self.audio)


class PublicTts:
    """Client for the public TTS service that answers with a 302 to the audio file."""

    def __init__(
        self,
        base_url: str = FALLBACK_TTS_URL,
        *,
        voice_id: str = FALLBACK_TTS_CHAR_ID,
        timeout: float = SPEECH_TIMEOUT,
    ) -> None:
        self.base_url = base_url
        self.voice_id = voice_id
        self.timeout = timeout

    def resolve_location(self, location: str) -> str:
        if location.startswith("http"):
            return location
        return f"{self.base_url.rstrip('/')}/{location.lstrip('/')}"

    async def fetch_audio(self, text: str) -> Optional[bytes]:
        """Raises on transport errors; returns ``None`` when no audio came back."""
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        params = {"text": text, "id": self.voice_id, "iz": "sjz"}
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(self.base_url, params=params, allow_redirects=False) as resp:
                location = resp.headers.get("Location", "")
            if not location:
                log.debug("public tts answered %s without a location", resp.status)
                return None
            async with session.get(self.resolve_location(location)) as audio:
                if audio.status < 200 or audio.status >= 300:
                    log.debug("public tts audio fetch returned %s", audio.status)
                    return None
                return await audio.read()

    async def synthesize(self, text: str) -> Optional[str]:
        content = await self.fetch_audio(text)
        if not content:
            return None
        return "base64://" + base64.b64encode(content).decode("ascii")


class SpeechPipeline:
    def __init__(
        self,
        *,
        quota: DailyQuota,
        primary: Optional[Synthesizer] = None,
        secondary: Optional[Synthesizer] = None,
        max_length: int = MAX_SPEECH_LENGTH,
    ) -> None:
        self.quota = quota
        self.primary = primary
        self.secondary = secondary
        self.max_length = max_length

    async def _attempt(self, ordinal: int, strategy: Strategy, backend: Synthesizer, text: str) -> Attempt:
        try:
            audio = await backend(text)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            log.debug("%s speech failed: %s", strategy.value, exc)
            return Attempt(ordinal, strategy, ok=False, error=str(exc) or type(exc).__name__)
        except Exception as exc:
            log.warning("%s speech backend raised: %s", strategy.value, exc)
            return Attempt(ordinal, strategy, ok=False, error=str(exc) or type(exc).__name__)
        if not audio:
            return Attempt(ordinal, strategy, ok=False, error="no audio")
        return Attempt(ordinal, strategy, ok=True, audio=audio)

    async def deliver(
        self,
        subject: str,
        spoken: str,
        *,
        text: Optional[str] = None,
        use_primary: bool = True,
        use_secondary: bool = True,
    ) -> SpeechResult:
        """Run the cascade for ``spoken``; ``text`` is what gets shown alongside."""
        shown = spoken if text is None else text
        clipped = spoken[: self.max_length]
        attempts: List[Attempt] = []

        if self.primary and use_primary:
            attempt = await self._attempt(1, Strategy.PRIMARY, self.primary, clipped)
            attempts.append(attempt)
            if attempt.ok:
                return SpeechResult(Strategy.PRIMARY, shown, attempt.audio, attempts)
        else:
            attempts.append(Attempt(1, Strategy.PRIMARY, ok=False, skipped=True))

        if self.secondary and use_secondary:
            if await self.quota.try_consume(subject):
                attempt = await self._attempt(2, Strategy.SECONDARY, self.secondary, clipped)
                attempts.append(attempt)
                if attempt.ok:
                    return SpeechResult(Strategy.SECONDARY, shown, attempt.audio, attempts)
            else:
                log.debug("fallback tts quota used up for %s", subject)
                attempts.append(Attempt(2, Strategy.SECONDARY, ok=False, error="quota", skipped=True))
        else:
            attempts.append(Attempt(2, Strategy.SECONDARY, ok=False, skipped=True))

        attempts.append(Attempt(3, Strategy.TEXT_ONLY, ok=True))
        return SpeechResult(Strategy.TEXT_ONLY, shown, None, attempts)


def speech_allowed(section: dict, user_id: str, group_id: Optional[str] = None) -> bool:
    """Apply a ``tts``-style section: ``enabled`` plus black/white lists."""
    if not isinstance(section, dict) or section.get("enabled") is False:
        return False
    users = {str(item) for item in section.get("user_list") or []}
    groups = {str(item) for item in section.get("group_list") or []}
    listed = str(user_id) in users or (group_id is not None and str(group_id) in groups)
    if section.get("mode") == "whitelist":
        return listed
    return not listed
