import asyncio
import logging
import sys
from typing import List, Optional, TextIO

from deltaforce.handlers import Reply

log = logging.getLogger(__name__)

QUIT_COMMANDS = {"exit", "quit", "退出"}


def render_reply(reply: Reply) -> str:
    parts: List[str] = []
    if reply.text:
        parts.append(f"@you {reply.text}" if reply.at_sender else reply.text)
    if reply.messages:
        header = f"[forward:{reply.nickname}]" if reply.nickname else "[forward]"
        parts.append("\n".join([header, *("\n".join(["---", item]) for item in reply.messages)]))
    if reply.audio:
        audio = reply.audio
        if audio.startswith("base64://"):
            audio = f"base64 audio ({len(audio) - len('base64://')} chars)"
        parts.append(f"[audio] {audio}")
    return "\n".join(parts)


class ConsoleTransport:
    """Reads commands from stdin and prints replies; used for local runs."""

    def __init__(
        self,
        bot,
        *,
        user_id: str = "10000",
        group_id: Optional[str] = None,
        stream: TextIO = sys.stdout,
    ):
        self.bot = bot
        self.user_id = user_id
        self.group_id = group_id
        self.stream = stream
        self._stop_event = asyncio.Event()

    async def handle_line(self, line: str) -> None:
        text = line.strip()
        if not text:
            return
        try:
            replies = await self.bot.handle_message(self.user_id, text, group_id=self.group_id)
        except Exception as exc:
            log.exception("Bot error: %s", exc)
            replies = [Reply(text="服务暂时不可用，请稍后再试")]
        for reply in replies:
            rendered = render_reply(reply)
            if rendered:
                print(rendered, file=self.stream, flush=True)

    async def start(self):
        loop = asyncio.get_running_loop()
        while not self._stop_event.is_set():
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            if line.strip().lower() in QUIT_COMMANDS:
                await self.stop()
                continue
            await self.handle_line(line)

    async def stop(self):
        self._stop_event.set()
