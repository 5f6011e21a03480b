"""Maps incoming text to a handler using the YAML keyword table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import yaml

log = logging.getLogger(__name__)

COMMANDS_FILE = Path(__file__).with_name("commands.yaml")


@dataclass(frozen=True)
class CommandDef:
    name: str
    handler: str
    keywords: Tuple[str, ...]
    has_args: bool = False


@dataclass
class Route:
    command: CommandDef
    keyword: str
    args: str


def load_commands(path: Path = COMMANDS_FILE) -> List[CommandDef]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except Exception as exc:
        log.error("failed to read command table %s: %s", path, exc)
        return []
    entries = raw.get("commands") if isinstance(raw, dict) else None
    commands: List[CommandDef] = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        handler = str(entry.get("handler") or "").strip()
        keywords = entry.get("keywords") or []
        if isinstance(keywords, str):
            keywords = [keywords]
        keywords = tuple(str(word).strip() for word in keywords if str(word).strip())
        if not handler or not keywords:
            log.warning("skipping incomplete command entry: %s", entry)
            continue
        commands.append(
            CommandDef(
                name=str(entry.get("name") or handler),
                handler=handler,
                keywords=keywords,
                has_args=bool(entry.get("has_args")),
            )
        )
    return commands


class CommandRouter:
    def __init__(self, commands: Sequence[CommandDef]) -> None:
        self.commands = list(commands)
        # longest keyword first so "干员列表" is not read as "干员" + "列表"
        self._index = sorted(
            ((keyword, command) for command in self.commands for keyword in command.keywords),
            key=lambda pair: len(pair[0]),
            reverse=True,
        )

    @classmethod
    def from_file(cls, path: Path = COMMANDS_FILE) -> "CommandRouter":
        return cls(load_commands(path))

    def strip_prefix(self, text: str, prefixes: Sequence[str]) -> Optional[str]:
        stripped = text.strip()
        for prefix in sorted(prefixes, key=len, reverse=True):
            if prefix and stripped.startswith(prefix):
                return stripped[len(prefix):].strip()
        return None

    def match(self, text: str, prefixes: Sequence[str]) -> Optional[Route]:
        body = self.strip_prefix(text, prefixes)
        if body is None:
            return None
        for keyword, command in self._index:
            if not body.startswith(keyword):
                continue
            args = body[len(keyword):].strip()
            if args and not command.has_args:
                continue
            return Route(command=command, keyword=keyword, args=args)
        return None
