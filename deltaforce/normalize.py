"""Canonical views over the API's loosely shaped payloads.

Endpoints disagree on shape (flat arrays, ``{category: [...]}`` maps, one
object) and on field names (``name`` / ``operator`` / ``fullName``). A
:class:`Schema` lists the canonical fields with their aliases and
placeholders; :func:`normalize` applies it and returns either a
:class:`CanonicalView` or an :class:`Unrecognized` outcome.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

log = logging.getLogger(__name__)

UNKNOWN = "unknown"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    aliases: Tuple[str, ...] = ()
    default: Any = UNKNOWN


@dataclass(frozen=True)
class Schema:
    endpoint: str
    fields: Tuple[FieldSpec, ...]
    # keys walked from the payload root before items are read
    path: Tuple[str, ...] = ()
    categorized: bool = False


@dataclass
class Record:
    values: Dict[str, Any]
    raw: Dict[str, Any]
    category: Optional[str] = None

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.values:
            return self.values[key]
        return self.raw.get(key, default)


@dataclass
class CanonicalView:
    endpoint: str
    records: List[Record] = field(default_factory=list)

    def __iter__(self):
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __bool__(self) -> bool:
        # an empty view is still a recognized shape
        return True


@dataclass
class Unrecognized:
    endpoint: str
    reason: str
    payload: Any = None

    def __bool__(self) -> bool:
        return False


Normalized = Union[CanonicalView, Unrecognized]


def _present(value: Any) -> bool:
    return value is not None and value != ""


def pick(item: Dict[str, Any], name: str, aliases: Sequence[str] = (), default: Any = UNKNOWN) -> Any:
    """Canonical field first, then each alias in order, then ``default``."""
    for key in (name, *aliases):
        value = item.get(key)
        if _present(value):
            return value
    return default


def resolve(payload: Any, path: Sequence[str]) -> Any:
    node = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def to_record(item: Dict[str, Any], schema: Schema, category: Optional[str] = None) -> Record:
    values = {entry.name: pick(item, entry.name, entry.aliases, entry.default) for entry in schema.fields}
    return Record(values=values, raw=item, category=category)


def normalize(payload: Any, schema: Schema) -> Normalized:
    node = resolve(payload, schema.path)
    if node is None:
        return Unrecognized(schema.endpoint, f"missing {'.'.join(schema.path) or 'payload'}", payload)
    if isinstance(node, list):
        records = [to_record(item, schema) for item in node if isinstance(item, dict)]
        return CanonicalView(schema.endpoint, records)
    if isinstance(node, dict) and schema.categorized:
        records = []
        for category, items in node.items():
            if not isinstance(items, list):
                log.debug("%s: skipping non-list category %s", schema.endpoint, category)
                continue
            records.extend(
                to_record(item, schema, category=str(category))
                for item in items
                if isinstance(item, dict)
            )
        return CanonicalView(schema.endpoint, records)
    if isinstance(node, dict):
        return CanonicalView(schema.endpoint, [to_record(node, schema)])
    snippet = json.dumps(node, ensure_ascii=False, default=str)[:200]
    return Unrecognized(schema.endpoint, f"unexpected {type(node).__name__}: {snippet}", payload)


OPERATORS = Schema(
    endpoint="operators",
    fields=(
        FieldSpec("name", ("operator", "fullName"), "未知"),
        FieldSpec("fullName", default=""),
        FieldSpec("armyType", default=""),
        FieldSpec("id", default=0),
    ),
)

OPERATOR_DETAILS = Schema(
    endpoint="operator_details",
    fields=(
        FieldSpec("operator", ("name", "fullName"), "未知干员"),
        FieldSpec("fullName", default=""),
        FieldSpec("armyType", default=""),
        FieldSpec("armyTypeDesc", default=""),
        FieldSpec("pic", default=""),
    ),
)

ABILITIES = Schema(
    endpoint="abilities",
    fields=(
        FieldSpec("abilityName", default="未知技能"),
        FieldSpec("abilityTypeCN", ("abilityType",), ""),
        FieldSpec("abilityDesc", default=""),
        FieldSpec("abilityIcon", default=""),
    ),
)

PRESETS = Schema(
    endpoint="ai_presets",
    fields=(
        FieldSpec("code", default=""),
        FieldSpec("name", default=""),
        FieldSpec("isDefault", default=False),
    ),
)

MAP_STATS = Schema(
    endpoint="map_stats",
    fields=(
        FieldSpec("mapName", ("mapname",), "未知"),
        FieldSpec("total_round", ("totalRound",), 0),
        FieldSpec("kill_human", ("killHuman",), 0),
    ),
)

ARTICLES = Schema(
    endpoint="articles",
    path=("articles", "list"),
    categorized=True,
    fields=(
        FieldSpec("title", default="无标题"),
        FieldSpec("author", default="未知作者"),
        FieldSpec("threadID", ("id",), ""),
        FieldSpec("viewCount", default=0),
        FieldSpec("likedCount", default=0),
        FieldSpec("createdAt", default=""),
    ),
)

DAILY_KEYWORDS = Schema(
    endpoint="daily_keyword",
    path=("list",),
    fields=(
        FieldSpec("mapName", default="未知地图"),
        FieldSpec("secret", default="-"),
    ),
)

BAN_RECORDS = Schema(
    endpoint="ban_history",
    fields=(
        FieldSpec("reason", default="未知原因"),
        FieldSpec("date", default=""),
    ),
)

STATUS_EFFECTS = Schema(
    endpoint="health_status",
    fields=(
        FieldSpec("title", ("status", "name"), "未知状态"),
        FieldSpec("trigger", default=""),
        FieldSpec("effect", default=""),
    ),
)

COLLECTION_ENTRIES = Schema(
    endpoint="collection_map",
    fields=(
        FieldSpec("id", ("objectID",), ""),
        FieldSpec("name", ("objectName",), "物品"),
        FieldSpec("type", ("secondClassCN", "secondClass", "primaryClass"), "其他资产"),
        FieldSpec("rare", ("grade",), ""),
    ),
)


def match_tiers(
    query: str,
    items: Iterable[Any],
    *,
    code_keys: Sequence[str] = ("code",),
    name_keys: Sequence[str] = ("name",),
) -> List[Any]:
    """Return every match of the first tier that matches anything.

    Tiers: exact case-insensitive code, exact name, name contains query,
    query contains name. Upstream order is kept inside a tier.
    """
    keyword = (query or "").strip()
    if not keyword:
        return []
    lowered = keyword.lower()
    candidates = list(items)

    def fields(item: Any, keys: Sequence[str]) -> List[str]:
        getter = item.get if hasattr(item, "get") else (lambda key: getattr(item, key, None))
        return [str(getter(key)) for key in keys if _present(getter(key))]

    tiers = (
        lambda item: any(code.lower() == lowered for code in fields(item, code_keys)),
        lambda item: any(name == keyword for name in fields(item, name_keys)),
        lambda item: any(keyword in name for name in fields(item, name_keys)),
        lambda item: any(name in keyword for name in fields(item, name_keys)),
    )
    for test in tiers:
        matches = [item for item in candidates if test(item)]
        if matches:
            return matches
    return []


def find_best(query: str, items: Iterable[Any], **keys: Any) -> Optional[Any]:
    matches = match_tiers(query, items, **keys)
    return matches[0] if matches else None


def parse_event_stream(body: str) -> str:
    """Pull the commentary out of a ``data:``-framed event stream.

    The last ``answer`` wins; without any answer the first ``thought`` is used.
    """
    answer = ""
    thought = ""
    for line in (body or "").split("\n"):
        stripped = line.strip()
        if not stripped.startswith("data:"):
            continue
        chunk = stripped[5:].strip()
        if not chunk:
            continue
        try:
            frame = json.loads(chunk)
        except json.JSONDecodeError:
            continue
        if not isinstance(frame, dict):
            continue
        if frame.get("answer"):
            answer = str(frame["answer"])
        if frame.get("thought") and not thought:
            thought = str(frame["thought"])
    return answer or thought


def extract_commentary(data: Any) -> str:
    if isinstance(data, str):
        return parse_event_stream(data)
    if isinstance(data, dict):
        return str(pick(data, "answer", ("comment",), ""))
    return ""
