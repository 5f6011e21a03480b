"""Command handlers: account, AI commentary, game data lookups and debug switches.

Every handler takes the bot context, the incoming :class:`Message` and the
argument text, and returns the replies to send in order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from . import normalize as nz
from .api import ApiResult, describe_api_error
from .speech import speech_allowed

log = logging.getLogger(__name__)

NOT_BOUND = "您尚未绑定账号，请使用 三角洲绑定 <token> 进行绑定"
OTHER_ASSETS = "其他资产"
ARMY_TYPE_ORDER = ["突击", "工程", "支援", "侦察"]

QUALITY_NAMES: Dict[str, str] = {
    "橙": "传说", "紫": "史诗", "蓝": "稀有", "绿": "普通",
    "legendary": "传说", "epic": "史诗", "rare": "稀有", "common": "普通",
    "6": "传说", "5": "史诗", "4": "稀有", "3": "普通",
}

LOGIN_METHOD_NAMES = {
    "qq": "QQ登录",
    "wechat": "微信登录",
    "wegame": "WeGame登录",
    "wegameWechat": "WeGame微信登录",
    "qqsafe": "QQ安全中心",
    "qqCk": "QQ Cookie登录",
}


@dataclass
class Message:
    user_id: str
    text: str
    group_id: Optional[str] = None


@dataclass
class Reply:
    text: str = ""
    # set when the replies should go out as one bundled forward message
    messages: List[str] = field(default_factory=list)
    nickname: str = ""
    audio: Optional[str] = None
    at_sender: bool = False

    @property
    def is_forward(self) -> bool:
        return bool(self.messages)


def say(text: str, *, at: bool = False) -> List[Reply]:
    return [Reply(text=text, at_sender=at)]


def forward(messages: List[str], nickname: str = "三角洲行动") -> Reply:
    return Reply(messages=[item for item in messages if item], nickname=nickname)


def failed(result: ApiResult, fallback: str) -> List[Reply]:
    return say(describe_api_error(result) or fallback)


def parse_mode(args: str) -> str:
    lowered = args.lower()
    if any(key in lowered for key in ("烽火", "烽火地带", "sol", "摸金")):
        return "sol"
    if any(key in lowered for key in ("全面", "全面战场", "战场", "mp")):
        return "mp"
    return ""


def mode_name(mode: str) -> str:
    return "烽火地带" if mode == "sol" else "全面战场"


def parse_ai_args(args: str) -> Tuple[str, Optional[str]]:
    mode = "sol"
    preset: Optional[str] = None
    for part in args.split():
        lowered = part.lower()
        if lowered in ("sol", "烽火", "烽火地带"):
            mode = "sol"
        elif lowered in ("mp", "全面", "全面战场"):
            mode = "mp"
        else:
            preset = part
    return mode, preset


def army_type_by_id(operator_id: Any) -> str:
    try:
        value = int(operator_id)
    except (TypeError, ValueError):
        return "未知"
    for low, label in ((10000, "突击"), (20000, "支援"), (30000, "工程"), (40000, "侦察")):
        if low <= value < low + 10000:
            return label
    return "未知"


def army_sort_key(name: str) -> Tuple[int, str]:
    if name in ARMY_TYPE_ORDER:
        return ARMY_TYPE_ORDER.index(name), ""
    return len(ARMY_TYPE_ORDER), name


def format_duration(seconds: Any) -> str:
    try:
        total = int(seconds)
    except (TypeError, ValueError):
        return "N/A"
    return f"{total // 3600}小时{(total % 3600) // 60}分钟{total % 60}秒"


def strip_html(text: str) -> str:
    return re.sub(r"<[^>]+>", "", text).replace("&nbsp;", " ").strip()


def _created_at(record: nz.Record) -> float:
    raw = str(record["createdAt"] or "")
    for candidate in (raw, raw.replace("Z", "+00:00")):
        try:
            return datetime.fromisoformat(candidate).timestamp()
        except ValueError:
            continue
    return 0.0


def account_token(bot, message: Message) -> Optional[str]:
    return bot.tokens.get_active(message.user_id)


# ---- account ----

async def bind_account(bot, message: Message, args: str) -> List[Reply]:
    parts = args.split()
    if not parts:
        return say("请提供 token，格式：三角洲绑定 <token> [登录方式]")
    token = parts[0]
    if len(parts) > 1:
        scope = parts[1].lower()
        await bot.tokens.set_group(message.user_id, scope, token)
        await bot.tokens.set_active(message.user_id, token)
        return say(f"已绑定 {LOGIN_METHOD_NAMES.get(scope, scope)} 账号并设为当前账号", at=True)
    await bot.tokens.set_active(message.user_id, token)
    return say("账号绑定成功", at=True)


async def switch_account(bot, message: Message, args: str) -> List[Reply]:
    scope = args.strip().lower()
    token = bot.tokens.get_group(message.user_id, scope) if scope else None
    if not token:
        available = "、".join(bot.tokens.scopes(message.user_id)) or "无"
        return say(f"未找到该登录方式的账号，已绑定: {available}")
    await bot.tokens.set_active(message.user_id, token)
    return say(f"已切换到 {LOGIN_METHOD_NAMES.get(scope, scope)} 账号", at=True)


async def unbind_account(bot, message: Message, args: str) -> List[Reply]:
    removed = await bot.tokens.clear(message.user_id)
    if not removed:
        return say("您当前没有绑定任何账号")
    return say(f"已解除绑定，共清除 {removed} 个 token", at=True)


# ---- AI commentary ----

async def load_presets(bot) -> List[Dict[str, Any]]:
    presets = await bot.presets.get_or_fetch(bot.api.fetch_presets)
    return list(presets or [])


def preset_views(presets: List[Dict[str, Any]]) -> List[nz.Record]:
    view = nz.normalize(presets, nz.PRESETS)
    return view.records if view else []


async def find_preset(bot, keyword: str) -> Optional[nz.Record]:
    if not keyword:
        return None
    return nz.find_best(keyword, preset_views(await load_presets(bot)))


async def ai_comment(bot, message: Message, args: str) -> List[Reply]:
    token = account_token(bot, message)
    if not token:
        return say(NOT_BOUND, at=True)

    mode, preset_input = parse_ai_args(args)
    preset_code: Optional[str] = None
    preset_name = "锐评"
    if preset_input:
        preset = await find_preset(bot, preset_input)
        if preset is None:
            views = preset_views(await load_presets(bot))
            hint = ""
            if views:
                hint = "\n可用预设: " + ", ".join(f"{p['name']}({p['code']})" for p in views)
            return say(f"无效的预设: {preset_input}{hint}\n\n使用 三角洲ai预设列表 查看可用预设")
        preset_code = preset["code"]
        preset_name = preset["name"]

    notice = Reply(text=f"正在使用【{preset_name}】分析您的 {mode_name(mode)} 数据...")
    result = await bot.api.get_ai_commentary(token, mode, preset_code)
    if not result.ok:
        return [notice, *failed(result, "AI 评价获取失败")]
    if not result.data:
        return [notice, *say("AI 评价获取失败")]
    comment = nz.extract_commentary(result.data)
    if not comment:
        return [notice, *say("AI 评价数据格式异常")]

    text = f"【{mode_name(mode)} AI{preset_name}】\n\n{comment}"
    # the tts lists gate the built-in backend only; the public fallback is capped by the daily quota
    tts = bot.config.section("tts")
    primary_allowed = speech_allowed(tts, message.user_id, message.group_id) and speech_allowed(
        tts.get("ai_tts") or {}, message.user_id, message.group_id
    )
    outcome = await bot.speech.deliver(message.user_id, comment, text=text, use_primary=primary_allowed)
    log.info("ai commentary for %s delivered via %s", message.user_id, outcome.strategy.value)
    replies = [notice, forward([outcome.text], "AI锐评")]
    if outcome.has_audio:
        replies.append(Reply(audio=outcome.audio))
    return replies


async def ai_presets(bot, message: Message, args: str) -> List[Reply]:
    views = preset_views(await load_presets(bot))
    if not views:
        return say("暂无可用的 AI 预设")
    lines = ["【AI 预设列表】"]
    for index, preset in enumerate(views, 1):
        mark = " (默认)" if preset["isDefault"] else ""
        lines.append(f"{index}. {preset['name']} - 代码: {preset['code']}{mark}")
    lines += [
        "",
        "使用示例:",
        "• 三角洲ai锐评 - 使用默认预设",
        "• 三角洲ai评价 烽火 雌小鬼",
        "• 三角洲ai评价 全面 cxg",
    ]
    return say("\n".join(lines))


# ---- operators ----

async def operator_detail(bot, message: Message, args: str) -> List[Reply]:
    query = args.strip()
    if not query:
        return say("请输入干员名称，如：三角洲干员 疾风")
    result = await bot.api.get_operator_details()
    if not result.ok:
        return failed(result, "获取干员数据失败")
    view = nz.normalize(result.data, nz.OPERATOR_DETAILS)
    if not view or not isinstance(result.data, list):
        return say("获取干员数据失败")

    matches = nz.match_tiers(query, view.records, code_keys=(), name_keys=("operator", "fullName"))
    if not matches:
        return say(f"未找到干员「{query}」的信息，请检查干员名称是否正确。")
    replies: List[Reply] = []
    if len(matches) > 1:
        names = "、".join(str(op["operator"]) for op in matches)
        replies.append(Reply(text=f"找到多个匹配的干员：{names}，将显示第一个匹配结果。"))
    operator = matches[0]

    basic = [f"【干员信息】{operator['operator']}"]
    if operator["fullName"]:
        basic.append(f"全名: {operator['fullName']}")
    if operator["armyType"]:
        basic.append(f"兵种: {operator['armyType']}")
    if operator["armyTypeDesc"]:
        basic.append(f"兵种描述: {operator['armyTypeDesc']}")
    if operator["pic"]:
        basic.append(f"\n[CQ:image,file={operator['pic']}]")
    messages = ["\n".join(basic).strip()]

    abilities = nz.normalize(operator.raw.get("abilitiesList") or [], nz.ABILITIES)
    if abilities and len(abilities):
        messages.append(f"【技能列表】共 {len(abilities)} 个技能")
        for index, ability in enumerate(abilities, 1):
            lines = [f"【技能 {index}】{ability['abilityName']}"]
            if ability["abilityTypeCN"]:
                lines.append(f"类型: {ability['abilityTypeCN']}")
            if ability["abilityDesc"]:
                lines.append(f"描述: {ability['abilityDesc']}")
            if ability["abilityIcon"]:
                lines.append(f"[CQ:image,file={ability['abilityIcon']}]")
            messages.append("\n".join(lines))
    replies.append(forward(messages, "干员信息"))
    return replies


async def operator_list(bot, message: Message, args: str) -> List[Reply]:
    result = await bot.api.get_operators()
    if not result.ok:
        return failed(result, "获取干员列表失败")
    if not isinstance(result.data, list):
        return say("获取干员列表失败")
    view = nz.normalize(result.data, nz.OPERATORS)
    if not len(view):
        return say("暂无干员数据")

    grouped: Dict[str, List[nz.Record]] = {}
    for operator in view:
        army = operator["armyType"] or army_type_by_id(operator["id"])
        grouped.setdefault(army, []).append(operator)

    messages = [f"【干员列表】\n共 {len(view)} 个干员"]
    for army in sorted(grouped, key=army_sort_key):
        members = grouped[army]
        lines = [f"【{army}】({len(members)}人)"]
        lines.extend(f"• {op['name']}" for op in members)
        messages.append("\n".join(lines))
    return [forward(messages, "干员列表")]


# ---- special operations (place) ----

async def place_status(bot, message: Message, args: str) -> List[Reply]:
    token = account_token(bot, message)
    if not token:
        return say(NOT_BOUND, at=True)
    result = await bot.api.get_place_status(token)
    if not result.ok:
        return failed(result, "获取特勤处状态失败")
    data = result.data if isinstance(result.data, dict) else {}
    places, stats = data.get("places"), data.get("stats")
    if not isinstance(places, list) or not isinstance(stats, dict):
        return say("获取特勤处状态失败")
    if not places:
        return say("未能查询到任何特勤处设施信息")

    messages = [
        f"总设施: {stats.get('total', 0)} | 生产中: {stats.get('producing', 0)} | 闲置: {stats.get('idle', 0)}"
    ]
    for place in places:
        if not isinstance(place, dict):
            continue
        lines = [f"--- {nz.pick(place, 'placeName', ('name',))} (Lv.{place.get('level', '-')}) ---"]
        detail = place.get("objectDetail")
        if isinstance(detail, dict):
            lines.append("状态: 生产中")
            lines.append(f"物品: {nz.pick(detail, 'objectName', ('name',))}")
            lines.append(f"剩余时间: {format_duration(place.get('leftTime'))}")
        else:
            lines.append(f"状态: {place.get('status', nz.UNKNOWN)}")
        messages.append("\n".join(lines))
    return [forward(messages, "特勤处状态")]


async def place_info(bot, message: Message, args: str) -> List[Reply]:
    token = account_token(bot, message)
    if not token:
        return say(NOT_BOUND, at=True)
    result = await bot.api.get_place_info(token, args.strip() or None)
    if not result.ok:
        return failed(result, "获取特勤处信息失败")
    if not result.data:
        return say("获取特勤处信息失败")
    lines = ["【特勤处信息】"]
    if isinstance(result.data, dict):
        for name, value in result.data.items():
            if not isinstance(value, dict):
                continue
            lines.append(f"\n{name}:")
            lines.append(f"  等级: {value.get('level') or '-'}")
            if value.get("upgradeCost"):
                lines.append(f"  升级费用: {value['upgradeCost']}")
    return say("\n".join(lines).strip())


# ---- misc game data ----

async def daily_keyword(bot, message: Message, args: str) -> List[Reply]:
    result = await bot.api.get_daily_keyword()
    if not result.ok:
        return failed(result, "获取每日密码失败")
    view = nz.normalize(result.data, nz.DAILY_KEYWORDS)
    if not view or not len(view):
        return say(f"获取每日密码失败: {result.message or '暂无数据'}")
    lines = ["【每日密码】"]
    lines.extend(f"【{item['mapName']}】: {item['secret']}" for item in view)
    return say("\n".join(lines))


async def map_stats(bot, message: Message, args: str) -> List[Reply]:
    token = account_token(bot, message)
    if not token:
        return say(NOT_BOUND, at=True)
    mode = parse_mode(args) or "sol"
    result = await bot.api.get_map_stats(token, "7", mode)
    if not result.ok:
        return failed(result, "获取地图统计失败")
    if result.data is None:
        return say("获取地图统计失败")
    lines = [f"【地图统计 - {mode_name(mode)}】"]
    view = nz.normalize(result.data, nz.MAP_STATS)
    if view and isinstance(result.data, list) and len(view):
        for index, item in enumerate(view.records[:10], 1):
            lines.append(f"{index}. {item['mapName']}: {item['total_round']}局 {item['kill_human']}杀")
    else:
        lines.append("暂无地图统计数据")
    return say("\n".join(lines))


async def _collection_lookup(bot, item_ids: List[str]) -> Dict[str, nz.Record]:
    lookup: Dict[str, nz.Record] = {}
    result = await bot.api.get_collection_map()
    if not result.ok:
        log.warning("collection lookup table failed: %s", result.message or "no response")
    else:
        data = result.data
        if isinstance(data, dict) and isinstance(data.get("collections"), list):
            data = data["collections"]
        view = nz.normalize(data, nz.COLLECTION_ENTRIES)
        if view and isinstance(data, list):
            lookup = {str(entry["id"]): entry for entry in view}
            log.debug("collection lookup table loaded: %d entries", len(lookup))
        else:
            log.warning("collection lookup table has unexpected shape: %s", getattr(view, "reason", type(data).__name__))

    if not lookup and item_ids:
        log.warning("collection lookup table empty, falling back to object search")
        search = await bot.api.search_object("", ",".join(item_ids))
        keywords = search.data.get("keywords") if search.ok and isinstance(search.data, dict) else None
        view = nz.normalize(keywords, nz.COLLECTION_ENTRIES)
        if view:
            lookup = {str(entry["id"]): entry for entry in view if entry["id"]}
        else:
            log.warning("object search returned nothing usable")
    return lookup


async def collection(bot, message: Message, args: str) -> List[Reply]:
    token = account_token(bot, message)
    if not token:
        return say(NOT_BOUND, at=True)
    result = await bot.api.get_collection(token)
    if not result.ok:
        return failed(result, "获取藏品数据失败")
    data = result.data if isinstance(result.data, dict) else None
    if data is None:
        return say("获取藏品数据失败")
    owned = [
        item
        for key in ("userData", "weponData")
        for item in (data.get(key) or [])
        if isinstance(item, dict)
    ]
    if not owned:
        return say("【藏品仓库】\n您的藏品库为空")

    item_ids = [str(nz.pick(item, "ItemId", ("itemId", "id"), "")) for item in owned]
    lookup = await _collection_lookup(bot, item_ids)

    categories: Dict[str, List[Tuple[str, str]]] = {}
    for item_id in item_ids:
        entry = lookup.get(item_id)
        category = entry["type"] if entry else OTHER_ASSETS
        name = entry["name"] if entry else f"物品({item_id})"
        quality = QUALITY_NAMES.get(str(entry["rare"]) if entry else "", "普通")
        categories.setdefault(category, []).append((name, quality))

    messages = [f"【藏品仓库】\n共 {len(item_ids)} 件物品"]
    for category in sorted(categories, key=lambda name: name == OTHER_ASSETS):
        items = categories[category]
        lines = [f"【{category}】 {len(items)}件"]
        for name, quality in items[:15]:
            lines.append(f"• {name}" + (f" [{quality}]" if quality != "普通" else ""))
        if len(items) > 15:
            lines.append(f"... 还有 {len(items) - 15} 件")
        messages.append("\n".join(lines))
    return [forward(messages, "藏品仓库")]


async def ban_history(bot, message: Message, args: str) -> List[Reply]:
    token = account_token(bot, message)
    if not token:
        return say(NOT_BOUND, at=True)
    result = await bot.api.get_personal_info(token)
    if not result.ok:
        return failed(result, "获取数据失败")
    if not isinstance(result.data, dict):
        return say("获取数据失败")
    ban_info = nz.pick(result.data, "banInfo", ("ban_info",), None)
    if not ban_info:
        return say("恭喜！您没有违规记录")
    lines = ["【违规记录】"]
    view = nz.normalize(ban_info, nz.BAN_RECORDS)
    if isinstance(ban_info, list) and view:
        for index, record in enumerate(view, 1):
            lines.append(f"{index}. {record['reason']}")
            if record["date"]:
                lines.append(f"   日期: {record['date']}")
    else:
        lines.append(str(ban_info))
    return say("\n".join(lines))


def _login_method_lines(methods: Any) -> List[str]:
    if not isinstance(methods, dict):
        return []
    lines = ["🔐 登录方式统计"]
    for method, stats in methods.items():
        stats = stats if isinstance(stats, dict) else {}
        lines.append(
            f"{LOGIN_METHOD_NAMES.get(method, method)}: {stats.get('total', 0)} "
            f"(有效: {stats.get('valid', 0)}, 无效: {stats.get('invalid', 0)})"
        )
    lines.append("")
    return lines


def format_admin_stats(data: Dict[str, Any]) -> str:
    def section(name: str) -> Dict[str, Any]:
        value = data.get(name)
        return value if isinstance(value, dict) else {}

    users, api, sub, platform = section("users"), section("api"), section("subscription"), section("platform")
    lines = [
        "【三角洲行动 - 全站用户统计】",
        "权限级别：超级管理员",
        "",
        "📊 用户统计",
        f"总用户数: {users.get('total', 0)}",
        f"邮箱已验证: {users.get('emailVerified', 0)}",
        f"邮箱未验证: {users.get('emailUnverified', 0)}",
        "",
        "🔑 API密钥统计",
        f"总密钥数: {api.get('totalKeys', 0)}",
        f"活跃密钥: {api.get('activeKeys', 0)}",
        f"非活跃密钥: {api.get('inactiveKeys', 0)}",
        "",
        "💎 订阅统计",
        f"专业用户: {sub.get('proUsers', 0)}",
        f"免费用户: {sub.get('freeUsers', 0)}",
        f"总订阅数: {sub.get('totalSubscriptions', 0)}",
        "",
    ]
    lines += _login_method_lines(data.get("loginMethods"))
    lines += [
        "🔗 平台绑定统计",
        f"总绑定数: {platform.get('totalBindings', 0)}",
        f"已绑定用户: {platform.get('boundUsers', 0)}",
        f"未绑定用户: {platform.get('unboundUsers', 0)}",
    ]
    security = data.get("security")
    if isinstance(security, dict):
        lines += [
            "",
            "🛡️ 安全统计",
            f"24小时内密码重置: {security.get('passwordResets24h', 0)}",
            f"7天内密码重置: {security.get('passwordResets7d', 0)}",
        ]
    return "\n".join(lines).strip()


def format_user_stats(data: Dict[str, Any]) -> str:
    info = data.get("userInfo") if isinstance(data.get("userInfo"), dict) else {}
    api = data.get("api") if isinstance(data.get("api"), dict) else {}
    lines = [
        "【三角洲行动 - 个人统计信息】",
        "权限级别：普通用户",
        "",
        "📊 账号统计",
        f"总账号数: {info.get('totalAccounts', 0)}",
        f"已绑定账号: {info.get('boundAccounts', 0)}",
        f"未绑定账号: {info.get('unboundAccounts', 0)}",
        "",
    ]
    lines += _login_method_lines(data.get("loginMethods"))
    lines += [
        "🔑 API密钥统计",
        f"总密钥数: {api.get('totalKeys', 0)}",
        f"活跃密钥: {api.get('activeKeys', 0)}",
        f"非活跃密钥: {api.get('inactiveKeys', 0)}",
    ]
    return "\n".join(lines).strip()


async def user_stats(bot, message: Message, args: str) -> List[Reply]:
    master = str(bot.config.value("master_qq") or "")
    if not master or str(message.user_id) != master:
        return say("抱歉，只有机器人主人才能使用此功能")
    client_id = str(bot.config.value("clientID") or "")
    if not client_id:
        return say("clientID 未配置，请在配置中设置")
    result = await bot.api.get_user_stats(client_id)
    if not result.ok:
        return failed(result, "获取统计信息失败")
    if not isinstance(result.data, dict):
        return say("获取统计信息失败：API返回数据为空")
    if result.field("accessLevel") == "admin":
        return say(format_admin_stats(result.data))
    return say(format_user_stats(result.data))


async def health_status(bot, message: Message, args: str) -> List[Reply]:
    result = await bot.api.get_health_status()
    if not result.ok:
        return failed(result, "查询健康状态失败")
    if not isinstance(result.data, list) or not result.data or not isinstance(result.data[0], dict):
        return say("查询健康状态失败: API 返回数据格式不正确")
    detail = result.data[0].get("healthyDetail")
    if not isinstance(detail, dict):
        return say("未能查询到健康状态详细信息")

    debuffs = ["【负面状态】"]
    areas = detail.get("deBuffList") or []
    if areas:
        for area in areas:
            if not isinstance(area, dict):
                continue
            statuses = nz.normalize(area.get("list") or [], nz.STATUS_EFFECTS)
            if not statuses or not len(statuses):
                continue
            debuffs.append(f"\n━━ {area.get('area') or '未知部位'} ━━")
            for status in statuses:
                debuffs.append(f"• {status['title']}")
                if status["trigger"]:
                    debuffs.append(f"  触发: {status['trigger']}")
                if status["effect"]:
                    debuffs.append(f"  效果: {status['effect']}")
    else:
        debuffs.append("\n无负面状态 ✓")

    buffs = ["【正面状态】"]
    groups = detail.get("buffList") or []
    if groups:
        for group in groups:
            if not isinstance(group, dict):
                continue
            entries = group.get("list") if isinstance(group.get("list"), list) else [group]
            view = nz.normalize(entries, nz.STATUS_EFFECTS)
            for buff in view or []:
                buffs.append(f"\n• {buff['title']}")
                if buff["effect"]:
                    buffs.append(f"  效果: {buff['effect']}")
    else:
        buffs.append("\n无正面状态")
    return [forward(["\n".join(debuffs).strip(), "\n".join(buffs).strip()], "角色健康状态")]


# ---- articles ----

async def article_list(bot, message: Message, args: str) -> List[Reply]:
    result = await bot.api.get_article_list()
    view = nz.normalize(result.data, nz.ARTICLES) if result.ok else None
    if not view:
        return say(f"获取文章列表失败: {result.message or '未知错误'}")
    articles = sorted(view.records, key=_created_at, reverse=True)[:15]
    if not articles:
        return say("暂无文章数据")
    lines = ["【三角洲行动 - 最新文章】", ""]
    for index, article in enumerate(articles, 1):
        lines.append(f"{index}. 【{article['title']}】")
        lines.append(f"   作者: {article['author']} | ID: {article['threadID']}")
        lines.append(f"   浏览: {article['viewCount']} | 点赞: {article['likedCount']}")
    lines.append("")
    lines.append("使用 三角洲文章详情 <ID> 查看具体内容")
    return say("\n".join(lines))


async def article_detail(bot, message: Message, args: str) -> List[Reply]:
    thread_id = args.strip()
    if not thread_id:
        return say("请提供文章 ID，格式：三角洲文章详情 <ID>")
    result = await bot.api.get_article_detail(thread_id)
    article = result.data.get("article") if result.ok and isinstance(result.data, dict) else None
    if not isinstance(article, dict):
        return say(f"获取文章详情失败: {result.message or '文章不存在或已删除'}")

    author = article.get("author") if isinstance(article.get("author"), dict) else {}
    lines = [
        f"【{article.get('title', '')}】",
        f"作者: {author.get('nickname') or '未知作者'}",
        f"发布时间: {article.get('createdAt', '')}",
        f"浏览: {article.get('viewCount', 0)} | 点赞: {article.get('likedCount', 0)}",
        f"ID: {article.get('id', thread_id)}",
    ]
    tags = (article.get("ext") or {}).get("gicpTags") if isinstance(article.get("ext"), dict) else None
    if tags:
        lines.append(f"标签: {', '.join(str(tag) for tag in tags)}")
    lines.append("")
    content = article.get("content") if isinstance(article.get("content"), dict) else {}
    if content.get("text"):
        body = strip_html(str(content["text"]))
        lines.append(body[:500] + "..." if len(body) > 500 else body)
    elif article.get("summary"):
        lines.append(str(article["summary"]))
    else:
        lines.append("（暂无内容）")
    return say("\n".join(lines).strip())


# ---- debug ----

async def enable_debug(bot, message: Message, args: str) -> List[Reply]:
    bot.set_debug(True)
    log.debug("debug mode on, raw API responses will be logged")
    return say("【调试模式】已开启\n\nAPI 请求将输出原始响应到控制台日志")


async def disable_debug(bot, message: Message, args: str) -> List[Reply]:
    bot.set_debug(False)
    return say("【调试模式】已关闭")


async def debug_status(bot, message: Message, args: str) -> List[Reply]:
    state = "开启" if bot.config.debug else "关闭"
    return say(
        f"【调试模式】当前状态: {state}\n运行时长: {bot.uptime_text()}\n\n开启调试模式后，所有 API 请求的原始响应将输出到控制台日志"
    )


HANDLERS = {
    "bindAccount": bind_account,
    "switchAccount": switch_account,
    "unbindAccount": unbind_account,
    "aiComment": ai_comment,
    "getAiPresets": ai_presets,
    "getOperator": operator_detail,
    "getOperatorList": operator_list,
    "getPlaceStatus": place_status,
    "getPlaceInfo": place_info,
    "getDailyKeyword": daily_keyword,
    "getMapStats": map_stats,
    "getCollection": collection,
    "getBanHistory": ban_history,
    "getUserStats": user_stats,
    "getHealthInfo": health_status,
    "getArticleList": article_list,
    "getArticleDetail": article_detail,
    "enableDebug": enable_debug,
    "disableDebug": disable_debug,
    "debugStatus": debug_status,
}
