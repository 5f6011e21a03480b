"""Async client for the Delta Force data API."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from .config import ConfigStore

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://df-api.shallow.ink"
EO_BASE_URL = "https://df-api-eo.shallow.ink"
REQUEST_TIMEOUT = 30


@dataclass
class ApiResult:
    ok: bool
    status: int = 0
    data: Any = None
    message: str = ""
    raw: Any = None

    @classmethod
    def failure(cls, message: str, *, status: int = 0, raw: Any = None) -> "ApiResult":
        return cls(ok=False, status=status, message=message, raw=raw)

    def field(self, key: str, default: Any = None) -> Any:
        if isinstance(self.raw, dict):
            return self.raw.get(key, default)
        return default


def interpret(status: int, body: Any) -> ApiResult:
    """Turn an HTTP status plus decoded body into an :class:`ApiResult`."""
    if isinstance(body, dict):
        message = str(body.get("msg") or body.get("message") or "")
        failed = body.get("success") is False or body.get("code") not in (None, 0, 200, "0")
        if status >= 400 or failed:
            return ApiResult.failure(message or f"HTTP {status}", status=status, raw=body)
        return ApiResult(ok=True, status=status, data=body.get("data"), message=message, raw=body)
    if status >= 400:
        return ApiResult.failure(f"HTTP {status}", status=status, raw=body)
    return ApiResult(ok=True, status=status, data=body, raw=body)


def describe_api_error(result: ApiResult) -> Optional[str]:
    """User-facing text for a failed call, ``None`` when the call succeeded."""
    if result.ok:
        return None
    if result.status in (401, 403):
        return "登录状态已失效，请使用 三角洲绑定 重新绑定账号"
    if result.status == 0:
        return f"网络请求失败: {result.message or '无法连接到服务器'}"
    return f"请求失败: {result.message or '未知错误'}"


class DeltaForceApi:
    def __init__(self, config: ConfigStore, *, timeout: float = REQUEST_TIMEOUT) -> None:
        self.config = config
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def base_url(self) -> str:
        explicit = str(self.config.value("api_base_url") or "").strip()
        if explicit:
            return explicit.rstrip("/")
        if self.config.value("api_mode") == "eo":
            return EO_BASE_URL
        return DEFAULT_BASE_URL

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        api_key = str(self.config.value("api_key") or "")
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        stream: bool = False,
    ) -> ApiResult:
        url = f"{self.base_url}{path}"
        query = {key: value for key, value in (params or {}).items() if value not in (None, "")}
        try:
            session = self._get_session()
            async with session.request(
                method, url, params=query, json=payload, headers=self._headers()
            ) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            log.warning("%s %s failed: %s", method, path, exc)
            return ApiResult.failure(str(exc) or type(exc).__name__)
        if self.config.debug:
            log.debug("%s %s -> %s %s", method, path, status, text[:2000])
        if stream:
            if status >= 400:
                return ApiResult.failure(f"HTTP {status}", status=status, raw=text)
            try:
                return interpret(status, json.loads(text))
            except json.JSONDecodeError:
                return ApiResult(ok=True, status=status, data=text, raw=text)
        try:
            body = json.loads(text) if text else None
        except json.JSONDecodeError:
            log.warning("%s %s returned non-JSON body", method, path)
            return ApiResult.failure("响应格式错误", status=status, raw=text)
        return interpret(status, body)

    # ---- game data ----

    async def get_operators(self) -> ApiResult:
        return await self._request("GET", "/df/object/operator")

    async def get_operator_details(self) -> ApiResult:
        return await self._request("GET", "/df/object/operator2")

    async def get_place_status(self, token: str) -> ApiResult:
        return await self._request("GET", "/df/place/status", params={"frameworkToken": token})

    async def get_place_info(self, token: str, place: Optional[str] = None) -> ApiResult:
        return await self._request(
            "GET", "/df/place/info", params={"frameworkToken": token, "place": place}
        )

    async def get_daily_keyword(self) -> ApiResult:
        return await self._request("GET", "/df/tools/dailykeyword")

    async def get_map_stats(self, token: str, season: str = "7", mode: str = "sol") -> ApiResult:
        return await self._request(
            "GET",
            "/df/person/mapStats",
            params={"frameworkToken": token, "seasonid": season, "type": mode},
        )

    async def get_collection(self, token: str) -> ApiResult:
        return await self._request("GET", "/df/person/collection", params={"frameworkToken": token})

    async def get_collection_map(self) -> ApiResult:
        return await self._request("GET", "/df/object/collection")

    async def search_object(self, name: str = "", ids: str = "") -> ApiResult:
        return await self._request("GET", "/df/object/search", params={"name": name, "id": ids})

    async def get_personal_info(self, token: str) -> ApiResult:
        return await self._request("GET", "/df/person/personalInfo", params={"frameworkToken": token})

    async def get_user_stats(self, client_id: str) -> ApiResult:
        return await self._request("GET", "/stats/users", params={"clientID": client_id})

    async def get_health_status(self) -> ApiResult:
        return await self._request("GET", "/df/object/health")

    async def get_article_list(self) -> ApiResult:
        return await self._request("GET", "/df/tools/article/list")

    async def get_article_detail(self, thread_id: str) -> ApiResult:
        return await self._request("GET", "/df/tools/article/detail", params={"threadId": thread_id})

    # ---- ai / speech ----

    async def get_ai_presets(self) -> ApiResult:
        return await self._request("GET", "/df/person/ai/presets")

    async def get_ai_commentary(self, token: str, mode: str, preset: Optional[str] = None) -> ApiResult:
        return await self._request(
            "POST",
            "/df/person/ai",
            payload={"frameworkToken": token, "type": mode, "preset": preset},
            stream=True,
        )

    async def tts_synthesize(self, text: str, *, character: Optional[str] = None) -> ApiResult:
        payload: Dict[str, Any] = {"text": text}
        if character:
            payload["character"] = character
        return await self._request("POST", "/df/tts/synthesize", payload=payload)

    async def fetch_presets(self) -> Optional[list]:
        """Preset list for :class:`TTLCache`; ``None`` marks a failed refresh."""
        result = await self.get_ai_presets()
        if result.ok and isinstance(result.data, list):
            return result.data
        log.warning("preset refresh rejected: %s", result.message or "unexpected shape")
        return None
