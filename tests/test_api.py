import asyncio

from aiohttp import web
from aiohttp.test_utils import TestServer

from deltaforce.api import (
    DEFAULT_BASE_URL,
    EO_BASE_URL,
    ApiResult,
    DeltaForceApi,
    describe_api_error,
    interpret,
)
from deltaforce.config import ConfigStore


def make_config(tmp_path, **overrides):
    config = ConfigStore(tmp_path / "config.json")
    config.load()
    if overrides:
        config.save(overrides)
    return config


def test_interpret_success_envelope():
    result = interpret(200, {"code": 0, "msg": "ok", "data": [1, 2]})
    assert result.ok
    assert result.data == [1, 2]
    assert result.field("msg") == "ok"


def test_interpret_failure_markers():
    assert not interpret(200, {"success": False, "message": "nope"}).ok
    assert interpret(200, {"success": False, "message": "nope"}).message == "nope"
    assert not interpret(200, {"code": 500}).ok
    assert not interpret(404, {"code": 0}).ok
    assert not interpret(502, "gateway").ok
    assert interpret(200, ["bare"]).data == ["bare"]


def test_describe_api_error():
    assert describe_api_error(ApiResult(ok=True)) is None
    assert "重新绑定" in describe_api_error(ApiResult.failure("denied", status=401))
    assert "网络请求失败" in describe_api_error(ApiResult.failure("refused"))
    assert describe_api_error(ApiResult.failure("参数错误", status=400)) == "请求失败: 参数错误"


def test_base_url_follows_config(tmp_path):
    assert DeltaForceApi(make_config(tmp_path)).base_url == DEFAULT_BASE_URL
    assert DeltaForceApi(make_config(tmp_path, api_mode="eo")).base_url == EO_BASE_URL
    custom = make_config(tmp_path, api_base_url="http://localhost:9000/")
    assert DeltaForceApi(custom).base_url == "http://localhost:9000"


def _app(seen):
    async def operators(request):
        seen.append(("operators", request.headers.get("Authorization")))
        return web.json_response({"code": 0, "data": [{"name": "红狼"}]})

    async def place(request):
        seen.append(("place", dict(request.query)))
        return web.json_response({"code": 401, "msg": "token expired"}, status=401)

    async def commentary(request):
        body = await request.json()
        seen.append(("ai", body))
        text = 'data: {"thought": "..."}\n\ndata: {"answer": "打得不错"}\n\n'
        return web.Response(text=text, content_type="text/event-stream")

    async def broken(request):
        return web.Response(text="<html>oops</html>")

    app = web.Application()
    app.router.add_get("/df/object/operator", operators)
    app.router.add_get("/df/place/status", place)
    app.router.add_post("/df/person/ai", commentary)
    app.router.add_get("/df/object/health", broken)
    return app


def test_requests_against_live_server(tmp_path):
    seen = []

    async def run():
        server = TestServer(_app(seen))
        await server.start_server()
        config = make_config(tmp_path, api_key="k-123", api_base_url=str(server.make_url("/")))
        api = DeltaForceApi(config, timeout=5)
        try:
            return (
                await api.get_operators(),
                await api.get_place_status("tok"),
                await api.get_ai_commentary("tok", "sol", "cxg"),
                await api.get_health_status(),
            )
        finally:
            await api.close()
            await server.close()

    operators, place, commentary, health = asyncio.run(run())

    assert operators.ok and operators.data == [{"name": "红狼"}]
    assert ("operators", "Bearer k-123") in seen
    assert place.status == 401
    assert "重新绑定" in describe_api_error(place)
    assert ("place", {"frameworkToken": "tok"}) in seen
    assert commentary.ok
    assert "打得不错" in commentary.data
    assert ("ai", {"frameworkToken": "tok", "type": "sol", "preset": "cxg"}) in seen
    assert not health.ok
    assert health.message == "响应格式错误"


def test_unreachable_server_is_a_network_failure(tmp_path):
    config = make_config(tmp_path, api_base_url="http://127.0.0.1:9")
    api = DeltaForceApi(config, timeout=2)

    async def run():
        try:
            return await api.get_daily_keyword()
        finally:
            await api.close()

    result = asyncio.run(run())

    assert not result.ok
    assert result.status == 0
    assert describe_api_error(result).startswith("网络请求失败")


def test_fetch_presets_requires_a_list(tmp_path):
    api = DeltaForceApi(make_config(tmp_path))

    async def good(*args, **kwargs):
        return ApiResult(ok=True, data=[{"code": "cxg"}])

    async def odd(*args, **kwargs):
        return ApiResult(ok=True, data={"code": "cxg"})

    api._request = good
    assert asyncio.run(api.fetch_presets()) == [{"code": "cxg"}]
    api._request = odd
    assert asyncio.run(api.fetch_presets()) is None
