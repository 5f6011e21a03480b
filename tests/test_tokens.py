import asyncio
import json

from deltaforce.tokens import TokenStore, scoped_key


def test_set_and_get_bare_and_scoped_tokens(tmp_path):
    store = TokenStore(tmp_path / "users" / "tokens.json")

    async def run():
        await store.set_active("u1", "tok-main")
        await store.set_group("u1", "qq", "tok-qq")

    asyncio.run(run())

    assert store.get("u1") == "tok-main"
    assert store.get("u1:qq") == "tok-qq"
    assert store.get_group("u1", "qq") == "tok-qq"
    assert store.get("u2") is None
    assert store.scopes("u1") == {"qq": "tok-qq"}


def test_file_layout_and_reload(tmp_path):
    path = tmp_path / "tokens.json"
    store = TokenStore(path)

    async def run():
        await store.set("u1", "a")
        await store.set(scoped_key("u1", "wechat"), "b")

    asyncio.run(run())

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "tokens": {"u1": "a"},
        "groupTokens": {"u1:wechat": "b"},
    }
    reloaded = TokenStore(path)
    assert reloaded.get_active("u1") == "a"
    assert reloaded.get_group("u1", "wechat") == "b"


def test_clear_removes_user_and_scoped_entries_only(tmp_path):
    path = tmp_path / "tokens.json"
    store = TokenStore(path)

    async def run():
        await store.set("u1", "a")
        await store.set("u1:qq", "b")
        await store.set("u1:wechat", "c")
        await store.set("u10", "d")
        await store.set("u10:qq", "e")
        await store.set("u2:qq", "f")
        return await store.clear("u1")

    removed = asyncio.run(run())

    assert removed == 3
    assert store.get("u1") is None
    assert store.get("u1:qq") is None
    assert store.get("u1:wechat") is None
    assert store.get("u10") == "d"
    assert store.get("u10:qq") == "e"
    assert store.get("u2:qq") == "f"
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk == {"tokens": {"u10": "d"}, "groupTokens": {"u10:qq": "e", "u2:qq": "f"}}


def test_clear_unknown_user_is_harmless(tmp_path):
    store = TokenStore(tmp_path / "tokens.json")
    assert asyncio.run(store.clear("nobody")) == 0


def test_concurrent_writers_do_not_lose_updates(tmp_path):
    path = tmp_path / "tokens.json"
    store = TokenStore(path)

    async def run():
        await asyncio.gather(*(store.set(f"user{i}", f"secret{i}") for i in range(20)))

    asyncio.run(run())

    reloaded = TokenStore(path)
    for i in range(20):
        assert reloaded.get(f"user{i}") == f"secret{i}"


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text("{{{", encoding="utf-8")

    store = TokenStore(path)

    assert store.get("u1") is None
    asyncio.run(store.set("u1", "a"))
    assert json.loads(path.read_text(encoding="utf-8"))["tokens"] == {"u1": "a"}
