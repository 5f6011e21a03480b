import asyncio

from deltaforce.cache import TTLCache


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_fetcher(*values):
    calls = []
    queue = list(values)

    async def fetcher():
        calls.append(1)
        value = queue.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    return fetcher, calls


def test_fresh_value_skips_fetcher():
    clock = Clock()
    cache = TTLCache(60, clock=clock)
    fetcher, calls = make_fetcher(["a"], ["b"])

    async def run():
        first = await cache.get_or_fetch(fetcher)
        clock.now = 59.9
        second = await cache.get_or_fetch(fetcher)
        return first, second

    first, second = asyncio.run(run())

    assert first == ["a"]
    assert second == ["a"]
    assert len(calls) == 1


def test_expired_value_is_refreshed_once():
    clock = Clock()
    cache = TTLCache(60, clock=clock)
    fetcher, calls = make_fetcher(["a"], ["b"])

    async def run():
        await cache.get_or_fetch(fetcher)
        clock.now = 60
        refreshed = await cache.get_or_fetch(fetcher)
        again = await cache.get_or_fetch(fetcher)
        return refreshed, again

    refreshed, again = asyncio.run(run())

    assert refreshed == ["b"]
    assert again == ["b"]
    assert len(calls) == 2


def test_failed_refresh_serves_stale_value():
    clock = Clock()
    cache = TTLCache(60, clock=clock)
    stale = ["a"]
    fetcher, calls = make_fetcher(stale, RuntimeError("upstream down"), None)

    async def run():
        await cache.get_or_fetch(fetcher)
        clock.now = 120
        after_error = await cache.get_or_fetch(fetcher)
        after_empty = await cache.get_or_fetch(fetcher)
        return after_error, after_empty

    after_error, after_empty = asyncio.run(run())

    assert after_error is stale
    assert after_empty is stale
    assert len(calls) == 3


def test_failure_without_previous_value_returns_none():
    cache = TTLCache(60)
    fetcher, _ = make_fetcher(RuntimeError("boom"))

    assert asyncio.run(cache.get_or_fetch(fetcher)) is None
    assert cache.value is None


def test_concurrent_callers_share_a_single_fetch():
    cache = TTLCache(60)
    calls = []

    async def run():
        gate = asyncio.Event()

        async def fetcher():
            calls.append(1)
            await gate.wait()
            return ["shared"]

        tasks = [asyncio.ensure_future(cache.get_or_fetch(fetcher)) for _ in range(10)]
        await asyncio.sleep(0)
        gate.set()
        return await asyncio.gather(*tasks)

    results = asyncio.run(run())

    assert len(calls) == 1
    assert results == [["shared"]] * 10


def test_concurrent_callers_share_a_failed_fetch():
    clock = Clock()
    cache = TTLCache(60, clock=clock)
    calls = []

    async def run():
        await cache.get_or_fetch(lambda: _value(["old"]))
        clock.now = 100
        gate = asyncio.Event()

        async def failing():
            calls.append(1)
            await gate.wait()
            raise ConnectionError("down")

        tasks = [asyncio.ensure_future(cache.get_or_fetch(failing)) for _ in range(5)]
        await asyncio.sleep(0)
        gate.set()
        return await asyncio.gather(*tasks)

    results = asyncio.run(run())

    assert len(calls) == 1
    assert results == [["old"]] * 5


def test_invalidate_forces_refresh():
    cache = TTLCache(3600)
    fetcher, calls = make_fetcher(["a"], ["b"])

    async def run():
        await cache.get_or_fetch(fetcher)
        cache.invalidate()
        return await cache.get_or_fetch(fetcher)

    assert asyncio.run(run()) == ["b"]
    assert len(calls) == 2


async def _value(value):
    return value
