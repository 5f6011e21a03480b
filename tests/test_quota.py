import asyncio
import json

from deltaforce.quota import DailyQuota, utc_today


def test_once_per_day_then_reset(tmp_path):
    day = ["2024-03-01"]
    quota = DailyQuota(tmp_path / "tts-usage.json", today=lambda: day[0])

    async def run():
        results = [await quota.try_consume("u1"), await quota.try_consume("u1")]
        day[0] = "2024-03-02"
        results.append(await quota.try_consume("u1"))
        results.append(await quota.try_consume("u1"))
        return results

    assert asyncio.run(run()) == [True, False, True, False]


def test_previous_day_stamp_is_replaced(tmp_path):
    path = tmp_path / "tts-usage.json"
    path.write_text(json.dumps({"u1": "2024-01-01"}), encoding="utf-8")
    quota = DailyQuota(path, today=lambda: "2024-01-02")

    assert asyncio.run(quota.try_consume("u1")) is True
    assert json.loads(path.read_text(encoding="utf-8")) == {"u1": "2024-01-02"}


def test_subjects_are_independent(tmp_path):
    path = tmp_path / "tts-usage.json"
    quota = DailyQuota(path, today=lambda: "2024-05-05")

    async def run():
        return [await quota.try_consume(s) for s in ("a", "b", "a", "c")]

    assert asyncio.run(run()) == [True, True, False, True]
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "a": "2024-05-05",
        "b": "2024-05-05",
        "c": "2024-05-05",
    }


def test_concurrent_checks_for_one_subject_allow_exactly_one(tmp_path):
    quota = DailyQuota(tmp_path / "tts-usage.json", today=lambda: "2024-05-05")

    async def run():
        return await asyncio.gather(*(quota.try_consume("u1") for _ in range(8)))

    results = asyncio.run(run())

    assert results.count(True) == 1


def test_concurrent_checks_for_many_subjects_all_persist(tmp_path):
    path = tmp_path / "tts-usage.json"
    quota = DailyQuota(path, today=lambda: "2024-05-05")

    async def run():
        return await asyncio.gather(*(quota.try_consume(f"u{i}") for i in range(8)))

    assert all(asyncio.run(run()))
    assert len(json.loads(path.read_text(encoding="utf-8"))) == 8


def test_file_is_the_source_of_truth(tmp_path):
    path = tmp_path / "tts-usage.json"
    quota = DailyQuota(path, today=lambda: "2024-05-05")
    asyncio.run(quota.try_consume("u1"))

    path.write_text("{}", encoding="utf-8")

    assert asyncio.run(quota.try_consume("u1")) is True


def test_corrupt_file_counts_as_empty(tmp_path):
    path = tmp_path / "tts-usage.json"
    path.write_text("not json", encoding="utf-8")
    quota = DailyQuota(path, today=lambda: "2024-05-05")

    assert asyncio.run(quota.try_consume("u1")) is True
    assert json.loads(path.read_text(encoding="utf-8")) == {"u1": "2024-05-05"}


def test_utc_today_is_a_date_stamp():
    stamp = utc_today()
    assert len(stamp) == 10
    assert stamp[4] == "-" and stamp[7] == "-"


def test_unwritable_file_still_caps_the_day(tmp_path):
    # the quota path is a directory, so every write fails
    blocked = tmp_path / "tts-usage.json"
    blocked.mkdir()
    day = ["2024-05-05"]
    quota = DailyQuota(blocked, today=lambda: day[0])

    async def run():
        results = [await quota.try_consume("u1"), await quota.try_consume("u1")]
        day[0] = "2024-05-06"
        results.append(await quota.try_consume("u1"))
        return results

    assert asyncio.run(run()) == [True, False, True]
