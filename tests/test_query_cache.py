import asyncio

from clinic_portal.services.invalidation import QueryFamily
from clinic_portal.services.query_cache import QueryCache, QueryKey, QueryResult

PATIENTS = QueryKey(QueryFamily.PATIENT_LIST, "http://clinic.test/api/patients-list")
USERS = QueryKey(QueryFamily.USER_LIST, "http://clinic.test/api/admin/users/list")


class CountingFetcher:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def test_result_status():
    assert QueryResult(is_loading=True).status == "loading"
    assert QueryResult(error=RuntimeError("x")).status == "error"
    assert QueryResult(data=[]).status == "empty"
    assert QueryResult(data={}).status == "empty"
    assert QueryResult().status == "empty"
    assert QueryResult(data=[1]).status == "ready"


def test_concurrent_queries_share_one_fetch():
    cache = QueryCache()
    calls = []

    async def run():
        release = asyncio.Event()

        async def fetch():
            calls.append(1)
            await release.wait()
            return ["doe"]

        pending = [asyncio.create_task(cache.query(PATIENTS, fetch)) for _ in range(3)]
        await asyncio.sleep(0)
        assert cache.peek(PATIENTS).is_loading
        release.set()
        return await asyncio.gather(*pending)

    results = asyncio.run(run())
    assert len(calls) == 1
    assert [r.data for r in results] == [["doe"]] * 3


def test_fresh_data_is_served_from_cache():
    cache = QueryCache(dedupe_interval=60)
    fetch = CountingFetcher(["a"], ["b"])

    async def run():
        first = await cache.query(PATIENTS, fetch)
        second = await cache.query(PATIENTS, fetch)
        return first, second

    first, second = asyncio.run(run())
    assert fetch.calls == 1
    assert first.data == second.data == ["a"]


def test_stale_data_is_refetched():
    now = [0.0]
    cache = QueryCache(dedupe_interval=2, clock=lambda: now[0])
    fetch = CountingFetcher(["a"], ["b"])

    async def run():
        await cache.query(PATIENTS, fetch)
        now[0] = 5.0
        return await cache.query(PATIENTS, fetch)

    assert asyncio.run(run()).data == ["b"]
    assert fetch.calls == 2


def test_failed_refresh_keeps_last_good_data():
    cache = QueryCache(dedupe_interval=0)
    fetch = CountingFetcher(["a"], RuntimeError("boom"), ["c"])

    async def run():
        ok = await cache.query(PATIENTS, fetch)
        failed = await cache.query(PATIENTS, fetch)
        recovered = await cache.query(PATIENTS, fetch)
        return ok, failed, recovered

    ok, failed, recovered = asyncio.run(run())
    assert ok.status == "ready"
    assert failed.data == ["a"]
    assert str(failed.error) == "boom"
    assert failed.status == "error"
    assert recovered.data == ["c"]
    assert recovered.error is None


def test_first_failure_has_no_data():
    cache = QueryCache()
    result = asyncio.run(cache.query(PATIENTS, CountingFetcher(RuntimeError("down"))))
    assert result.data is None
    assert not result.is_loading
    assert result.status == "error"


def test_subscription_refreshes_on_its_timer():
    cache = QueryCache(dedupe_interval=0)
    seen = []

    async def run():
        enough = asyncio.Event()
        fetch = CountingFetcher({"todaysVisits": 1}, {"todaysVisits": 2})

        def listener(result):
            if result.status == "ready" and not result.is_validating:
                seen.append(result.data)
                if len(seen) >= 2:
                    enough.set()

        subscription = cache.subscribe(PATIENTS, fetch, refresh_interval=0.01, listener=listener)
        await asyncio.wait_for(enough.wait(), timeout=2)
        subscription.close()
        await cache.aclose()

    asyncio.run(run())
    assert seen[:2] == [{"todaysVisits": 1}, {"todaysVisits": 2}]


def test_subscription_sees_loading_then_data():
    cache = QueryCache()
    statuses = []

    async def run():
        subscription = cache.subscribe(PATIENTS, CountingFetcher(["a"]), listener=lambda r: statuses.append(r.status))
        await asyncio.sleep(0.01)
        assert subscription.result.data == ["a"]
        subscription.close()

    asyncio.run(run())
    assert statuses == ["loading", "ready"]


def test_closed_subscription_ignores_later_results():
    cache = QueryCache(dedupe_interval=0)
    delivered = []

    async def run():
        fetch = CountingFetcher(["a"], ["b"])
        subscription = cache.subscribe(PATIENTS, fetch, listener=delivered.append)
        await asyncio.sleep(0.01)
        count = len(delivered)
        subscription.close()
        await cache.query(PATIENTS, fetch)
        return count

    count = asyncio.run(run())
    assert len(delivered) == count
    assert cache.peek(PATIENTS).data == ["b"]


def test_close_during_fetch_drops_the_result():
    cache = QueryCache()
    delivered = []

    async def run():
        release = asyncio.Event()

        async def fetch():
            await release.wait()
            return ["late"]

        subscription = cache.subscribe(PATIENTS, fetch, listener=delivered.append)
        await asyncio.sleep(0)
        subscription.close()
        release.set()
        await cache.query(PATIENTS, fetch)

    asyncio.run(run())
    assert all(result.data is None for result in delivered)


def test_invalidate_refetches_live_keys_of_named_families():
    cache = QueryCache(dedupe_interval=60)
    patients = CountingFetcher(["a"], ["a", "b"])
    users = CountingFetcher(["root"])

    async def run():
        first = cache.subscribe(PATIENTS, patients)
        second = cache.subscribe(USERS, users)
        await asyncio.sleep(0.01)
        await cache.invalidate({QueryFamily.PATIENT_LIST})
        result = cache.peek(PATIENTS)
        first.close()
        second.close()
        return result

    result = asyncio.run(run())
    assert result.data == ["a", "b"]
    assert patients.calls == 2
    assert users.calls == 1


def test_invalidate_marks_unwatched_keys_stale():
    cache = QueryCache(dedupe_interval=60)
    fetch = CountingFetcher(["a"], ["b"])

    async def run():
        await cache.query(PATIENTS, fetch)
        await cache.invalidate([QueryFamily.PATIENT_LIST])
        assert fetch.calls == 1
        return await cache.query(PATIENTS, fetch)

    assert asyncio.run(run()).data == ["b"]
    assert fetch.calls == 2


def test_invalidate_nothing_is_a_no_op():
    cache = QueryCache(dedupe_interval=60)
    fetch = CountingFetcher(["a"])

    async def run():
        await cache.query(PATIENTS, fetch)
        await cache.invalidate([])
        return await cache.query(PATIENTS, fetch)

    assert asyncio.run(run()).data == ["a"]
    assert fetch.calls == 1


def test_refresh_start_is_marked_validating():
    cache = QueryCache(dedupe_interval=0)
    seen = []

    async def run():
        subscription = cache.subscribe(
            PATIENTS, CountingFetcher(["a"], ["b"]),
            listener=lambda r: seen.append((r.status, r.is_validating, r.data)),
        )
        await asyncio.sleep(0.01)
        await cache.revalidate(PATIENTS, subscription.fetcher)
        subscription.close()

    asyncio.run(run())
    assert seen == [
        ("loading", True, None),
        ("ready", False, ["a"]),
        ("ready", True, ["a"]),
        ("ready", False, ["b"]),
    ]


def _server_fetch(server, calls, started, release):
    async def fetch():
        rows = list(server)
        calls.append(rows)
        if len(calls) == 1:
            started.set()
            await release.wait()
        return rows
    return fetch


def test_invalidation_discards_fetch_started_before_it():
    cache = QueryCache(dedupe_interval=60)
    server = ["a"]
    calls = []

    async def run():
        started, release = asyncio.Event(), asyncio.Event()
        fetch = _server_fetch(server, calls, started, release)
        subscription = cache.subscribe(PATIENTS, fetch)
        await asyncio.wait_for(started.wait(), timeout=1)

        server.append("b")
        invalidating = asyncio.create_task(cache.invalidate([QueryFamily.PATIENT_LIST]))
        await asyncio.sleep(0)
        release.set()
        await invalidating
        await asyncio.sleep(0.01)

        result = await cache.query(PATIENTS, fetch)
        watched = subscription.result
        subscription.close()
        return result, watched

    result, watched = asyncio.run(run())
    assert result.data == ["a", "b"]
    assert watched.data == ["a", "b"]
    assert calls == [["a"], ["a", "b"]]


def test_unwatched_key_invalidated_mid_fetch_is_refetched():
    cache = QueryCache(dedupe_interval=60)
    server = ["a"]
    calls = []

    async def run():
        started, release = asyncio.Event(), asyncio.Event()
        fetch = _server_fetch(server, calls, started, release)
        first = asyncio.create_task(cache.query(PATIENTS, fetch))
        await asyncio.wait_for(started.wait(), timeout=1)

        server.append("b")
        await cache.invalidate([QueryFamily.PATIENT_LIST])
        release.set()
        joined = await first
        later = await cache.query(PATIENTS, fetch)
        return joined, later

    joined, later = asyncio.run(run())
    assert joined.data == ["a", "b"]
    assert later.data == ["a", "b"]
    assert calls == [["a"], ["a", "b"]]
