"""
Cache-and-revalidate layer for read queries.

Every read is cached under its QueryKey (the request URL plus the family it
belongs to). Concurrent reads of one key share a single in-flight task. Data
is refreshed by per-subscription timers and by explicit invalidation after
mutations; the two are independent and unordered. A fetch that was already in
flight when its key was invalidated never lands in the cache.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional

from clinic_portal.services.invalidation import QueryFamily

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[["QueryResult"], None]


@dataclass(frozen=True)
class QueryKey:
    family: QueryFamily
    url: str


@dataclass(frozen=True)
class QueryResult:
    data: Any = None
    error: Optional[BaseException] = None
    is_loading: bool = False
    # A fetch is in flight, possibly while older data is still shown
    is_validating: bool = False

    @property
    def status(self) -> str:
        if self.is_loading:
            return "loading"
        if self.error is not None:
            return "error"
        if self.data is None or self.data == [] or self.data == {}:
            return "empty"
        return "ready"


@dataclass
class _Entry:
    data: Any = None
    error: Optional[BaseException] = None
    fetched_at: Optional[float] = None
    task: Optional[asyncio.Task] = None
    # Bumped by invalidate; results of older fetches are discarded
    generation: int = 0
    task_generation: int = 0
    subscriptions: set = field(default_factory=set)


class Subscription:
    """A live consumer of one key. Closing it stops its timer and its callbacks."""

    def __init__(self, cache: "QueryCache", key: QueryKey, fetcher: Fetcher,
                 refresh_interval: Optional[float], listener: Optional[Listener]):
        self.cache = cache
        self.key = key
        self.fetcher = fetcher
        self.refresh_interval = refresh_interval
        self.listener = listener
        self.closed = False
        self._timer: Optional[asyncio.Task] = None

    def start(self) -> None:
        self._timer = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        await self.cache.query(self.key, self.fetcher)
        if not self.refresh_interval:
            return
        while not self.closed:
            await asyncio.sleep(self.refresh_interval)
            await self.cache.revalidate(self.key, self.fetcher)

    def deliver(self, result: QueryResult) -> None:
        if self.closed or self.listener is None:
            return
        self.listener(result)

    @property
    def result(self) -> QueryResult:
        return self.cache.peek(self.key)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.cache._detach(self)
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()


class QueryCache:
    def __init__(self, dedupe_interval: float = 2.0, clock: Callable[[], float] = time.monotonic):
        self.dedupe_interval = dedupe_interval
        self.clock = clock
        self._entries: dict[QueryKey, _Entry] = {}

    def _entry(self, key: QueryKey) -> _Entry:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        return entry

    def peek(self, key: QueryKey) -> QueryResult:
        entry = self._entries.get(key)
        if entry is None:
            return QueryResult()
        return QueryResult(
            data=entry.data,
            error=entry.error,
            is_loading=entry.task is not None and entry.data is None and entry.error is None,
            is_validating=entry.task is not None,
        )

    def is_fresh(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.fetched_at is None:
            return False
        return self.clock() - entry.fetched_at < self.dedupe_interval

    async def query(self, key: QueryKey, fetcher: Fetcher) -> QueryResult:
        if self.is_fresh(key):
            return self.peek(key)
        return await self.revalidate(key, fetcher)

    async def revalidate(self, key: QueryKey, fetcher: Fetcher) -> QueryResult:
        entry = self._entry(key)
        while True:
            if entry.task is None or entry.task_generation != entry.generation:
                entry.task_generation = entry.generation
                entry.task = asyncio.get_running_loop().create_task(
                    self._fetch(key, entry, fetcher, entry.generation)
                )
                self._notify(key)
            task, generation = entry.task, entry.task_generation
            await asyncio.shield(task)
            if generation == entry.generation:
                return self.peek(key)
            # The fetch we joined was invalidated meanwhile; settle on a current one.
            if entry.task is None and entry.task_generation == entry.generation:
                return self.peek(key)

    async def _fetch(self, key: QueryKey, entry: _Entry, fetcher: Fetcher, generation: int) -> None:
        try:
            data = await fetcher()
        except Exception as e:
            if generation == entry.generation:
                logger.warning("Query %s failed: %s", key.url, e)
                entry.error = e
        else:
            if generation == entry.generation:
                entry.data = data
                entry.error = None
                entry.fetched_at = self.clock()
            else:
                logger.debug("Discarding result for %s fetched before invalidation", key.url)
        finally:
            if entry.task is asyncio.current_task():
                entry.task = None
        if generation == entry.generation:
            self._notify(key)

    def _notify(self, key: QueryKey) -> None:
        entry = self._entries.get(key)
        if entry is None or not entry.subscriptions:
            return
        result = self.peek(key)
        for subscription in list(entry.subscriptions):
            subscription.deliver(result)

    def subscribe(self, key: QueryKey, fetcher: Fetcher, refresh_interval: Optional[float] = None,
                  listener: Optional[Listener] = None) -> Subscription:
        subscription = Subscription(self, key, fetcher, refresh_interval, listener)
        self._entry(key).subscriptions.add(subscription)
        subscription.start()
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        entry = self._entries.get(subscription.key)
        if entry is not None:
            entry.subscriptions.discard(subscription)

    async def invalidate(self, families: Iterable[QueryFamily]) -> None:
        families = set(families)
        if not families:
            return
        pending = []
        for key, entry in list(self._entries.items()):
            if key.family not in families:
                continue
            entry.generation += 1
            entry.fetched_at = None
            live = next(iter(entry.subscriptions), None)
            if live is not None:
                pending.append(self.revalidate(key, live.fetcher))
        logger.debug("Invalidated %s (%d live keys)", sorted(f.value for f in families), len(pending))
        if pending:
            await asyncio.gather(*pending)

    async def aclose(self) -> None:
        timers = []
        for entry in self._entries.values():
            for subscription in list(entry.subscriptions):
                timers.append(subscription._timer)
                subscription.close()
        timers = [t for t in timers if t is not None]
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
