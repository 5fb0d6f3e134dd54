"""In-memory fetch/cache orchestration for paginated resource lists."""

import asyncio
import itertools
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from dac.core.constants import CacheLimits
from dac.core.errors import ClassifiedError, ErrorKind, classify
from dac.exceptions import DACError
from dac.models.cache import CacheEntry, CacheStats, CacheStatus
from dac.models.page import QueryKey, ResourcePage, ResourceQuery

logger = logging.getLogger(__name__)

Fetcher = Callable[[ResourceQuery], Awaitable[ResourcePage]]
KeyPredicate = Callable[[QueryKey], bool]


@dataclass
class _InFlight:
    """A request issued for one cache key."""

    request_id: int
    query: ResourceQuery
    previous_status: CacheStatus
    slots: set[str] = field(default_factory=set)
    anonymous: bool = False  # issued or joined by a caller without a slot
    superseded: bool = False  # the key was invalidated after this request was issued
    task: asyncio.Task[None] | None = None


class ResourceQueryStore:
    """Keyed cache of list pages with request de-duplication and a staleness guard.

    Entries move ``idle -> loading -> success|error`` on first use and
    ``success|error -> fetching -> success|error`` afterwards; during
    ``fetching`` the previous page stays visible.

    A UI *slot* names the place a list is shown (a screen, a widget). The store
    remembers the key each slot currently wants; a response whose slots have
    all moved on to other keys is dropped, and so is any response overtaken by
    a newer request for the same key.

    All state is touched from the event loop thread only.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        max_entries: int = CacheLimits.MAX_ENTRIES,
        stale_after: float = CacheLimits.STALE_AFTER_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self.max_entries = max(1, max_entries)
        self.stale_after = stale_after
        self._clock = clock

        self._entries: OrderedDict[QueryKey, CacheEntry] = OrderedDict()
        self._in_flight: dict[QueryKey, _InFlight] = {}
        self._desired: dict[str, QueryKey] = {}
        self._request_ids = itertools.count(1)
        self._stats = CacheStats()

    def get(self, query: ResourceQuery, slot: str | None = None) -> CacheEntry:
        """Return the entry for ``query``, starting a background request if needed.

        Must be called from a running event loop. The returned value is a
        snapshot; call again (or use ``fetch``) to observe progress.
        """
        entry = self._prepare(query, slot)
        self._ensure_request(query, entry, slot)
        return entry.model_copy()

    async def fetch(self, query: ResourceQuery, slot: str | None = None, force: bool = False) -> CacheEntry:
        """Like ``get``, then wait for the key's in-flight request to settle.

        Args:
            query: The list query
            slot: UI slot the result is for
            force: Issue a new request even if the cached page is fresh

        Returns:
            Snapshot of the entry after the request settled (or was discarded)

        """
        entry = self._prepare(query, slot)
        in_flight = self._ensure_request(query, entry, slot, force=force)
        if in_flight is not None and in_flight.task is not None:
            # A waiter being cancelled must not cancel the shared request
            await asyncio.shield(in_flight.task)
        current = self._entries.get(query.key)
        return (current or entry).model_copy()

    def peek(self, query: ResourceQuery) -> CacheEntry | None:
        """Return a snapshot of the entry without touching recency or fetching."""
        entry = self._entries.get(query.key)
        return entry.model_copy() if entry else None

    def desired_key(self, slot: str) -> QueryKey | None:
        return self._desired.get(slot)

    def release(self, slot: str) -> None:
        """Forget a slot, e.g. when its screen closes."""
        self._desired.pop(slot, None)

    def invalidate(self, predicate: KeyPredicate) -> int:
        """Mark matching entries stale so the next ``get`` refetches them.

        Cached data stays visible until the refetch settles.

        Returns:
            Number of entries marked

        """
        count = 0
        for key, entry in self._entries.items():
            if not predicate(key):
                continue
            entry.invalidated = True
            in_flight = self._in_flight.get(key)
            if in_flight is not None:
                in_flight.superseded = True
            count += 1

        self._stats.invalidations += count
        logger.debug(f"Invalidated {count} cache entries")
        return count

    def invalidate_resource(self, *resource_types: str) -> int:
        """Invalidate every cached page of the given resource families."""
        families = set(resource_types)
        count = self.invalidate(lambda key: key.resource_type in families)
        if count:
            logger.info(f"Invalidated {count} cached pages for {', '.join(sorted(families))}")
        return count

    def evict(self, predicate: KeyPredicate) -> int:
        """Drop matching entries that have no request in flight."""
        keys = [key for key in self._entries if predicate(key) and key not in self._in_flight]
        for key in keys:
            del self._entries[key]
        self._stats.evictions += len(keys)
        return len(keys)

    async def wait_idle(self) -> None:
        """Wait until no request is in flight."""
        while self._in_flight:
            tasks = [f.task for f in self._in_flight.values() if f.task is not None]
            if not tasks:
                return
            await asyncio.gather(*(asyncio.shield(t) for t in tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding requests and drop all state."""
        tasks = [f.task for f in self._in_flight.values() if f.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.clear()

    def clear(self) -> None:
        self._entries.clear()
        self._in_flight.clear()
        self._desired.clear()

    def stats(self) -> CacheStats:
        stats = self._stats.model_copy()
        stats.entries = len(self._entries)
        stats.in_flight = len(self._in_flight)
        stats.resource_types = sorted({key.resource_type for key in self._entries})
        return stats

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, query: object) -> bool:
        return isinstance(query, ResourceQuery) and query.key in self._entries

    def _prepare(self, query: ResourceQuery, slot: str | None) -> CacheEntry:
        key = query.key
        if slot is not None:
            self._desired[slot] = key

        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
            self._entries[key] = entry
            self._evict_overflow(keep=key)
        else:
            self._entries.move_to_end(key)
        return entry

    def _needs_request(self, entry: CacheEntry) -> bool:
        if entry.invalidated or entry.status == CacheStatus.IDLE:
            return True
        if entry.updated_at is None:
            return entry.in_flight_request_id is None
        return self._clock() - entry.updated_at >= self.stale_after

    def _ensure_request(
        self, query: ResourceQuery, entry: CacheEntry, slot: str | None, force: bool = False
    ) -> _InFlight | None:
        in_flight = self._in_flight.get(query.key)

        if in_flight is not None and not in_flight.superseded:
            # Attach to the request already running for this key
            self._stats.deduplicated += 1
            self._join(in_flight, slot)
            logger.debug(f"Joined in-flight request #{in_flight.request_id} for {query.resource_type}")
            return in_flight

        if not force and in_flight is None and not self._needs_request(entry):
            return None

        return self._start(query, entry, slot)

    def _join(self, in_flight: _InFlight, slot: str | None) -> None:
        if slot is None:
            in_flight.anonymous = True
        else:
            in_flight.slots.add(slot)

    def _start(self, query: ResourceQuery, entry: CacheEntry, slot: str | None) -> _InFlight:
        request_id = next(self._request_ids)
        in_flight = _InFlight(request_id=request_id, query=query, previous_status=self._settled_status(entry))
        self._join(in_flight, slot)

        entry.status = CacheStatus.LOADING if entry.updated_at is None else CacheStatus.FETCHING
        entry.in_flight_request_id = request_id

        self._in_flight[query.key] = in_flight
        self._stats.requests += 1
        in_flight.task = asyncio.create_task(self._run(in_flight), name=f"dac-fetch-{request_id}")

        logger.debug(f"Request #{request_id} for {query.resource_type} page {query.page} ({entry.status})")
        return in_flight

    async def _run(self, in_flight: _InFlight) -> None:
        settled = False
        try:
            try:
                page = await self._fetcher(in_flight.query)
            except DACError as e:
                error = classify(e)
                logger.warning(f"Fetching {in_flight.query.resource_type} failed: {error.kind} ({error.message})")
                self._settle(in_flight, None, error)
            except Exception as e:
                # get() callers never await this task
                logger.exception(f"Unexpected error fetching {in_flight.query.resource_type}")
                error = ClassifiedError(
                    kind=ErrorKind.SERVER_ERROR,
                    message=f"Unexpected error: {e}" if str(e) else f"Unexpected {type(e).__name__}",
                )
                self._settle(in_flight, None, error)
            else:
                self._settle(in_flight, page, None)
            settled = True
        finally:
            if not settled:
                self._abandon(in_flight)

    def _settle(self, in_flight: _InFlight, page: ResourcePage | None, error: ClassifiedError | None) -> None:
        key = in_flight.query.key
        if self._in_flight.get(key) is in_flight:
            del self._in_flight[key]

        entry = self._entries.get(key)
        if entry is None:
            self._discard(in_flight, "entry no longer cached")
            return

        if entry.in_flight_request_id != in_flight.request_id:
            self._discard(in_flight, "a newer request was issued for the same key")
            return

        if self._slots_moved_on(in_flight):
            entry.status = in_flight.previous_status
            entry.in_flight_request_id = None
            self._discard(in_flight, "its slots now show other filters")
            return

        entry.in_flight_request_id = None
        entry.updated_at = self._clock()
        entry.invalidated = in_flight.superseded
        if error is not None:
            entry.status = CacheStatus.ERROR
            entry.last_error = error
        else:
            entry.status = CacheStatus.SUCCESS
            entry.data = page
            entry.last_error = None

    @staticmethod
    def _settled_status(entry: CacheEntry) -> CacheStatus:
        """The status to fall back to if the next request is discarded."""
        if entry.status not in (CacheStatus.LOADING, CacheStatus.FETCHING):
            return entry.status
        if entry.updated_at is None:
            return CacheStatus.IDLE
        return CacheStatus.ERROR if entry.last_error is not None else CacheStatus.SUCCESS

    def _abandon(self, in_flight: _InFlight) -> None:
        """Undo a request that ended without settling (cancelled or crashed)."""
        key = in_flight.query.key
        if self._in_flight.get(key) is in_flight:
            del self._in_flight[key]
        entry = self._entries.get(key)
        if entry is not None and entry.in_flight_request_id == in_flight.request_id:
            entry.status = in_flight.previous_status
            entry.in_flight_request_id = None

    def _slots_moved_on(self, in_flight: _InFlight) -> bool:
        if in_flight.anonymous or not in_flight.slots:
            return False
        key = in_flight.query.key
        return all(self._desired.get(slot) != key for slot in in_flight.slots)

    def _discard(self, in_flight: _InFlight, reason: str) -> None:
        self._stats.discarded += 1
        logger.info(f"Discarded response #{in_flight.request_id} for {in_flight.query.resource_type}: {reason}")

    def _evict_overflow(self, keep: QueryKey) -> None:
        while len(self._entries) > self.max_entries:
            victim = next((key for key in self._entries if key != keep and key not in self._in_flight), None)
            if victim is None:
                return
            del self._entries[victim]
            self._stats.evictions += 1
            logger.debug(f"Evicted least recently used page of {victim.resource_type}")
