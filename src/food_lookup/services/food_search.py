"""Food search service over Open Food Facts.

Searches are deduplicated per normalized query, gated by the shared rate-limit
guard and retried according to the retry policy. Failures never reach callers:
an exhausted or rejected lookup resolves to an empty list, and the outcome of
the latest fetch for each query is kept as a ``FetchReport`` for diagnostics.
"""

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial

from food_lookup.adapters.off_client import MAX_PAGE_SIZE, OffClient, classify_response
from food_lookup.domain.errors import FoodLookupError, RateLimitedError
from food_lookup.domain.foods import FoodRecord, RetryAttempt, search_key
from food_lookup.services.cache import ResultCache
from food_lookup.services.deduplicator import RequestDeduplicator
from food_lookup.services.mapper import map_search_response
from food_lookup.services.rate_limit import RateLimitGuard
from food_lookup.services.retry import FetchState, RetryPolicy

_logger = logging.getLogger(__name__)

MAX_REPORTS = 256

SearchCallback = Callable[[list[FoodRecord]], None]
Dispatch = Callable[[Callable[[], None]], None]
SearchFuture = asyncio.Future | concurrent.futures.Future


@dataclass(frozen=True)
class FetchReport:
    """State and last error of the most recent fetch for one search key."""

    key: str
    state: FetchState
    error: FoodLookupError | None = None


def _new_deduplicator() -> RequestDeduplicator[list[FoodRecord]]:
    return RequestDeduplicator(cancelled_result=list)


@dataclass
class FoodSearchService:
    """Deduplicated, rate-limit aware food search."""

    client: OffClient
    rate_limit_guard: RateLimitGuard
    retry_policy: RetryPolicy
    cache: ResultCache | None = None
    cache_ttl_seconds: float = 0
    max_page_size: int = MAX_PAGE_SIZE
    min_query_length: int = 2
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    dispatch: Dispatch | None = None
    debug: bool = False
    deduplicator: RequestDeduplicator[list[FoodRecord]] = field(
        default_factory=_new_deduplicator, init=False
    )
    _reports: dict[str, FetchReport] = field(
        default_factory=dict, init=False, repr=False
    )
    _reports_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _loop: asyncio.AbstractEventLoop | None = field(
        default=None, init=False, repr=False
    )

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Set the event loop used for callbacks issued from other threads."""
        self._loop = loop

    async def search(self, query: str, limit: int = 50) -> list[FoodRecord]:
        """Search foods; concurrent calls for the same query share one fetch.

        Callers on other threads and event loops join the same fetch.
        """
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.get_running_loop()
        key = search_key(query)
        if len(key) < self.min_query_length:
            return []
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached:
                return cached
        page_size = max(1, min(limit, self.max_page_size))
        return await self.deduplicator.run(
            key, partial(self._fetch, key, query, page_size)
        )

    def search_foods(self, query: str, limit: int, callback: SearchCallback) -> None:
        """Callback flavour of ``search``.

        Safe to call from any thread. Never raises; ``callback`` runs exactly
        once on the service's event loop (or through ``dispatch`` if set).
        """
        if len(search_key(query)) < self.min_query_length:
            self._deliver(callback, [])
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None:
            task = running.create_task(self.search(query, limit))
            task.add_done_callback(partial(self._deliver_future, callback, query))
            return
        loop = self._loop
        if loop is None or loop.is_closed() or not loop.is_running():
            _logger.warning("No running event loop for food search %r", query)
            self._deliver(callback, [])
            return
        future = asyncio.run_coroutine_threadsafe(self.search(query, limit), loop)
        future.add_done_callback(partial(self._deliver_future, callback, query))

    def search_cached(self, query: str) -> list[FoodRecord]:
        """Return cached results only; never touches the network."""
        if self.cache is None:
            return []
        return self.cache.get(search_key(query)) or []

    def clear_cache(self, query: str | None = None) -> None:
        """Forget cached results for one query, or for all queries."""
        if self.cache is None:
            return
        if query is None:
            self.cache.clear()
        else:
            self.cache.delete(search_key(query))

    def report_for(self, query: str) -> FetchReport | None:
        """Outcome of the latest fetch for ``query``, if one has run."""
        with self._reports_lock:
            return self._reports.get(search_key(query))

    async def aclose(self) -> None:
        """Cancel running fetches; their waiters still get an empty list."""
        await self.deduplicator.cancel_all()

    async def _fetch(self, key: str, query: str, page_size: int) -> list[FoodRecord]:
        attempt = RetryAttempt(
            query_text=query.strip(),
            limit=page_size,
            attempt_number=0,
            max_attempts=self.retry_policy.max_attempts,
        )
        error: FoodLookupError | None = None
        while True:
            self._report(key, FetchState.ATTEMPTING, error)
            try:
                records = await self._attempt(attempt)
            except FoodLookupError as exc:
                error = exc
                decision = self.retry_policy.decide(exc, attempt.attempt_number)
                self._report(key, decision.next_state, error)
                _logger.warning(
                    "Food search %r failed (attempt %s/%s, error=%s): %s",
                    key,
                    attempt.attempt_number + 1,
                    attempt.max_attempts,
                    _describe(exc),
                    exc,
                )
                if not decision.retry:
                    return []
                await self.sleep(decision.delay_seconds)
                attempt = attempt.next()
                continue
            except Exception:
                _logger.exception("Unexpected error in food search %r", key)
                self._report(key, FetchState.FAILED, error)
                return []
            self._report(key, FetchState.SUCCEEDED, error)
            if self.cache is not None and self.cache_ttl_seconds > 0:
                self.cache.set(key, records, ttl_seconds=self.cache_ttl_seconds)
            if self.debug:
                _logger.info("Food search %r: results=%s", key, len(records))
            return records

    async def _attempt(self, attempt: RetryAttempt) -> list[FoodRecord]:
        remaining = self.rate_limit_guard.check_allowed()
        if remaining is not None:
            raise RateLimitedError(remaining, from_guard=True)
        raw = await self.client.fetch(attempt.query_text, attempt.limit)
        try:
            body = classify_response(raw)
        except RateLimitedError as exc:
            exc.retry_after = self.rate_limit_guard.record_rate_limited(
                exc.retry_after
            )
            raise
        return map_search_response(body, attempt.query_text)

    def _report(
        self, key: str, state: FetchState, error: FoodLookupError | None
    ) -> None:
        with self._reports_lock:
            self._reports.pop(key, None)
            self._reports[key] = FetchReport(key=key, state=state, error=error)
            if len(self._reports) > MAX_REPORTS:
                del self._reports[next(iter(self._reports))]

    def _deliver_future(
        self,
        callback: SearchCallback,
        query: str,
        future: SearchFuture,
    ) -> None:
        if future.cancelled():
            self._deliver(callback, [])
            return
        exc = future.exception()
        if exc is not None:
            _logger.error("Food search %r raised %r", query, exc)
            self._deliver(callback, [])
            return
        self._deliver(callback, future.result())

    def _deliver(self, callback: SearchCallback, records: list[FoodRecord]) -> None:
        if self.dispatch is not None:
            self.dispatch(partial(_invoke, callback, records))
            return
        _invoke(callback, records)


def _describe(exc: FoodLookupError) -> str:
    if isinstance(exc, RateLimitedError):
        return "blocked by rate-limit window" if exc.from_guard else "HTTP 429"
    return type(exc).__name__


def _invoke(callback: SearchCallback, records: list[FoodRecord]) -> None:
    try:
        callback(records)
    except Exception:
        _logger.exception("Food search callback failed")
