"""
Stale-while-revalidate data loading on top of LocalCache.
"""
import logging
import threading
from concurrent.futures import Executor, Future
from typing import Any, Callable, Optional

from bento_api.client.cache import LocalCache, is_data_changed

logger = logging.getLogger(__name__)


class CachedFetch:
    """
    Serve cached data immediately and refresh it from the server.

    `load()` returns whatever is cached and revalidates in the background
    (on `executor`) or inline when no executor is given. Only one
    revalidation runs at a time per instance; fetch failures keep the cached
    data. `update_data()` is the hook for optimistic patches.
    """

    def __init__(
        self,
        cache_key: str,
        fetch_fn: Callable[[], Any],
        cache: LocalCache,
        skip_cache: bool = False,
        on_data_change: Optional[Callable[[Any], None]] = None,
        executor: Optional[Executor] = None,
    ):
        self.cache_key = cache_key
        self.fetch_fn = fetch_fn
        self.cache = cache
        self.skip_cache = skip_cache
        self.on_data_change = on_data_change
        self.executor = executor

        self.data: Any = None
        self.loading = True
        self.error: Optional[Exception] = None
        self._fetching = threading.Lock()
        self._pending: Optional[Future] = None

    def _fetch_fresh(self) -> Any:
        if not self._fetching.acquire(blocking=False):
            return self.data

        try:
            fresh = self.fetch_fn()
            if self.data is None or is_data_changed(self.data, fresh):
                self.data = fresh
                if self.on_data_change:
                    self.on_data_change(fresh)
            self.cache.set(self.cache_key, fresh)
            self.error = None
        except Exception as e:
            logger.error(f"Error fetching data for {self.cache_key}: {e}")
            self.error = e
        finally:
            self.loading = False
            self._fetching.release()

        return self.data

    def _revalidate(self) -> None:
        if self.executor is not None:
            self._pending = self.executor.submit(self._fetch_fresh)
        else:
            self._fetch_fresh()

    def load(self) -> Any:
        """
        Return cached data right away (revalidating it), or fetch when there is none.
        """
        cached = None if self.skip_cache else self.cache.get(self.cache_key)
        if cached is not None:
            snapshot = cached
            self.data = cached
            self.loading = False
            self._revalidate()
            return snapshot

        return self._fetch_fresh()

    def refetch(self) -> Any:
        """Fetch from the server, ignoring the cache."""
        return self._fetch_fresh()

    def wait(self, timeout: Optional[float] = None) -> Any:
        """Block until a background revalidation (if any) finishes."""
        if self._pending is not None:
            self._pending.result(timeout=timeout)
            self._pending = None
        return self.data

    def invalidate(self) -> None:
        self.cache.clear(self.cache_key)

    def update_data(self, data: Any) -> None:
        """Replace data locally and in the cache without asking the server."""
        self.data = data
        self.cache.set(self.cache_key, data)
