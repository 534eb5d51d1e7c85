from __future__ import annotations

import hashlib
import logging

from shipwright.core.clock import Clock, utc_now

from .cache import DedupCache, InMemoryDedupCache
from .store import DailyPostRecord, DailyPostStore


def content_key(text: str) -> str:
    digest = hashlib.sha256(text.strip().encode("utf-8")).hexdigest()
    return f"content:{digest[:32]}"


class DedupGuard:
    """Suppresses a scheduled side effect that already happened this UTC day.

    The in-process cache answers first. On a cache miss the durable store is
    consulted; if it cannot be reached the guard fails open and allows the
    action. Writes always land in the cache, store write failures are logged.
    """

    def __init__(self, store: DailyPostStore, cache: DedupCache | None = None, clock: Clock | None = None) -> None:
        self.store = store
        self.clock = clock or utc_now
        self.cache = cache if cache is not None else InMemoryDedupCache(clock=self.clock)
        self.logger = logging.getLogger("shipwright.dedup")

    def _day(self) -> str:
        return self.clock().date().isoformat()

    @staticmethod
    def _cache_key(key: str, day: str) -> str:
        return f"{key}@{day}"

    def has_posted_today(self, key: str) -> bool:
        day = self._day()
        cache_key = self._cache_key(key, day)
        if self.cache.get(cache_key) is not None:
            return True

        try:
            found = self.store.exists(key, day)
        except Exception as exc:
            self.logger.warning(
                "dedup_store_unreachable",
                extra={"extra_fields": {"key": key, "day": day, "error": str(exc)}},
            )
            return False

        if found:
            self.cache.set(cache_key, self.clock().isoformat())
        return found

    def record_daily_post(self, key: str, correlation_id: str | None = None) -> None:
        now = self.clock()
        day = now.date().isoformat()
        self.cache.set(self._cache_key(key, day), now.isoformat())
        try:
            self.store.insert(
                DailyPostRecord(post_type=key, day=day, created_at=now.isoformat(), correlation_id=correlation_id)
            )
        except Exception as exc:
            self.logger.error(
                "dedup_record_failed",
                extra={"extra_fields": {"key": key, "day": day, "error": str(exc)}},
            )
