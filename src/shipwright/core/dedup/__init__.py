from .cache import DedupCache, InMemoryDedupCache
from .guard import DedupGuard, content_key
from .store import DailyPostRecord, DailyPostStore, JsonlDailyPostStore

__all__ = [
    "DailyPostRecord",
    "DailyPostStore",
    "DedupCache",
    "DedupGuard",
    "InMemoryDedupCache",
    "JsonlDailyPostStore",
    "content_key",
]
