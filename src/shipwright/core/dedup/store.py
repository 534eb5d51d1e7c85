from __future__ import annotations

from pathlib import Path
from typing import Protocol
from uuid import uuid4

from pydantic import BaseModel, Field

from shipwright.core.storage.jsonl import JsonlStore


class DailyPostRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    post_type: str
    day: str
    created_at: str
    correlation_id: str | None = None


class DailyPostStore(Protocol):
    def exists(self, post_type: str, day: str) -> bool: ...

    def insert(self, record: DailyPostRecord) -> None: ...


class JsonlDailyPostStore:
    def __init__(self, state_dir: Path) -> None:
        self._store: JsonlStore[DailyPostRecord] = JsonlStore(state_dir, "daily_posts.jsonl", DailyPostRecord)

    def exists(self, post_type: str, day: str) -> bool:
        return any(record.post_type == post_type and record.day == day for record in self._store.load_all())

    def insert(self, record: DailyPostRecord) -> None:
        self._store.append(record)

    def list_for_day(self, day: str) -> list[DailyPostRecord]:
        return [record for record in self._store.load_all() if record.day == day]
