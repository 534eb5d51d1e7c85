from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generic, Iterator, TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)

logger = logging.getLogger("shipwright.storage")


class JsonlStore(Generic[M]):
    """One pydantic record per line, with a lock file around read-modify-write."""

    def __init__(self, state_dir: Path, filename: str, model: type[M], lock_timeout_s: float = 2.0) -> None:
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.state_dir / filename
        self.lock_path = self.path.with_suffix(".lock")
        self.model = model
        self.lock_timeout_s = lock_timeout_s
        self.lock_mode = os.getenv("SHIPWRIGHT_STORE_LOCK_MODE", "file").casefold()

    def load_all(self) -> list[M]:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return []

        records: list[M] = []
        with self.path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(self.model.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValidationError):
                    logger.warning("store_corrupt_line_skipped", extra={"extra_fields": {"file": self.path.name}})
                    continue
        return records

    def append(self, record: M) -> M:
        with self.locked():
            self._append(record)
        return record

    def rewrite(self, records: list[M]) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            for record in records:
                handle.write(record.model_dump_json())
                handle.write("\n")
        tmp_path.replace(self.path)

    def mutate(self, fn: Callable[[list[M]], bool]) -> None:
        """Apply ``fn`` to all records under the lock; persist when it returns True."""
        with self.locked():
            records = self.load_all()
            if fn(records):
                self.rewrite(records)

    def trim(self, max_records: int) -> None:
        if max_records <= 0:
            return
        with self.locked():
            records = self.load_all()
            if len(records) <= max_records:
                return
            self.rewrite(records[-max_records:])

    def _append(self, record: M) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(record.model_dump_json())
            handle.write("\n")

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the lock file for the duration of the block.

        A lock file older than ``lock_timeout_s`` is left over from a crashed
        writer and is removed. If the lock is still contended at the deadline
        the block runs without it and ``store_lock_timeout`` is logged.
        """
        if self.lock_mode != "file":
            yield
            return

        acquired = False
        deadline = time.monotonic() + self.lock_timeout_s
        while True:
            try:
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.close(fd)
                acquired = True
                break
            except FileExistsError:
                if self._break_stale_lock():
                    continue
                if time.monotonic() >= deadline:
                    logger.warning("store_lock_timeout", extra={"extra_fields": {"file": self.path.name}})
                    break
                time.sleep(0.01)

        try:
            yield
        finally:
            if acquired:
                try:
                    self.lock_path.unlink()
                except FileNotFoundError:
                    pass

    def _break_stale_lock(self) -> bool:
        try:
            age_s = time.time() - self.lock_path.stat().st_mtime
        except FileNotFoundError:
            return True
        if age_s <= self.lock_timeout_s:
            return False
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass
        logger.warning(
            "store_lock_stale_broken",
            extra={"extra_fields": {"file": self.path.name, "age_s": round(age_s, 3)}},
        )
        return True
