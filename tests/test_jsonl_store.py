from __future__ import annotations

import os
import time

from pydantic import BaseModel

from shipwright.core.storage.jsonl import JsonlStore


class _Row(BaseModel):
    id: str
    value: int = 0


def test_corrupt_lines_are_skipped(tmp_path) -> None:
    store = JsonlStore(tmp_path, "rows.jsonl", _Row)
    store.append(_Row(id="a", value=1))
    with store.path.open("a", encoding="utf-8") as handle:
        handle.write("{not json\n")
        handle.write('{"value": 3}\n')
    store.append(_Row(id="b", value=2))

    assert [row.id for row in store.load_all()] == ["a", "b"]


def test_mutate_persists_only_when_changed(tmp_path) -> None:
    store = JsonlStore(tmp_path, "rows.jsonl", _Row)
    store.append(_Row(id="a"))

    def bump(rows: list[_Row]) -> bool:
        rows[0].value += 5
        return True

    store.mutate(bump)
    store.mutate(lambda rows: False)

    assert store.load_all()[0].value == 5
    assert not store.lock_path.exists()


def test_trim_keeps_newest(tmp_path) -> None:
    store = JsonlStore(tmp_path, "rows.jsonl", _Row)
    for index in range(5):
        store.append(_Row(id=str(index)))

    store.trim(2)

    assert [row.id for row in store.load_all()] == ["3", "4"]


def test_lock_left_by_crashed_writer_is_broken(tmp_path) -> None:
    store = JsonlStore(tmp_path, "rows.jsonl", _Row)
    store.lock_path.touch()
    old = time.time() - 60
    os.utime(store.lock_path, (old, old))

    started = time.monotonic()
    store.append(_Row(id="a"))

    assert time.monotonic() - started < store.lock_timeout_s
    assert [row.id for row in store.load_all()] == ["a"]
    assert not store.lock_path.exists()


def test_fresh_lock_is_respected_until_it_goes_stale(tmp_path) -> None:
    store = JsonlStore(tmp_path, "rows.jsonl", _Row, lock_timeout_s=0.2)
    store.lock_path.touch()
    recent = time.time() - 0.1
    os.utime(store.lock_path, (recent, recent))

    started = time.monotonic()
    store.append(_Row(id="a"))

    assert time.monotonic() - started >= 0.05
    assert [row.id for row in store.load_all()] == ["a"]
    assert not store.lock_path.exists()
