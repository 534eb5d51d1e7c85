from __future__ import annotations

from pathlib import Path

from shipwright.core.clock import now_iso
from shipwright.core.storage.jsonl import JsonlStore

from .schemas import ApprovalRequest, ApprovalStatus


class ApprovalStore:
    def __init__(self, state_dir: Path) -> None:
        self._store: JsonlStore[ApprovalRequest] = JsonlStore(state_dir, "approval_requests.jsonl", ApprovalRequest)

    def list_all(self, status: str | None = None) -> list[ApprovalRequest]:
        records = self._store.load_all()
        if status:
            records = [record for record in records if record.status == status]
        return sorted(records, key=lambda item: item.sent_at, reverse=True)

    def get(self, id: str) -> ApprovalRequest | None:
        for record in self._store.load_all():
            if record.id == id:
                return record
        return None

    def find_by_task(self, task_id: str, status: str | None = None) -> list[ApprovalRequest]:
        return [record for record in self.list_all(status=status) if record.task_id == task_id]

    def insert(self, record: ApprovalRequest) -> ApprovalRequest:
        self._store.append(record)
        return record

    def insert_if_absent(self, record: ApprovalRequest) -> bool:
        """Insert unless a request with the same id or a pending one for the task exists."""
        inserted: list[bool] = []

        def apply(records: list[ApprovalRequest]) -> bool:
            for current in records:
                if current.id == record.id:
                    return False
                if current.task_id == record.task_id and current.status == "pending":
                    return False
            records.append(record)
            inserted.append(True)
            return True

        self._store.mutate(apply)
        return bool(inserted)

    def set_status(
        self,
        id: str,
        status: ApprovalStatus,
        expected: ApprovalStatus | None = None,
    ) -> ApprovalRequest | None:
        """Update status, optionally only when the stored status equals ``expected``.

        Returns the updated record, or ``None`` when the id is unknown or the
        expectation did not hold.
        """
        updated: list[ApprovalRequest] = []

        def apply(records: list[ApprovalRequest]) -> bool:
            for idx, current in enumerate(records):
                if current.id != id:
                    continue
                if expected is not None and current.status != expected:
                    return False
                records[idx] = current.model_copy(update={"status": status, "responded_at": now_iso()})
                updated.append(records[idx])
                return True
            return False

        self._store.mutate(apply)
        return updated[0] if updated else None

    def reopen(self, id: str, expected: ApprovalStatus) -> bool:
        """Put a request back to pending and clear ``responded_at``, only from ``expected``."""
        reopened: list[bool] = []

        def apply(records: list[ApprovalRequest]) -> bool:
            for idx, current in enumerate(records):
                if current.id == id and current.status == expected:
                    records[idx] = current.model_copy(update={"status": "pending", "responded_at": None})
                    reopened.append(True)
                    return True
            return False

        self._store.mutate(apply)
        return bool(reopened)

    def mark_task_executed(self, task_id: str) -> int:
        changed: list[str] = []
        stamp = now_iso()

        def apply(records: list[ApprovalRequest]) -> bool:
            for idx, current in enumerate(records):
                if current.task_id == task_id and current.status != "executed":
                    records[idx] = current.model_copy(update={"status": "executed", "responded_at": stamp})
                    changed.append(current.id)
            return bool(changed)

        self._store.mutate(apply)
        return len(changed)
