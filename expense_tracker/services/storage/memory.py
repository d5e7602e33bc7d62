"""
In-Memory Storage Implementation

Used by tests and by callers that persist elsewhere. Records are deep-copied
on the way in and out so callers can never alias stored state.
"""

import copy
from typing import Optional

from expense_tracker.config import get_settings
from expense_tracker.models.audit import AuditEvent
from expense_tracker.services.storage.interface import (
    AUDIT_LOG,
    AuditStorageInterface,
    StorageInterface,
)


class InMemoryStorage(StorageInterface):
    """Dictionary-backed collection store."""

    def __init__(self, initial: Optional[dict[str, list[dict]]] = None):
        self._collections: dict[str, list[dict]] = copy.deepcopy(initial or {})
        self.write_count = 0

    def read_collection(self, name: str) -> list[dict]:
        return copy.deepcopy(self._collections.get(name, []))

    def write_collection(self, name: str, records: list[dict]) -> None:
        self._collections[name] = copy.deepcopy(list(records))
        self.write_count += 1

    def append_record(
        self,
        name: str,
        record: dict,
        keep_last: Optional[int] = None,
    ) -> None:
        rows = self._collections.setdefault(name, [])
        rows.append(copy.deepcopy(record))
        if keep_last is not None and len(rows) > keep_last:
            del rows[:-keep_last]
        self.write_count += 1


class CollectionAuditStorage(AuditStorageInterface):
    """
    Audit log kept as the ``audit-log`` collection of any StorageInterface.

    Only the most recent ``max_events`` events are retained, so each append
    costs at most one bounded rewrite.
    """

    def __init__(
        self,
        storage: StorageInterface,
        max_events: Optional[int] = None,
    ):
        self._storage = storage
        self._max_events = max_events or get_settings().storage.audit_log_limit

    def _events(self) -> list[AuditEvent]:
        return [
            AuditEvent.model_validate(row)
            for row in self._storage.read_collection(AUDIT_LOG)
        ]

    def append_event(self, event: AuditEvent) -> bool:
        self._storage.append_record(
            AUDIT_LOG, event.to_record(), keep_last=self._max_events
        )
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            event for event in self._events()
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
