"""
Abstract Storage Interface

DESIGN DECISION: The ledgers never touch storage directly. They receive a
key-value port that reads and writes whole collections. This allows us to:
1. Use in-memory storage for testing
2. Keep JSON files on disk for a single-user install
3. Swap in a real database later without changing ledger logic

The interface is intentionally tiny - read-all and write-all per collection,
plus a single-record append used by the audit log.
"""

from abc import ABC, abstractmethod
from typing import Optional

from expense_tracker.models.audit import AuditEvent


# Logical collection names
FRIENDS = "friends"
FRIEND_TRANSACTIONS = "friend-transactions"
SPLIT_GROUPS = "split-groups"
SPLIT_EXPENSES = "split-expenses"
TRANSACTIONS = "transactions"
CUSTOM_CATEGORIES = "custom-categories"
BUDGETS = "budgets"
BUDGET_TRANSACTIONS = "budget-transactions"
AUDIT_LOG = "audit-log"

COLLECTIONS = (
    FRIENDS,
    FRIEND_TRANSACTIONS,
    SPLIT_GROUPS,
    SPLIT_EXPENSES,
    TRANSACTIONS,
    CUSTOM_CATEGORIES,
    BUDGETS,
    BUDGET_TRANSACTIONS,
    AUDIT_LOG,
)


class StorageInterface(ABC):
    """
    Abstract key-value storage keyed by collection name.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def read_collection(self, name: str) -> list[dict]:
        """
        Read every record in a collection.

        Args:
            name: Logical collection name (e.g. 'friends')

        Returns:
            List of plain records; empty if the collection was never written

        Raises:
            StorageReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write_collection(self, name: str, records: list[dict]) -> None:
        """
        Replace a collection with the given records.

        Args:
            name: Logical collection name
            records: Complete new contents of the collection

        Raises:
            StorageWriteError: If the write fails
        """
        pass

    def append_record(
        self,
        name: str,
        record: dict,
        keep_last: Optional[int] = None,
    ) -> None:
        """
        Append one record to a collection.

        The default reads and rewrites the collection; backends that can
        append in place override it.

        Args:
            name: Logical collection name
            record: Record to append
            keep_last: If set, drop the oldest records beyond this many

        Raises:
            StorageWriteError: If the write fails
        """
        records = self.read_collection(name)
        records.append(record)
        if keep_last is not None:
            records = records[-keep_last:]
        self.write_collection(name, records)


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """A collection could not be read or decoded."""
    pass


class StorageWriteError(StorageError):
    """A collection could not be written."""
    pass
