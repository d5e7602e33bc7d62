"""
Main Orchestrator for Expense Tracker

This module ties the ledgers together behind one facade:
1. Friend Ledger (lent/borrowed balances)
2. Split Settlement (shared group expenses and transfer plans)
3. Expense Book and Budget Book (the user's own money)
4. Backup (export everything, import with validation)

DESIGN DECISION: Every book shares one storage port and one audit logger.
The orchestrator owns no collections itself; it only wires the books and
coordinates operations that span several of them.
"""

import json
from typing import Optional

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.config import get_settings
from expense_tracker.errors import MalformedImportError
from expense_tracker.ledger import BudgetBook, ExpenseBook, FriendLedger, SplitLedger
from expense_tracker.models.backup import ImportResult
from expense_tracker.services.storage import (
    CollectionAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
    StorageInterface,
)
from expense_tracker.validation.importer import RawDocument, export_document, parse_import

logger = structlog.get_logger(__name__)


class ExpenseTracker:
    """
    Facade over every ledger of the tracker.

    Usage:
        tracker = ExpenseTracker()
        alice = tracker.friends.add_friend("Alice")
        tracker.friends.add_entry(alice.id, "lent", 500, "2024-01-01")
        tracker.friends.balance_of(alice.id)  # Decimal("500.00")
    """

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Initialize the tracker.

        Args:
            storage: Collection store shared by all books.
                    If None, everything is kept in memory.
            audit_logger: Audit trail shared by all books.
                    If None, events are only logged locally.
        """
        self._storage = storage if storage is not None else InMemoryStorage()
        self._audit_logger = audit_logger or AuditLogger()

        self.friends = FriendLedger(self._storage, self._audit_logger)
        self.splits = SplitLedger(self._storage, self._audit_logger)
        self.expenses = ExpenseBook(self._storage, self._audit_logger)
        self.budgets = BudgetBook(self._storage, self._audit_logger, self.expenses)

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    def export_data(self) -> dict:
        """Backup document holding every collection."""
        document = export_document(self)
        record_count = sum(
            len(value) for value in document.values() if isinstance(value, list)
        )
        self._audit_logger.log_exported(record_count, document["version"])
        return document

    def export_json(self, indent: int = 2) -> str:
        """Backup document serialised as JSON text."""
        return json.dumps(self.export_data(), indent=indent, ensure_ascii=False)

    def import_data(
        self,
        raw: RawDocument,
        confirm_partial: bool = False,
    ) -> ImportResult:
        """
        Replace every collection with the contents of a backup.

        CRITICAL: Nothing is replaced unless the whole document was accepted.
        Derived balances, totals and spent amounts are recomputed from the
        imported logs; cached values in the document are ignored.

        Raises:
            MalformedImportError: see ``parse_import``
        """
        try:
            result = parse_import(raw, confirm_partial=confirm_partial)
        except MalformedImportError as e:
            self._audit_logger.log_import_rejected(e.reason, e.dropped)
            raise

        self.expenses.replace_all(result.transactions)
        self.budgets.replace_all(result.budgets, result.budget_transactions)
        self.splits.replace_all(result.split_groups, result.split_expenses)
        self.friends.replace_all(result.friends, result.friend_transactions)

        self._audit_logger.log_imported(result.valid_count, result.dropped)
        return result


def create_app_components(use_storage: bool = True) -> ExpenseTracker:
    """
    Factory function to create a configured tracker.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False for a purely in-memory tracker.

    Returns:
        ExpenseTracker wired to storage and an audit logger
    """
    if not use_storage or get_settings().storage.backend == "memory":
        return ExpenseTracker(InMemoryStorage(), AuditLogger())

    try:
        storage: StorageInterface = JsonFileStorage()
        audit_logger = AuditLogger(CollectionAuditStorage(storage))
        return ExpenseTracker(storage, audit_logger)
    except (OSError, StorageError) as e:
        # Storage not usable - continue in memory
        logger.warning("storage_unavailable", error=str(e))
        audit_logger = AuditLogger()
        audit_logger.log_error(type(e).__name__, str(e), {"backend": "json"})
        return ExpenseTracker(InMemoryStorage(), audit_logger)
