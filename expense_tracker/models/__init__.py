"""
Data Models Package

This package contains all Pydantic models used by the expense tracker.
All data flowing through the ledgers must conform to these schemas.
"""

from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from expense_tracker.models.backup import BACKUP_COLLECTIONS, ImportResult
from expense_tracker.models.budget import Budget, BudgetTransaction
from expense_tracker.models.common import RecordModel, apply_patch, parse_record
from expense_tracker.models.expense import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryTotal,
    CategoryType,
    MonthlyTotal,
    Transaction,
    TransactionType,
)
from expense_tracker.models.friends import (
    Friend,
    FriendTransaction,
    FriendTransactionType,
)
from expense_tracker.models.split import SplitBalance, SplitExpense, SplitGroup

__all__ = [
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Backup models
    "BACKUP_COLLECTIONS",
    "ImportResult",
    # Budget models
    "Budget",
    "BudgetTransaction",
    # Shared helpers
    "RecordModel",
    "apply_patch",
    "parse_record",
    # Expense models
    "DEFAULT_CATEGORIES",
    "Category",
    "CategoryTotal",
    "CategoryType",
    "MonthlyTotal",
    "Transaction",
    "TransactionType",
    # Friend models
    "Friend",
    "FriendTransaction",
    "FriendTransactionType",
    # Split models
    "SplitBalance",
    "SplitExpense",
    "SplitGroup",
]
