"""
Storage Services Package

Provides the abstract collection-store port and two implementations:
in-memory (tests, embedding) and JSON files on disk.
"""

from expense_tracker.services.storage.interface import (
    AUDIT_LOG,
    BUDGET_TRANSACTIONS,
    BUDGETS,
    COLLECTIONS,
    CUSTOM_CATEGORIES,
    FRIEND_TRANSACTIONS,
    FRIENDS,
    SPLIT_EXPENSES,
    SPLIT_GROUPS,
    TRANSACTIONS,
    AuditStorageInterface,
    StorageError,
    StorageInterface,
    StorageReadError,
    StorageWriteError,
)
from expense_tracker.services.storage.json_file import JsonFileStorage
from expense_tracker.services.storage.memory import (
    CollectionAuditStorage,
    InMemoryStorage,
)

__all__ = [
    # Collection names
    "AUDIT_LOG",
    "BUDGET_TRANSACTIONS",
    "BUDGETS",
    "COLLECTIONS",
    "CUSTOM_CATEGORIES",
    "FRIEND_TRANSACTIONS",
    "FRIENDS",
    "SPLIT_EXPENSES",
    "SPLIT_GROUPS",
    "TRANSACTIONS",
    # Interfaces
    "AuditStorageInterface",
    "StorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "CollectionAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
]
