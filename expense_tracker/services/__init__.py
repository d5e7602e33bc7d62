"""Services package."""

from expense_tracker.services.storage import (
    AuditStorageInterface,
    CollectionAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
    StorageInterface,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    "AuditStorageInterface",
    "CollectionAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    "StorageError",
    "StorageInterface",
    "StorageReadError",
    "StorageWriteError",
]
