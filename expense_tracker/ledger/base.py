"""
Shared Ledger Plumbing

Every ledger is an aggregate root that owns its collections in memory and
writes them back through the injected storage port after each mutation.

DESIGN DECISION: Validation runs first, mutation second, persistence last.
A rejected call never reaches the in-memory collections or storage.

CRITICAL: Mutations run inside ``_mutation()``. If a storage write fails the
in-memory collections are restored to their state before the call, so the
ledger never counts a change that was not durably applied.
"""

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Optional, TypeVar

import structlog
from pydantic import ValidationError as PydanticValidationError

from expense_tracker.audit import AuditLogger
from expense_tracker.config import get_settings
from expense_tracker.errors import ValidationError
from expense_tracker.models.common import RecordModel, describe_validation_error
from expense_tracker.services.storage import InMemoryStorage, StorageError, StorageInterface

RecordT = TypeVar("RecordT", bound=RecordModel)

logger = structlog.get_logger(__name__)


class CollectionBook:
    """
    Base class wiring a ledger to storage and the audit log.

    Subclasses map each in-memory collection attribute to its storage
    collection in ``_collections``, children before parents.
    """

    _collections: dict[str, str] = {}

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage if storage is not None else InMemoryStorage()
        self._audit = audit_logger or AuditLogger()
        self._settings = get_settings().app

    def _load(self, name: str, model: type[RecordT]) -> dict[str, RecordT]:
        """
        Load a collection keyed by id.

        Rows that fail validation, or repeat an id, are skipped with a warning.
        """
        records: dict[str, RecordT] = {}
        for index, row in enumerate(self._storage.read_collection(name)):
            try:
                record = model.model_validate(row)
            except PydanticValidationError as e:
                logger.warning(
                    "skipped_malformed_row",
                    collection=name,
                    index=index,
                    error=describe_validation_error(e),
                )
                continue
            if record.id in records:
                logger.warning("skipped_duplicate_row", collection=name, record_id=record.id)
                continue
            records[record.id] = record
        return records

    def _persist(self, name: str, records: dict[str, RecordModel]) -> None:
        self._storage.write_collection(
            name, [record.to_record() for record in records.values()]
        )

    def _check_amount(self, amount: Decimal, field: str = "amount") -> None:
        """Reject amounts above the configured sanity limit."""
        if amount > self._settings.max_amount:
            raise ValidationError(
                f"Amount {amount} exceeds the maximum of {self._settings.max_amount}",
                field=field,
            )

    def _rejected(self, operation: str, error: Exception) -> None:
        """Record a rejected call in the audit trail."""
        self._audit.log_rejected(operation, str(error))

    @contextmanager
    def _mutation(self, *attributes: str) -> Iterator[None]:
        """
        Apply in-memory changes, then persist the touched collections.

        Args:
            attributes: Collection attributes the block changes.
                    Defaults to every collection of the book.

        Raises:
            StorageError: a write failed; memory was rolled back first
        """
        names = attributes or tuple(self._collections)
        snapshot = {name: dict(getattr(self, name)) for name in names}
        try:
            yield
            for name in names:
                self._persist(self._collections[name], getattr(self, name))
        except StorageError as e:
            for name, records in snapshot.items():
                setattr(self, name, records)
            self._restore_storage(snapshot, e)
            raise

    def _restore_storage(
        self,
        snapshot: dict[str, dict[str, RecordModel]],
        error: StorageError,
    ) -> None:
        """Write the pre-call collections back after a failed mutation."""
        logger.error("mutation_rolled_back", error=str(error))
        for name, records in snapshot.items():
            try:
                self._persist(self._collections[name], records)
            except StorageError as e:
                logger.error(
                    "storage_rollback_failed",
                    collection=self._collections[name],
                    error=str(e),
                )
