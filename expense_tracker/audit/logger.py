"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability
3. User can see the history of a friend or group

The audit logger:
- Always logs locally through structlog
- Gracefully handles storage failures (never breaks a ledger operation)
"""

from typing import Optional

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder
from expense_tracker.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence and user visibility), if given
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_tracker.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except StorageError as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_added(
        self,
        entity_type: str,
        entity_id: str,
        summary: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log creation of a record."""
        self.log(AuditEventBuilder.entity_added(entity_type, entity_id, summary, details))

    def log_updated(
        self,
        entity_type: str,
        entity_id: str,
        fields: list[str],
    ) -> None:
        """Log a partial update."""
        self.log(AuditEventBuilder.entity_updated(entity_type, entity_id, fields))

    def log_deleted(
        self,
        entity_type: str,
        entity_id: str,
        cascaded: int = 0,
    ) -> None:
        """Log deletion, including cascaded children."""
        self.log(AuditEventBuilder.entity_deleted(entity_type, entity_id, cascaded))

    def log_rejected(self, operation: str, error_message: str) -> None:
        """Log an input rejected before mutation."""
        self.log(AuditEventBuilder.validation_rejected(operation, error_message))

    def log_exported(self, record_count: int, version: str) -> None:
        self.log(AuditEventBuilder.data_exported(record_count, version))

    def log_imported(self, valid_count: int, dropped: dict[str, int]) -> None:
        self.log(AuditEventBuilder.data_imported(valid_count, dropped))

    def log_import_rejected(self, reason: str, dropped: dict[str, int]) -> None:
        self.log(AuditEventBuilder.import_rejected(reason, dropped))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(error_type, error_message, details))
