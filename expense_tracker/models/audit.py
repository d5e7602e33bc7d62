"""
Audit Models for Expense Tracker

Every ledger mutation is logged for audit purposes.
This provides:
1. Traceability of who-owes-whom changes
2. Debugging information when a balance looks wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from expense_tracker.models.common import clip_text, utc_now

DESCRIPTION_MAX_LENGTH = 500


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each ledger has its own group of event types.
    """
    # Friend ledger
    FRIEND_ADDED = "friend_added"
    FRIEND_UPDATED = "friend_updated"
    FRIEND_DELETED = "friend_deleted"
    FRIEND_ENTRY_ADDED = "friend_entry_added"
    FRIEND_ENTRY_UPDATED = "friend_entry_updated"
    FRIEND_ENTRY_DELETED = "friend_entry_deleted"

    # Split settlement
    GROUP_ADDED = "group_added"
    GROUP_UPDATED = "group_updated"
    GROUP_DELETED = "group_deleted"
    SPLIT_EXPENSE_ADDED = "split_expense_added"
    SPLIT_EXPENSE_UPDATED = "split_expense_updated"
    SPLIT_EXPENSE_DELETED = "split_expense_deleted"

    # Expense book
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"

    # Budgets
    BUDGET_ADDED = "budget_added"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"
    BUDGET_TRANSACTION_ADDED = "budget_transaction_added"
    BUDGET_TRANSACTION_UPDATED = "budget_transaction_updated"
    BUDGET_TRANSACTION_DELETED = "budget_transaction_deleted"

    # Backup
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    IMPORT_REJECTED = "import_rejected"

    # Failures
    VALIDATION_REJECTED = "validation_rejected"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'friend', 'split_group')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=DESCRIPTION_MAX_LENGTH,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def clip_description(cls, v: Any) -> Any:
        """
        Shorten long descriptions instead of rejecting them.

        IMPORTANT: Events are built after a mutation was applied, so building
        one must never fail on user-supplied text.
        """
        if isinstance(v, str):
            return clip_text(v, DESCRIPTION_MAX_LENGTH)
        return v

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_record(self) -> dict:
        """Row shape persisted in the audit-log collection."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_added("friend", friend.id, "Alice")
        event = AuditEventBuilder.validation_rejected("add_entry", str(error))
    """

    _ADDED = {
        "friend": AuditEventType.FRIEND_ADDED,
        "friend_transaction": AuditEventType.FRIEND_ENTRY_ADDED,
        "split_group": AuditEventType.GROUP_ADDED,
        "split_expense": AuditEventType.SPLIT_EXPENSE_ADDED,
        "transaction": AuditEventType.TRANSACTION_ADDED,
        "category": AuditEventType.CATEGORY_ADDED,
        "budget": AuditEventType.BUDGET_ADDED,
        "budget_transaction": AuditEventType.BUDGET_TRANSACTION_ADDED,
    }
    _UPDATED = {
        "friend": AuditEventType.FRIEND_UPDATED,
        "friend_transaction": AuditEventType.FRIEND_ENTRY_UPDATED,
        "split_group": AuditEventType.GROUP_UPDATED,
        "split_expense": AuditEventType.SPLIT_EXPENSE_UPDATED,
        "transaction": AuditEventType.TRANSACTION_UPDATED,
        "category": AuditEventType.CATEGORY_UPDATED,
        "budget": AuditEventType.BUDGET_UPDATED,
        "budget_transaction": AuditEventType.BUDGET_TRANSACTION_UPDATED,
    }
    _DELETED = {
        "friend": AuditEventType.FRIEND_DELETED,
        "friend_transaction": AuditEventType.FRIEND_ENTRY_DELETED,
        "split_group": AuditEventType.GROUP_DELETED,
        "split_expense": AuditEventType.SPLIT_EXPENSE_DELETED,
        "transaction": AuditEventType.TRANSACTION_DELETED,
        "category": AuditEventType.CATEGORY_DELETED,
        "budget": AuditEventType.BUDGET_DELETED,
        "budget_transaction": AuditEventType.BUDGET_TRANSACTION_DELETED,
    }

    @staticmethod
    def entity_added(
        entity_type: str,
        entity_id: str,
        summary: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._ADDED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Added {entity_type.replace('_', ' ')}: {summary}",
            details=details or {},
        )

    @staticmethod
    def entity_updated(
        entity_type: str,
        entity_id: str,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._UPDATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Updated {entity_type.replace('_', ' ')} fields: {', '.join(fields)}",
            details={"fields": fields},
        )

    @staticmethod
    def entity_deleted(
        entity_type: str,
        entity_id: str,
        cascaded: int = 0,
    ) -> AuditEvent:
        description = f"Deleted {entity_type.replace('_', ' ')} {entity_id}"
        if cascaded:
            description += f" and {cascaded} dependent record(s)"
        return AuditEvent(
            event_type=AuditEventBuilder._DELETED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details={"cascaded": cascaded},
        )

    @staticmethod
    def data_exported(record_count: int, version: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            description=f"Exported {record_count} records (format {version})",
            details={"record_count": record_count, "version": version},
        )

    @staticmethod
    def data_imported(valid_count: int, dropped: dict[str, int]) -> AuditEvent:
        dropped_count = sum(dropped.values())
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            severity=AuditSeverity.WARNING if dropped_count else AuditSeverity.INFO,
            description=f"Imported {valid_count} records, dropped {dropped_count}",
            details={"valid_count": valid_count, "dropped": dropped},
        )

    @staticmethod
    def import_rejected(reason: str, dropped: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            description="Import rejected",
            error_message=reason,
            details={"dropped": dropped},
        )

    @staticmethod
    def validation_rejected(operation: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_REJECTED,
            severity=AuditSeverity.WARNING,
            description=f"Rejected {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
