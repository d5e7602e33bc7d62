"""
Tests for Expense Tracker

Test strategy:
1. Unit tests for individual components (models, money helpers, settlement)
2. Ledger tests against in-memory storage
3. No real files except under pytest's tmp_path
"""

import pytest
from datetime import date
from decimal import Decimal

from expense_tracker.errors import ValidationError
from expense_tracker.models import (
    DEFAULT_CATEGORIES,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Budget,
    Category,
    CategoryType,
    Friend,
    FriendTransaction,
    FriendTransactionType,
    SplitBalance,
    SplitExpense,
    SplitGroup,
    Transaction,
    apply_patch,
    parse_record,
)


class TestFriendModels:
    """Tests for friend ledger models."""

    def test_friend_creation(self):
        """Test Friend model creation with defaults."""
        friend = Friend(name="Alice", phone="98450 00000")
        assert friend.name == "Alice"
        assert friend.total_balance == Decimal("0.00")
        assert friend.is_settled is True
        assert friend.id

    def test_friend_strips_whitespace(self):
        """Test that whitespace is stripped from friend name."""
        friend = Friend(name="  Alice  ")
        assert friend.name == "Alice"

    def test_friend_rejects_empty_name(self):
        """Test that a blank name is rejected."""
        with pytest.raises(ValueError):
            Friend(name="   ")

    def test_entry_rejects_zero_amount(self):
        """Test that zero amounts are rejected."""
        with pytest.raises(ValueError):
            FriendTransaction(
                friend_id="f1",
                type=FriendTransactionType.LENT,
                amount=0,
                date=date(2024, 1, 1),
            )

    def test_entry_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            FriendTransaction(
                friend_id="f1",
                type="borrowed",
                amount="-10",
                date=date(2024, 1, 1),
            )

    def test_entry_amount_rounded_to_two_places(self):
        """Test that float amounts become exact 2-place decimals."""
        entry = FriendTransaction(
            friend_id="f1",
            type="lent",
            amount=33.333,
            date="2024-01-01",
        )
        assert entry.amount == Decimal("33.33")

    def test_entry_direction(self):
        """Test lent counts up and borrowed counts down."""
        lent = FriendTransaction(friend_id="f1", type="lent", amount=500, date="2024-01-01")
        borrowed = FriendTransaction(friend_id="f1", type="borrowed", amount=200, date="2024-01-02")
        assert lent.direction == 1
        assert borrowed.direction == -1

    def test_entry_accepts_iso_timestamp_date(self):
        """Test that ISO timestamps are truncated to their date."""
        entry = FriendTransaction(
            friend_id="f1",
            type="lent",
            amount=10,
            date="2024-01-05T10:30:00.000Z",
        )
        assert entry.date == date(2024, 1, 5)

    def test_to_record_uses_camel_case(self):
        """Test the persisted shape uses camelCase keys and numeric amounts."""
        entry = FriendTransaction(friend_id="f1", type="lent", amount="12.50", date="2024-01-01")
        record = entry.to_record()
        assert record["friendId"] == "f1"
        assert record["amount"] == 12.5
        assert record["date"] == "2024-01-01"
        assert "createdAt" in record

    def test_record_round_trips_through_aliases(self):
        """Test that a persisted record parses back to an equal model."""
        friend = Friend(name="Bob")
        assert Friend.model_validate(friend.to_record()).model_dump() == friend.model_dump()


class TestSplitModels:
    """Tests for split settlement models."""

    def test_group_requires_members(self):
        """Test that a group without members is rejected."""
        with pytest.raises(ValueError):
            SplitGroup(name="Trip", members=[])

    def test_group_rejects_duplicate_members(self):
        """Test that members must be unique."""
        with pytest.raises(ValueError, match="Duplicate member"):
            SplitGroup(name="Trip", members=["a", "b", "a"])

    def test_expense_requires_splitters(self):
        """Test that split_among cannot be empty."""
        with pytest.raises(ValueError):
            SplitExpense(
                split_group_id="g1",
                description="Dinner",
                amount=300,
                paid_by="a",
                split_among=[],
                date="2024-01-01",
            )

    def test_expense_membership_check(self):
        """Test payer and splitters are checked against the members."""
        expense = SplitExpense(
            split_group_id="g1",
            description="Dinner",
            amount=300,
            paid_by="a",
            split_among=["a", "z"],
            date="2024-01-01",
        )
        assert expense.check_membership(["a", "z"]) is None
        assert "z" in expense.check_membership(["a", "b"])
        assert "Payer" in expense.check_membership(["b", "z"])

    def test_split_balance_requires_positive_amount(self):
        """Test transfers are always positive."""
        with pytest.raises(ValueError):
            SplitBalance(from_friend="b", to_friend="a", amount=Decimal("0"))


class TestExpenseModels:
    """Tests for transactions, categories and budgets."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        transaction = Transaction(type="expense", amount=250, category="Groceries", date="2024-03-01")
        assert transaction.amount == Decimal("250.00")
        assert transaction.note is None

    def test_category_rejects_bad_color(self):
        """Test that colors must be hex codes."""
        with pytest.raises(ValueError):
            Category(name="Pets", color="blue")

    def test_default_categories(self):
        """Test the built-in category set."""
        assert len(DEFAULT_CATEGORIES) == 16
        names = {category.name for category in DEFAULT_CATEGORIES}
        assert "Food & Dining" in names
        assert "Salary" in names
        assert len({category.id for category in DEFAULT_CATEGORIES}) == 16

    def test_budget_date_validation(self):
        """Test that end date cannot precede start date."""
        with pytest.raises(ValueError, match="end date cannot be before start date"):
            Budget(
                name="March food",
                target_amount=5000,
                category="Food & Dining",
                start_date="2024-03-31",
                end_date="2024-03-01",
            )

    def test_budget_remaining_and_overrun(self):
        """Test derived budget properties."""
        budget = Budget(
            name="March food",
            target_amount=100,
            spent_amount=150,
            category="Food & Dining",
            start_date="2024-03-01",
            end_date="2024-03-31",
        )
        assert budget.remaining_amount == Decimal("-50.00")
        assert budget.is_over_budget is True


class TestRecordHelpers:
    """Tests for parse_record and apply_patch."""

    def test_parse_record_raises_domain_error(self):
        """Test pydantic failures surface as the domain ValidationError."""
        with pytest.raises(ValidationError) as excinfo:
            parse_record(Friend, {"name": ""})
        assert excinfo.value.field == "name"

    def test_apply_patch_revalidates(self):
        """Test a patch cannot produce an invalid record."""
        entry = FriendTransaction(friend_id="f1", type="lent", amount=10, date="2024-01-01")
        with pytest.raises(ValidationError):
            apply_patch(entry, {"amount": -5})

    def test_apply_patch_accepts_camel_case(self):
        """Test that patches may use the wire aliases."""
        entry = FriendTransaction(friend_id="f1", type="lent", amount=10, date="2024-01-01")
        updated = apply_patch(entry, {"friendId": "f2"})
        assert updated.friend_id == "f2"
        assert updated.id == entry.id
        assert entry.friend_id == "f1"

    def test_apply_patch_rejects_locked_fields(self):
        """Test id, created_at and protected fields cannot be patched."""
        friend = Friend(name="Alice")
        with pytest.raises(ValidationError):
            apply_patch(friend, {"id": "other"})
        with pytest.raises(ValidationError):
            apply_patch(friend, {"totalBalance": 100}, protected=("total_balance",))

    def test_apply_patch_rejects_unknown_fields(self):
        """Test unknown keys are reported instead of ignored."""
        friend = Friend(name="Alice")
        with pytest.raises(ValidationError, match="no field 'nickname'"):
            apply_patch(friend, {"nickname": "Al"})


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.FRIEND_ADDED,
            description="Added friend: Alice",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.GROUP_ADDED,
            entity_type="split_group",
            entity_id="g1",
            description="Added split group: Trip",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "group_added"
        assert log_dict["entity_id"] == "g1"
        assert "timestamp" in log_dict

    def test_audit_event_builder_entity_added(self):
        """Test the builder picks the event type from the entity type."""
        event = AuditEventBuilder.entity_added("friend_transaction", "e1", "lent 500.00")
        assert event.event_type == AuditEventType.FRIEND_ENTRY_ADDED
        assert event.entity_type == "friend_transaction"

    def test_audit_event_builder_entity_deleted_cascade(self):
        """Test cascaded deletes are described."""
        event = AuditEventBuilder.entity_deleted("friend", "f1", cascaded=2)
        assert event.event_type == AuditEventType.FRIEND_DELETED
        assert "2 dependent" in event.description
        assert event.details["cascaded"] == 2

    def test_audit_event_builder_validation_rejected(self):
        """Test rejected input is recorded as a warning."""
        event = AuditEventBuilder.validation_rejected("add_entry", "amount must be positive")
        assert event.event_type == AuditEventType.VALIDATION_REJECTED
        assert event.error_message == "amount must be positive"


class TestCategoryTypes:
    """Tests for enum values used on the wire."""

    def test_category_values(self):
        """Test category type string values."""
        assert CategoryType.BOTH.value == "both"
        assert FriendTransactionType.LENT.value == "lent"
        assert FriendTransactionType.BORROWED.value == "borrowed"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
