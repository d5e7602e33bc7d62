"""
Tests for the Budget Book.
"""

import pytest
from decimal import Decimal

from expense_tracker.audit import AuditLogger
from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.ledger import BudgetBook, ExpenseBook
from expense_tracker.models import AuditEventType
from expense_tracker.services.storage import (
    AUDIT_LOG,
    BUDGET_TRANSACTIONS,
    BUDGETS,
    TRANSACTIONS,
    CollectionAuditStorage,
    InMemoryStorage,
    StorageWriteError,
)


class FlakyStorage(InMemoryStorage):
    """In-memory store whose writes fail for the named collections."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_on: set[str] = set()

    def write_collection(self, name, records):
        if name in self.fail_on:
            raise StorageWriteError(f"cannot write {name}")
        super().write_collection(name, records)


def _books():
    storage = InMemoryStorage()
    expenses = ExpenseBook(storage)
    budgets = BudgetBook(storage, expense_book=expenses)
    budget = budgets.add_budget(
        "March food", 5000, "Food & Dining", "2024-03-01", "2024-03-31",
    )
    return budgets, expenses, budget


class TestBudgets:
    """Tests for budget CRUD."""

    def test_add_budget(self):
        """Test a new budget has nothing spent."""
        budgets, _, budget = _books()
        assert budget.spent_amount == Decimal("0.00")
        assert budget.remaining_amount == Decimal("5000.00")
        assert budgets.get_budget(budget.id) == budget

    def test_add_budget_rejects_reversed_dates(self):
        """Test end date before start date is rejected."""
        budgets = BudgetBook()
        with pytest.raises(ValidationError):
            budgets.add_budget("Bad", 10, "Travel", "2024-03-31", "2024-03-01")
        assert budgets.budgets == []

    def test_add_budget_rejects_non_positive_target(self):
        """Test the target must be positive."""
        with pytest.raises(ValidationError):
            BudgetBook().add_budget("Bad", 0, "Travel", "2024-03-01", "2024-03-31")

    def test_spent_amount_cannot_be_patched(self):
        """Test the cached spend is not editable."""
        budgets, _, budget = _books()
        with pytest.raises(ValidationError):
            budgets.update_budget(budget.id, {"spentAmount": 10})

    def test_update_budget(self):
        """Test a budget can be renamed without losing its spend."""
        budgets, _, budget = _books()
        budgets.add_budget_transaction(budget.id, 100, "Lunch", "2024-03-02")
        updated = budgets.update_budget(budget.id, {"name": "Food", "targetAmount": 6000})
        assert updated.name == "Food"
        assert updated.target_amount == Decimal("6000.00")
        assert updated.spent_amount == Decimal("100.00")

    def test_delete_budget_cascades(self):
        """Test budget transactions go with their budget."""
        budgets, expenses, budget = _books()
        budgets.add_budget_transaction(budget.id, 100, "Lunch", "2024-03-02")

        budgets.delete_budget(budget.id)

        assert budgets.get_budget_transactions(budget.id) == []
        assert budgets.transactions == []
        # Mirrored expenses are ordinary expenses and stay
        assert len(expenses.transactions) == 1


class TestBudgetTransactions:
    """Tests for spending against a budget."""

    def test_spent_amount_tracks_transactions(self):
        """Test spent_amount is refolded on every change."""
        budgets, _, budget = _books()
        lunch = budgets.add_budget_transaction(budget.id, "120.25", "Lunch", "2024-03-02")
        budgets.add_budget_transaction(budget.id, "79.75", "Snacks", "2024-03-03")
        assert budgets.get_budget(budget.id).spent_amount == Decimal("200.00")
        assert budgets.get_budget_spent(budget.id) == Decimal("200.00")

        budgets.update_budget_transaction(lunch.id, {"amount": 20})
        assert budgets.get_budget(budget.id).spent_amount == Decimal("99.75")

        budgets.delete_budget_transaction(lunch.id)
        assert budgets.get_budget(budget.id).spent_amount == Decimal("79.75")

    def test_transaction_is_mirrored_as_expense(self):
        """Test spending also lands in the Expense Book."""
        budgets, expenses, budget = _books()
        budgets.add_budget_transaction(budget.id, 450, "Groceries run", "2024-03-05")

        [mirrored] = expenses.transactions
        assert mirrored.type.value == "expense"
        assert mirrored.amount == Decimal("450.00")
        assert mirrored.category == "Food & Dining"
        assert mirrored.note == "Budget: March food - Groceries run"
        assert expenses.total_expense() == Decimal("450.00")

    def test_unknown_budget(self):
        """Test transactions need an existing budget."""
        budgets, expenses, _ = _books()
        with pytest.raises(NotFoundError):
            budgets.add_budget_transaction("ghost", 10, "Lunch", "2024-03-02")
        assert budgets.transactions == []
        assert expenses.transactions == []

    def test_rejects_non_positive_amount(self):
        """Test amounts must be positive and nothing is mirrored."""
        budgets, expenses, budget = _books()
        with pytest.raises(ValidationError):
            budgets.add_budget_transaction(budget.id, -5, "Refund", "2024-03-02")
        assert expenses.transactions == []

    def test_over_budget(self):
        """Test overspending is reported."""
        budgets, _, budget = _books()
        budgets.add_budget_transaction(budget.id, 5000.01, "Feast", "2024-03-10")
        assert budgets.get_budget(budget.id).is_over_budget

    def test_without_expense_book_nothing_is_mirrored(self):
        """Test a standalone Budget Book only tracks its own log."""
        budgets = BudgetBook()
        budget = budgets.add_budget("Trip", 100, "Travel", "2024-03-01", "2024-03-31")
        budgets.add_budget_transaction(budget.id, 10, "Bus", "2024-03-02")
        assert budgets.get_budget_spent(budget.id) == Decimal("10.00")

    def test_reload_from_storage(self):
        """Test spent_amount is refolded on load."""
        storage = InMemoryStorage({
            BUDGETS: [{
                "id": "b1", "name": "Trip", "targetAmount": 100, "spentAmount": 1,
                "category": "Travel", "startDate": "2024-03-01", "endDate": "2024-03-31",
            }],
            BUDGET_TRANSACTIONS: [
                {"id": "t1", "budgetId": "b1", "amount": 30, "description": "Bus", "date": "2024-03-02"},
                {"id": "t2", "budgetId": "gone", "amount": 5, "description": "Cab", "date": "2024-03-02"},
            ],
        })
        budgets = BudgetBook(storage)
        assert budgets.get_budget("b1").spent_amount == Decimal("30.00")
        assert [t.id for t in budgets.transactions] == ["t1"]


class TestBudgetMirrorConsistency:
    """Tests that the budget and its mirrored expense change together."""

    def test_longest_description_is_recorded_and_mirrored(self):
        """Test a 500 character description is accepted and the note clipped."""
        budgets, expenses, budget = _books()

        transaction = budgets.add_budget_transaction(budget.id, 40, "x" * 500, "2024-03-05")

        assert budgets.get_budget_transaction(transaction.id).description == "x" * 500
        [mirror] = expenses.transactions
        assert len(mirror.note) == 500
        assert mirror.note.startswith("Budget: March food - xxx")
        assert mirror.note.endswith("...")
        assert budgets.get_budget(budget.id).spent_amount == Decimal("40.00")

    def test_long_description_is_audited(self):
        """Test auditing a long budget transaction does not fail the call."""
        storage = InMemoryStorage()
        budgets = BudgetBook(storage, AuditLogger(CollectionAuditStorage(storage)))
        budget = budgets.add_budget("B", 1000, "Travel", "2024-03-01", "2024-03-31")

        budgets.add_budget_transaction(budget.id, 10, "y" * 495, "2024-03-02")

        last = storage.read_collection(AUDIT_LOG)[-1]
        assert last["event_type"] == AuditEventType.BUDGET_TRANSACTION_ADDED.value
        assert len(last["description"]) <= 500

    def test_failed_mirror_write_takes_budget_transaction_back(self):
        """Test nothing is left behind when the mirrored expense cannot be stored."""
        expense_storage = FlakyStorage()
        expenses = ExpenseBook(expense_storage)
        storage = InMemoryStorage()
        budgets = BudgetBook(storage, expense_book=expenses)
        budget = budgets.add_budget("Food", 1000, "Food & Dining", "2024-03-01", "2024-03-31")
        expense_storage.fail_on = {TRANSACTIONS}

        with pytest.raises(StorageWriteError):
            budgets.add_budget_transaction(budget.id, 150, "Lunch", "2024-03-04")

        assert budgets.transactions == []
        assert budgets.get_budget(budget.id).spent_amount == Decimal("0.00")
        assert storage.read_collection(BUDGET_TRANSACTIONS) == []
        assert expenses.transactions == []

    def test_failed_budget_write_records_no_mirror(self):
        """Test the mirror is not written when the budget transaction fails to store."""
        storage = FlakyStorage()
        expenses = ExpenseBook(storage)
        budgets = BudgetBook(storage, expense_book=expenses)
        budget = budgets.add_budget("Food", 1000, "Food & Dining", "2024-03-01", "2024-03-31")
        storage.fail_on = {BUDGET_TRANSACTIONS}

        with pytest.raises(StorageWriteError):
            budgets.add_budget_transaction(budget.id, 150, "Lunch", "2024-03-04")

        assert budgets.transactions == []
        assert expenses.transactions == []
        assert storage.read_collection(TRANSACTIONS) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
