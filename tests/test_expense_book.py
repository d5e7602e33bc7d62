"""
Tests for the Expense Book: transactions, totals and categories.
"""

import pytest
from datetime import date
from decimal import Decimal

from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.ledger import ExpenseBook
from expense_tracker.models import CategoryType
from expense_tracker.services.storage import CUSTOM_CATEGORIES, TRANSACTIONS, InMemoryStorage


def _book_with_history():
    book = ExpenseBook()
    book.add_transaction("income", 50000, "Salary", "2024-01-01", note="January pay")
    book.add_transaction("expense", "1250.50", "Food & Dining", "2024-01-05", note="Team dinner")
    book.add_transaction("expense", 300, "Transportation", "2024-01-10")
    book.add_transaction("expense", "49.50", "Food & Dining", "2024-02-01", note="Coffee")
    return book


class TestTransactions:
    """Tests for transaction CRUD."""

    def test_add_transaction(self):
        """Test a transaction is stored and persisted."""
        storage = InMemoryStorage()
        book = ExpenseBook(storage)
        transaction = book.add_transaction("expense", 99, "Groceries", "2024-03-01")

        assert book.get_transaction(transaction.id).amount == Decimal("99.00")
        assert storage.read_collection(TRANSACTIONS)[0]["category"] == "Groceries"

    @pytest.mark.parametrize("amount", [0, -10])
    def test_add_transaction_rejects_non_positive(self, amount):
        """Test non-positive amounts are rejected."""
        book = ExpenseBook()
        with pytest.raises(ValidationError):
            book.add_transaction("expense", amount, "Groceries", "2024-03-01")
        assert book.transactions == []

    def test_add_transaction_rejects_bad_type(self):
        """Test type must be income or expense."""
        with pytest.raises(ValidationError):
            ExpenseBook().add_transaction("refund", 10, "Groceries", "2024-03-01")

    def test_update_transaction(self):
        """Test partial updates."""
        book = ExpenseBook()
        transaction = book.add_transaction("expense", 10, "Groceries", "2024-03-01")
        updated = book.update_transaction(transaction.id, {"note": "Milk", "amount": 12})
        assert updated.note == "Milk"
        assert book.total_expense() == Decimal("12.00")

    def test_delete_transaction(self):
        """Test deletion and unknown ids."""
        book = ExpenseBook()
        transaction = book.add_transaction("expense", 10, "Groceries", "2024-03-01")
        book.delete_transaction(transaction.id)
        assert book.transactions == []
        with pytest.raises(NotFoundError):
            book.delete_transaction(transaction.id)

    def test_list_transactions_newest_first(self):
        """Test listing is ordered by date, newest first."""
        book = _book_with_history()
        dates = [t.date for t in book.list_transactions()]
        assert dates == sorted(dates, reverse=True)
        assert dates[0] == date(2024, 2, 1)


class TestSearchAndFilter:
    """Tests for search and date filtering."""

    def test_search_by_category_case_insensitive(self):
        """Test category matches ignore case."""
        book = _book_with_history()
        result = book.search_transactions("food")
        assert {t.category for t in result} == {"Food & Dining"}
        assert len(result) == 2

    def test_search_by_note(self):
        """Test note matches."""
        book = _book_with_history()
        result = book.search_transactions("DINNER")
        assert [t.note for t in result] == ["Team dinner"]

    def test_search_by_amount(self):
        """Test amount substring matches."""
        book = _book_with_history()
        assert [t.amount for t in book.search_transactions("1250.5")] == [Decimal("1250.50")]
        assert [t.category for t in book.search_transactions("300")] == ["Transportation"]

    def test_blank_search_returns_everything(self):
        """Test an empty query is not a filter."""
        book = _book_with_history()
        assert len(book.search_transactions("   ")) == 4

    def test_filter_by_date_range(self):
        """Test inclusive date filtering accepts strings."""
        book = _book_with_history()
        january = book.filter_transactions_by_date("2024-01-01", "2024-01-31")
        assert len(january) == 3
        assert len(book.filter_transactions_by_date(start="2024-01-06")) == 2
        assert len(book.filter_transactions_by_date()) == 4

    def test_filter_rejects_bad_date(self):
        """Test an unparsable bound is a validation error."""
        with pytest.raises(ValidationError):
            ExpenseBook().filter_transactions_by_date("not-a-date")


class TestTotals:
    """Tests for income, expense and category totals."""

    def test_totals_and_balance(self):
        """Test totals are exact."""
        book = _book_with_history()
        assert book.total_income() == Decimal("50000.00")
        assert book.total_expense() == Decimal("1600.00")
        assert book.balance() == Decimal("48400.00")

    def test_empty_book(self):
        """Test an empty book has zero totals."""
        book = ExpenseBook()
        assert book.balance() == Decimal("0.00")
        assert book.category_totals() == {}

    def test_category_totals(self):
        """Test per-category totals and counts."""
        totals = _book_with_history().category_totals()
        assert totals["Food & Dining"].total == Decimal("1300.00")
        assert totals["Food & Dining"].count == 2
        assert totals["Salary"].count == 1

    def test_category_totals_by_type(self):
        """Test restricting the breakdown to expenses."""
        totals = _book_with_history().category_totals("expense")
        assert "Salary" not in totals
        assert set(totals) == {"Food & Dining", "Transportation"}

    def test_monthly_totals(self):
        """Test income, expense and net per month."""
        totals = _book_with_history().monthly_totals()

        assert [t.month for t in totals] == ["2024-01", "2024-02"]
        assert totals[0].income == Decimal("50000.00")
        assert totals[0].expense == Decimal("1550.50")
        assert totals[0].net == Decimal("48449.50")
        assert totals[1].income == Decimal("0.00")
        assert totals[1].net == Decimal("-49.50")

    def test_monthly_totals_latest_months(self):
        """Test limiting the trend to the most recent months."""
        totals = _book_with_history().monthly_totals(months=1)
        assert [t.month for t in totals] == ["2024-02"]

    def test_monthly_totals_rejects_zero_months(self):
        """Test the month window must be positive."""
        with pytest.raises(ValidationError):
            _book_with_history().monthly_totals(months=0)


class TestCategories:
    """Tests for built-in and custom categories."""

    def test_all_categories_defaults_first(self):
        """Test built-ins come before custom categories."""
        book = ExpenseBook()
        custom = book.add_custom_category("Pets", category_type="expense", icon="🐶")
        categories = book.get_all_categories()
        assert len(categories) == 17
        assert categories[-1] == custom

    def test_categories_by_type_include_both(self):
        """Test "both" categories are offered for either type."""
        book = ExpenseBook()
        book.add_custom_category("Refunds", category_type=CategoryType.BOTH)
        income = [c.name for c in book.get_categories_by_type("income")]
        expense = [c.name for c in book.get_categories_by_type("expense")]
        assert "Refunds" in income
        assert "Refunds" in expense
        assert "Salary" in income
        assert "Salary" not in expense

    def test_duplicate_category_name_rejected(self):
        """Test names are unique ignoring case."""
        book = ExpenseBook()
        with pytest.raises(ValidationError):
            book.add_custom_category("groceries")

    def test_update_and_delete_custom_category(self):
        """Test custom categories are editable and persisted."""
        storage = InMemoryStorage()
        book = ExpenseBook(storage)
        category = book.add_custom_category("Pets")

        updated = book.update_custom_category(category.id, {"color": "#112233"})
        assert updated.color == "#112233"
        assert storage.read_collection(CUSTOM_CATEGORIES)[0]["color"] == "#112233"

        book.delete_custom_category(category.id)
        assert book.custom_categories == []

    def test_update_custom_category_keeps_own_name(self):
        """Test re-saving a category under its own name is allowed."""
        book = ExpenseBook()
        category = book.add_custom_category("Pets")
        assert book.update_custom_category(category.id, {"name": "Pets"}).name == "Pets"

    def test_built_in_categories_are_read_only(self):
        """Test default categories cannot be edited or deleted."""
        book = ExpenseBook()
        with pytest.raises(NotFoundError):
            book.update_custom_category("1", {"name": "Food"})
        with pytest.raises(NotFoundError):
            book.delete_custom_category("1")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
