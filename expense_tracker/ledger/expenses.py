"""
Expense Book

The user's own income and expense transactions plus custom categories.

Totals and per-category breakdowns are always folded from the current
transaction list; nothing here is cached.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from expense_tracker.audit import AuditLogger
from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.ledger.base import CollectionBook
from expense_tracker.models.common import apply_patch, coerce_date, parse_record
from expense_tracker.models.expense import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryTotal,
    CategoryType,
    MonthlyTotal,
    Transaction,
    TransactionType,
)
from expense_tracker.queries.aggregation import (
    filter_by_date,
    group_totals,
    monthly_totals,
    sum_amounts,
)
from expense_tracker.services.storage import (
    CUSTOM_CATEGORIES,
    TRANSACTIONS,
    StorageInterface,
)

DateInput = Optional[Union[date, str]]


def _amount_text(amount: Decimal) -> str:
    """Plain rendering used by search: 500.00 -> "500", 12.50 -> "12.5"."""
    return format(amount.normalize(), "f")


def _parse_bound(value: DateInput, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    value = coerce_date(value)
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Invalid {field} date: {value!r}", field=field) from e


class ExpenseBook(CollectionBook):
    """
    Aggregate root for income/expense transactions and custom categories.
    """

    _collections = {"_transactions": TRANSACTIONS, "_categories": CUSTOM_CATEGORIES}

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(storage, audit_logger)
        self._transactions: dict[str, Transaction] = self._load(TRANSACTIONS, Transaction)
        self._categories: dict[str, Category] = self._load(CUSTOM_CATEGORIES, Category)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions.values())

    def get_transaction(self, transaction_id: str) -> Transaction:
        if transaction_id not in self._transactions:
            raise NotFoundError("Transaction", transaction_id)
        return self._transactions[transaction_id]

    def list_transactions(self) -> list[Transaction]:
        """All transactions, newest first."""
        return sorted(
            self._transactions.values(),
            key=lambda t: (t.date, t.created_at),
            reverse=True,
        )

    def add_transaction(
        self,
        transaction_type: Union[TransactionType, str],
        amount: Union[Decimal, int, float, str],
        category: str,
        transaction_date: Union[date, str],
        note: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        """
        Record income or an expense.

        Raises:
            ValidationError: amount <= 0, blank category or other invalid field
        """
        transaction = self.build_transaction(
            transaction_type,
            amount,
            category,
            transaction_date,
            note=note,
            transaction_id=transaction_id,
        )
        return self.record_transaction(transaction)

    def build_transaction(
        self,
        transaction_type: Union[TransactionType, str],
        amount: Union[Decimal, int, float, str],
        category: str,
        transaction_date: Union[date, str],
        note: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        """
        Validate a transaction without recording it.

        Lets other books check a dependent write before they change anything.
        """
        data: dict[str, Any] = {
            "type": transaction_type,
            "amount": amount,
            "category": category,
            "date": transaction_date,
            "note": note,
        }
        if transaction_id is not None:
            data["id"] = transaction_id

        try:
            transaction = parse_record(Transaction, data)
            self._check_amount(transaction.amount)
            if transaction.id in self._transactions:
                raise ValidationError(
                    f"Transaction already exists: {transaction.id}", field="id"
                )
        except ValidationError as e:
            self._rejected("add_transaction", e)
            raise
        return transaction

    def record_transaction(self, transaction: Transaction) -> Transaction:
        """Store a transaction returned by ``build_transaction``."""
        if transaction.id in self._transactions:
            error = ValidationError(
                f"Transaction already exists: {transaction.id}", field="id"
            )
            self._rejected("add_transaction", error)
            raise error

        with self._mutation("_transactions"):
            self._transactions[transaction.id] = transaction
        self._audit.log_added(
            "transaction",
            transaction.id,
            f"{transaction.type.value} {transaction.amount} ({transaction.category})",
        )
        return transaction

    def update_transaction(
        self,
        transaction_id: str,
        patch: Mapping[str, Any],
    ) -> Transaction:
        current = self.get_transaction(transaction_id)
        try:
            updated = apply_patch(current, patch)
            self._check_amount(updated.amount)
        except ValidationError as e:
            self._rejected("update_transaction", e)
            raise

        with self._mutation("_transactions"):
            self._transactions[transaction_id] = updated
        self._audit.log_updated("transaction", transaction_id, sorted(patch))
        return updated

    def delete_transaction(self, transaction_id: str) -> None:
        self.get_transaction(transaction_id)

        with self._mutation("_transactions"):
            del self._transactions[transaction_id]
        self._audit.log_deleted("transaction", transaction_id)

    def search_transactions(self, query: str) -> list[Transaction]:
        """
        Case-insensitive match on category, note or amount, newest first.

        A blank query returns every transaction.
        """
        if not query.strip():
            return self.list_transactions()

        needle = query.lower()
        return [
            t for t in self.list_transactions()
            if needle in t.category.lower()
            or (t.note is not None and needle in t.note.lower())
            or needle in _amount_text(t.amount)
        ]

    def filter_transactions_by_date(
        self,
        start: DateInput = None,
        end: DateInput = None,
    ) -> list[Transaction]:
        """Transactions dated within the inclusive [start, end] range."""
        try:
            start_date = _parse_bound(start, "start")
            end_date = _parse_bound(end, "end")
        except ValidationError as e:
            self._rejected("filter_transactions_by_date", e)
            raise
        return filter_by_date(self.list_transactions(), start_date, end_date)

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def total_income(self) -> Decimal:
        return sum_amounts(
            t for t in self._transactions.values() if t.type is TransactionType.INCOME
        )

    def total_expense(self) -> Decimal:
        return sum_amounts(
            t for t in self._transactions.values() if t.type is TransactionType.EXPENSE
        )

    def balance(self) -> Decimal:
        """Income minus expenses."""
        return self.total_income() - self.total_expense()

    def category_totals(
        self,
        transaction_type: Optional[Union[TransactionType, str]] = None,
    ) -> dict[str, CategoryTotal]:
        """
        {category: CategoryTotal} in first-seen order.

        Pass a transaction type to restrict the breakdown to income or
        expenses; by default every transaction is counted.
        """
        records = self._transactions.values()
        if transaction_type is not None:
            wanted = TransactionType(transaction_type)
            records = [t for t in records if t.type is wanted]
        return group_totals(records, key=lambda t: t.category)

    def monthly_totals(self, months: Optional[int] = None) -> list[MonthlyTotal]:
        """
        Income, expense and net per calendar month, oldest first.

        Args:
            months: Keep only the most recent ``months`` months with activity.
        """
        if months is not None and months < 1:
            error = ValidationError("months must be at least 1", field="months")
            self._rejected("monthly_totals", error)
            raise error
        totals = monthly_totals(self._transactions.values())
        if months is not None:
            totals = totals[-months:]
        return totals

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @property
    def custom_categories(self) -> list[Category]:
        return list(self._categories.values())

    def get_all_categories(self) -> list[Category]:
        """Built-in categories followed by the user's custom ones."""
        return [*DEFAULT_CATEGORIES, *self._categories.values()]

    def get_categories_by_type(
        self,
        category_type: Union[CategoryType, str],
    ) -> list[Category]:
        """Categories usable for ``category_type``, including "both" ones."""
        wanted = CategoryType(category_type)
        return [
            category for category in self.get_all_categories()
            if category.type in (wanted, CategoryType.BOTH)
        ]

    def add_custom_category(
        self,
        name: str,
        category_type: Union[CategoryType, str] = CategoryType.EXPENSE,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> Category:
        """
        Create a custom category.

        Names are unique across built-in and custom categories,
        ignoring case.
        """
        data: dict[str, Any] = {"name": name, "type": category_type}
        if icon is not None:
            data["icon"] = icon
        if color is not None:
            data["color"] = color
        if category_id is not None:
            data["id"] = category_id

        try:
            category = parse_record(Category, data)
            self._check_category_unique(category)
        except ValidationError as e:
            self._rejected("add_custom_category", e)
            raise

        with self._mutation("_categories"):
            self._categories[category.id] = category
        self._audit.log_added("category", category.id, category.name)
        return category

    def update_custom_category(
        self,
        category_id: str,
        patch: Mapping[str, Any],
    ) -> Category:
        """Patch a custom category. Built-in categories are read-only."""
        current = self._get_custom_category(category_id)
        try:
            updated = apply_patch(current, patch)
            self._check_category_unique(updated, replacing=category_id)
        except ValidationError as e:
            self._rejected("update_custom_category", e)
            raise

        with self._mutation("_categories"):
            self._categories[category_id] = updated
        self._audit.log_updated("category", category_id, sorted(patch))
        return updated

    def delete_custom_category(self, category_id: str) -> None:
        """
        Delete a custom category.

        Transactions keep their category name.
        """
        self._get_custom_category(category_id)

        with self._mutation("_categories"):
            del self._categories[category_id]
        self._audit.log_deleted("category", category_id)

    # ------------------------------------------------------------------
    # Bulk replacement (import)
    # ------------------------------------------------------------------

    def replace_all(self, transactions: list[Transaction]) -> None:
        """Replace every transaction. Custom categories are left as they are."""
        with self._mutation("_transactions"):
            self._transactions = {t.id: t for t in transactions}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_custom_category(self, category_id: str) -> Category:
        if category_id not in self._categories:
            raise NotFoundError("Category", category_id)
        return self._categories[category_id]

    def _check_category_unique(
        self,
        category: Category,
        replacing: Optional[str] = None,
    ) -> None:
        for existing in self.get_all_categories():
            if existing.id == replacing:
                continue
            if existing.id == category.id:
                raise ValidationError(f"Category already exists: {category.id}", field="id")
            if existing.name.lower() == category.name.lower():
                raise ValidationError(
                    f"Category name already in use: {category.name}", field="name"
                )

