"""
Budget Book

Spending targets per category over a date range, each with its own log of
budget transactions.

CRITICAL: Budget.spent_amount is derived the same way as a friend's balance:
refolded from the budget's full transaction log inside every mutation.

Spending recorded against a budget is also mirrored into the Expense Book
as an ordinary expense, so the overall totals include it.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from expense_tracker.audit import AuditLogger
from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.ledger.base import CollectionBook
from expense_tracker.ledger.expenses import ExpenseBook
from expense_tracker.models.budget import Budget, BudgetTransaction
from expense_tracker.models.common import apply_patch, clip_text, parse_record
from expense_tracker.models.expense import NOTE_MAX_LENGTH, TransactionType
from expense_tracker.queries.aggregation import sum_amounts
from expense_tracker.services.storage import (
    BUDGET_TRANSACTIONS,
    BUDGETS,
    StorageError,
    StorageInterface,
)


class BudgetBook(CollectionBook):
    """
    Aggregate root for budgets and their transactions.
    """

    _collections = {"_transactions": BUDGET_TRANSACTIONS, "_budgets": BUDGETS}

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        expense_book: Optional[ExpenseBook] = None,
    ):
        """
        Args:
            storage: Collection store shared with the other books
            audit_logger: Audit trail
            expense_book: Receives a mirrored expense for each budget
                transaction. If None, nothing is mirrored.
        """
        super().__init__(storage, audit_logger)
        self._expense_book = expense_book
        self._budgets: dict[str, Budget] = self._load(BUDGETS, Budget)
        transactions = self._load(BUDGET_TRANSACTIONS, BudgetTransaction)
        self._transactions: dict[str, BudgetTransaction] = {
            transaction_id: transaction
            for transaction_id, transaction in transactions.items()
            if transaction.budget_id in self._budgets
        }
        for budget_id in self._budgets:
            self._refresh_spent(budget_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets.values())

    @property
    def transactions(self) -> list[BudgetTransaction]:
        return list(self._transactions.values())

    def get_budget(self, budget_id: str) -> Budget:
        if budget_id not in self._budgets:
            raise NotFoundError("Budget", budget_id)
        return self._budgets[budget_id]

    def get_budget_transaction(self, transaction_id: str) -> BudgetTransaction:
        if transaction_id not in self._transactions:
            raise NotFoundError("BudgetTransaction", transaction_id)
        return self._transactions[transaction_id]

    def get_budget_transactions(self, budget_id: str) -> list[BudgetTransaction]:
        """Transactions of one budget in insertion order (empty if none)."""
        return [t for t in self._transactions.values() if t.budget_id == budget_id]

    def get_budget_spent(self, budget_id: str) -> Decimal:
        """Total spent against a budget, folded from its transactions."""
        return sum_amounts(self.get_budget_transactions(budget_id))

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def add_budget(
        self,
        name: str,
        target_amount: Union[Decimal, int, float, str],
        category: str,
        start_date: Union[date, str],
        end_date: Union[date, str],
        description: Optional[str] = None,
        budget_id: Optional[str] = None,
    ) -> Budget:
        """
        Create a budget with nothing spent.

        Raises:
            ValidationError: target <= 0, end before start, or other invalid field
        """
        data: dict[str, Any] = {
            "name": name,
            "target_amount": target_amount,
            "category": category,
            "start_date": start_date,
            "end_date": end_date,
            "description": description,
        }
        if budget_id is not None:
            data["id"] = budget_id

        try:
            budget = parse_record(Budget, data)
            self._check_amount(budget.target_amount, field="target_amount")
            if budget.id in self._budgets:
                raise ValidationError(f"Budget already exists: {budget.id}", field="id")
        except ValidationError as e:
            self._rejected("add_budget", e)
            raise

        with self._mutation("_budgets"):
            self._budgets[budget.id] = budget
        self._audit.log_added("budget", budget.id, f"{budget.name} {budget.target_amount}")
        return budget

    def update_budget(self, budget_id: str, patch: Mapping[str, Any]) -> Budget:
        """Patch a budget. spent_amount cannot be edited."""
        current = self.get_budget(budget_id)
        try:
            updated = apply_patch(current, patch, protected=("spent_amount",))
            self._check_amount(updated.target_amount, field="target_amount")
        except ValidationError as e:
            self._rejected("update_budget", e)
            raise

        with self._mutation("_budgets"):
            self._budgets[budget_id] = updated
        self._audit.log_updated("budget", budget_id, sorted(patch))
        return updated

    def delete_budget(self, budget_id: str) -> None:
        """
        Delete a budget and its transactions.

        Mirrored Expense Book entries are kept; they are ordinary expenses.
        """
        self.get_budget(budget_id)

        orphaned = [
            transaction_id for transaction_id, transaction in self._transactions.items()
            if transaction.budget_id == budget_id
        ]
        with self._mutation():
            for transaction_id in orphaned:
                del self._transactions[transaction_id]
            del self._budgets[budget_id]
        self._audit.log_deleted("budget", budget_id, cascaded=len(orphaned))

    # ------------------------------------------------------------------
    # Budget transactions
    # ------------------------------------------------------------------

    def add_budget_transaction(
        self,
        budget_id: str,
        amount: Union[Decimal, int, float, str],
        description: str,
        transaction_date: Union[date, str],
        transaction_id: Optional[str] = None,
    ) -> BudgetTransaction:
        """
        Record spending against a budget.

        Also records an expense in the budget's category with the note
        "Budget: <budget name> - <description>", clipped to the note limit.

        CRITICAL: The mirrored expense is validated before anything changes.
        If storing it fails, the budget transaction is taken back out, so the
        two books never disagree.

        Raises:
            ValidationError: amount <= 0 or other invalid field
            NotFoundError: unknown budget
            StorageError: a write failed; neither book changed
        """
        data: dict[str, Any] = {
            "budget_id": budget_id,
            "amount": amount,
            "description": description,
            "date": transaction_date,
        }
        if transaction_id is not None:
            data["id"] = transaction_id

        try:
            transaction = parse_record(BudgetTransaction, data)
            self._check_amount(transaction.amount)
            if transaction.id in self._transactions:
                raise ValidationError(
                    f"Budget transaction already exists: {transaction.id}", field="id"
                )
        except ValidationError as e:
            self._rejected("add_budget_transaction", e)
            raise
        budget = self.get_budget(budget_id)

        mirror = None
        if self._expense_book is not None:
            mirror = self._expense_book.build_transaction(
                TransactionType.EXPENSE,
                transaction.amount,
                budget.category,
                transaction.date,
                note=clip_text(
                    f"Budget: {budget.name} - {transaction.description}",
                    NOTE_MAX_LENGTH,
                ),
            )

        with self._mutation():
            self._transactions[transaction.id] = transaction
            self._refresh_spent(budget_id)

        if mirror is not None:
            try:
                self._expense_book.record_transaction(mirror)
            except StorageError:
                with self._mutation():
                    del self._transactions[transaction.id]
                    self._refresh_spent(budget_id)
                raise

        self._audit.log_added(
            "budget_transaction",
            transaction.id,
            f"{transaction.description} {transaction.amount}",
            details={"budget_id": budget_id},
        )
        return transaction

    def update_budget_transaction(
        self,
        transaction_id: str,
        patch: Mapping[str, Any],
    ) -> BudgetTransaction:
        """
        Patch a budget transaction and refold the affected budget(s).

        The mirrored expense is not changed.
        """
        current = self.get_budget_transaction(transaction_id)
        try:
            updated = apply_patch(current, patch)
            self._check_amount(updated.amount)
        except ValidationError as e:
            self._rejected("update_budget_transaction", e)
            raise
        if updated.budget_id != current.budget_id:
            self.get_budget(updated.budget_id)

        with self._mutation():
            self._transactions[transaction_id] = updated
            self._refresh_spent(current.budget_id)
            if updated.budget_id != current.budget_id:
                self._refresh_spent(updated.budget_id)
        self._audit.log_updated("budget_transaction", transaction_id, sorted(patch))
        return updated

    def delete_budget_transaction(self, transaction_id: str) -> None:
        transaction = self.get_budget_transaction(transaction_id)

        with self._mutation():
            del self._transactions[transaction_id]
            self._refresh_spent(transaction.budget_id)
        self._audit.log_deleted("budget_transaction", transaction_id)

    # ------------------------------------------------------------------
    # Bulk replacement (import)
    # ------------------------------------------------------------------

    def replace_all(
        self,
        budgets: list[Budget],
        transactions: list[BudgetTransaction],
    ) -> None:
        """
        Replace every budget and transaction, then refold spent amounts.

        Nothing is mirrored into the Expense Book.
        """
        with self._mutation():
            self._budgets = {budget.id: budget for budget in budgets}
            self._transactions = {
                t.id: t for t in transactions if t.budget_id in self._budgets
            }
            for budget_id in self._budgets:
                self._refresh_spent(budget_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refresh_spent(self, budget_id: str) -> None:
        budget = self._budgets.get(budget_id)
        if budget is None:
            return
        self._budgets[budget_id] = budget.model_copy(
            update={"spent_amount": self.get_budget_spent(budget_id)}
        )
