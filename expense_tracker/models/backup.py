"""
Backup Document Models

The backup document holds one array per collection plus
exportDate/version metadata.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from expense_tracker.models.budget import Budget, BudgetTransaction
from expense_tracker.models.common import RecordModel
from expense_tracker.models.expense import Transaction
from expense_tracker.models.friends import Friend, FriendTransaction
from expense_tracker.models.split import SplitExpense, SplitGroup


# Document key -> record model, in parent-before-child order
BACKUP_COLLECTIONS: dict[str, type[RecordModel]] = {
    "transactions": Transaction,
    "budgets": Budget,
    "budgetTransactions": BudgetTransaction,
    "splitGroups": SplitGroup,
    "splitExpenses": SplitExpense,
    "friends": Friend,
    "friendTransactions": FriendTransaction,
}


class ImportResult(BaseModel):
    """
    Records that survived schema and reference checks.

    ``dropped`` counts discarded records per document key.
    """

    transactions: list[Transaction] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)
    budget_transactions: list[BudgetTransaction] = Field(default_factory=list)
    split_groups: list[SplitGroup] = Field(default_factory=list)
    split_expenses: list[SplitExpense] = Field(default_factory=list)
    friends: list[Friend] = Field(default_factory=list)
    friend_transactions: list[FriendTransaction] = Field(default_factory=list)

    version: Optional[str] = None
    export_date: Optional[datetime] = None
    dropped: dict[str, int] = Field(default_factory=dict)

    @property
    def valid_count(self) -> int:
        return (
            len(self.transactions)
            + len(self.budgets)
            + len(self.budget_transactions)
            + len(self.split_groups)
            + len(self.split_expenses)
            + len(self.friends)
            + len(self.friend_transactions)
        )

    @property
    def dropped_count(self) -> int:
        return sum(self.dropped.values())

    @property
    def is_partial(self) -> bool:
        return self.dropped_count > 0
