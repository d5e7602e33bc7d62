"""
Ledgers Package

Aggregate roots that own the tracker's collections:
- FriendLedger: lent/borrowed balances with friends
- SplitLedger: shared group expenses and their settlement
- ExpenseBook: the user's own income and expenses
- BudgetBook: spending targets per category
"""

from expense_tracker.ledger.budgets import BudgetBook
from expense_tracker.ledger.expenses import ExpenseBook
from expense_tracker.ledger.friends import FriendLedger
from expense_tracker.ledger.settlement import (
    compute_net_positions,
    settle_positions,
    split_minor_units,
)
from expense_tracker.ledger.split import SplitLedger

__all__ = [
    "BudgetBook",
    "ExpenseBook",
    "FriendLedger",
    "SplitLedger",
    # Settlement engine
    "compute_net_positions",
    "settle_positions",
    "split_minor_units",
]
