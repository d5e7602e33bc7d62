"""
Budget Models

A Budget caps spending in one category over a date range.
spent_amount is derived from its BudgetTransactions, like Friend.total_balance.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, model_validator

from expense_tracker.models.common import (
    Amount,
    FlexibleDate,
    PositiveAmount,
    RecordId,
    RecordModel,
    new_id,
    utc_now,
)


class Budget(RecordModel):
    """Spending target for a category over a period."""

    id: RecordId = Field(default_factory=new_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500
    )
    target_amount: PositiveAmount
    spent_amount: Amount = Field(
        default=Decimal("0.00"),
        description="Derived: sum of the budget's transactions"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100
    )
    start_date: FlexibleDate
    end_date: FlexibleDate
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_dates(self) -> 'Budget':
        """End date cannot precede start date."""
        if self.end_date < self.start_date:
            raise ValueError("Budget end date cannot be before start date")
        return self

    @property
    def remaining_amount(self) -> Decimal:
        return self.target_amount - self.spent_amount

    @property
    def is_over_budget(self) -> bool:
        return self.spent_amount > self.target_amount


class BudgetTransaction(RecordModel):
    """Money spent against a budget."""

    id: RecordId = Field(default_factory=new_id)
    budget_id: RecordId
    amount: PositiveAmount
    description: str = Field(
        ...,
        min_length=1,
        max_length=500
    )
    date: FlexibleDate
    created_at: datetime = Field(default_factory=utc_now)
