"""
Expense Book Models

The user's own income and expense transactions, their categories,
and the per-category aggregate used by the analytics views.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from expense_tracker.models.common import (
    FlexibleDate,
    PositiveAmount,
    RecordId,
    RecordModel,
    new_id,
    utc_now,
)

NOTE_MAX_LENGTH = 500


class TransactionType(str, Enum):
    """Money in or money out."""
    INCOME = "income"
    EXPENSE = "expense"


class CategoryType(str, Enum):
    """Which transaction types a category applies to."""
    INCOME = "income"
    EXPENSE = "expense"
    BOTH = "both"


class Transaction(RecordModel):
    """A single income or expense entry."""

    id: RecordId = Field(default_factory=new_id)
    type: TransactionType
    amount: PositiveAmount
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=NOTE_MAX_LENGTH
    )
    date: FlexibleDate
    created_at: datetime = Field(default_factory=utc_now)


class Category(RecordModel):
    """A transaction category with display metadata."""

    id: RecordId = Field(default_factory=new_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100
    )
    icon: str = Field(default="🏷️", max_length=10)
    color: str = Field(
        default="#95A5A6",
        pattern="^#[0-9A-Fa-f]{6}$"
    )
    type: CategoryType = CategoryType.EXPENSE


class CategoryTotal(BaseModel):
    """Aggregate of all transactions sharing one category."""

    total: Decimal = Decimal("0.00")
    count: int = Field(default=0, ge=0)


class MonthlyTotal(BaseModel):
    """Income and expense folded over one calendar month."""

    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Calendar month as YYYY-MM"
    )
    income: Decimal = Decimal("0.00")
    expense: Decimal = Decimal("0.00")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    # Expense categories
    Category(id="1", name="Food & Dining", icon="🍽️", color="#FF6B6B", type=CategoryType.EXPENSE),
    Category(id="2", name="Transportation", icon="🚗", color="#4ECDC4", type=CategoryType.EXPENSE),
    Category(id="3", name="Shopping", icon="🛍️", color="#45B7D1", type=CategoryType.EXPENSE),
    Category(id="4", name="Entertainment", icon="🎬", color="#96CEB4", type=CategoryType.EXPENSE),
    Category(id="5", name="Bills & Utilities", icon="💡", color="#FECA57", type=CategoryType.EXPENSE),
    Category(id="6", name="Healthcare", icon="🏥", color="#FF9FF3", type=CategoryType.EXPENSE),
    Category(id="7", name="Education", icon="📚", color="#54A0FF", type=CategoryType.EXPENSE),
    Category(id="8", name="Travel", icon="✈️", color="#5F27CD", type=CategoryType.EXPENSE),
    Category(id="9", name="Groceries", icon="🛒", color="#00D2D3", type=CategoryType.EXPENSE),
    Category(id="10", name="Personal Care", icon="💄", color="#FF9FF3", type=CategoryType.EXPENSE),
    # Income categories
    Category(id="11", name="Salary", icon="💼", color="#26de81", type=CategoryType.INCOME),
    Category(id="12", name="Freelance", icon="💻", color="#2bcbba", type=CategoryType.INCOME),
    Category(id="13", name="Investment", icon="📈", color="#0fb9b1", type=CategoryType.INCOME),
    Category(id="14", name="Business", icon="🏢", color="#20bf6b", type=CategoryType.INCOME),
    Category(id="15", name="Gift", icon="🎁", color="#26de81", type=CategoryType.INCOME),
    Category(id="16", name="Other Income", icon="💰", color="#2bcbba", type=CategoryType.INCOME),
)
