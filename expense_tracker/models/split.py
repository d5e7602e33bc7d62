"""
Split Settlement Models

A SplitGroup lists its members in a stable order. That order is also the
order the settlement algorithm walks creditors and debtors in.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import Field, PlainSerializer, field_validator

from expense_tracker.models.common import (
    Amount,
    FlexibleDate,
    PositiveAmount,
    RecordId,
    RecordModel,
    new_id,
    utc_now,
)


def _reject_duplicates(values: list[str], label: str) -> list[str]:
    seen = set()
    for value in values:
        if value in seen:
            raise ValueError(f"Duplicate {label}: {value}")
        seen.add(value)
    return values


class SplitGroup(RecordModel):
    """A set of people sharing expenses."""

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
    members: list[RecordId] = Field(
        ...,
        min_length=1,
        description="Member ids in display order"
    )
    total_amount: Amount = Field(
        default=Decimal("0.00"),
        description="Derived: sum of the group's expenses"
    )
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('members')
    @classmethod
    def members_unique(cls, v: list[str]) -> list[str]:
        return _reject_duplicates(v, "member")


class SplitExpense(RecordModel):
    """
    One shared expense.

    The payer is credited the full amount; every id in split_among
    owes an equal share of it.
    """

    id: RecordId = Field(default_factory=new_id)
    split_group_id: RecordId
    description: str = Field(
        ...,
        min_length=1,
        max_length=500
    )
    amount: PositiveAmount
    paid_by: RecordId
    split_among: list[RecordId] = Field(
        ...,
        min_length=1,
        description="Members sharing this expense (never empty)"
    )
    date: FlexibleDate
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('split_among')
    @classmethod
    def split_among_unique(cls, v: list[str]) -> list[str]:
        return _reject_duplicates(v, "splitter")

    def check_membership(self, members: list[str]) -> Optional[str]:
        """
        Return a description of the first membership violation, if any.
        """
        allowed = set(members)
        if self.paid_by not in allowed:
            return f"Payer {self.paid_by} is not a member of the group"
        outsiders = [member for member in self.split_among if member not in allowed]
        if outsiders:
            return f"Not members of the group: {', '.join(outsiders)}"
        return None


class SplitBalance(RecordModel):
    """
    A single transfer instruction: from_friend pays to_friend.

    Derived only; never persisted.
    """

    from_friend: RecordId
    to_friend: RecordId
    amount: Annotated[
        Decimal,
        PlainSerializer(float, return_type=float, when_used="json"),
        Field(gt=0),
    ]
