"""
Friend Ledger Models

A Friend carries a cached signed balance; a FriendTransaction is one
lent/borrowed entry against that friend.

CRITICAL: Friend.total_balance is a derived cache. Only the ledger writes it,
always by refolding the friend's full entry log.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from expense_tracker.models.common import (
    Amount,
    FlexibleDate,
    PositiveAmount,
    RecordId,
    RecordModel,
    new_id,
    utc_now,
)


class FriendTransactionType(str, Enum):
    """
    Direction of money between the user and a friend.

    LENT: the user gave money, so the friend owes more.
    BORROWED: the user received money, so the user owes more.
    """
    LENT = "lent"
    BORROWED = "borrowed"


class Friend(RecordModel):
    """A person the user lends to or borrows from."""

    id: RecordId = Field(default_factory=new_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    phone: Optional[str] = Field(
        default=None,
        max_length=30,
        description="Contact number"
    )
    avatar: Optional[str] = Field(
        default=None,
        description="Avatar URL or emoji"
    )
    total_balance: Amount = Field(
        default=Decimal("0.00"),
        description="Positive = friend owes user, negative = user owes friend"
    )
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_settled(self) -> bool:
        return self.total_balance == 0


class FriendTransaction(RecordModel):
    """One lent or borrowed entry between the user and a friend."""

    id: RecordId = Field(default_factory=new_id)
    friend_id: RecordId
    type: FriendTransactionType
    amount: PositiveAmount
    description: Optional[str] = Field(
        default=None,
        max_length=500
    )
    date: FlexibleDate
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def direction(self) -> int:
        """+1 when lent (friend owes more), -1 when borrowed."""
        return 1 if self.type is FriendTransactionType.LENT else -1
