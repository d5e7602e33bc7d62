"""
Friend Ledger

Tracks bilateral lent/borrowed entries between the user and each friend and
derives a signed balance per friend:

    balance = Σ(lent) − Σ(borrowed)

Positive means the friend owes the user, negative means the user owes the
friend, zero means settled.

CRITICAL: Friend.total_balance is never patched incrementally. Every mutation
that touches a friend's entries refolds that friend's whole log before the
collections are persisted.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from expense_tracker.audit import AuditLogger
from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.ledger.base import CollectionBook
from expense_tracker.models.common import apply_patch, parse_record
from expense_tracker.models.friends import (
    Friend,
    FriendTransaction,
    FriendTransactionType,
)
from expense_tracker.queries.aggregation import signed_total
from expense_tracker.services.storage import (
    FRIEND_TRANSACTIONS,
    FRIENDS,
    StorageInterface,
)


class FriendLedger(CollectionBook):
    """
    Aggregate root for friends and their lent/borrowed entries.
    """

    _collections = {"_entries": FRIEND_TRANSACTIONS, "_friends": FRIENDS}

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(storage, audit_logger)
        self._friends: dict[str, Friend] = self._load(FRIENDS, Friend)
        entries = self._load(FRIEND_TRANSACTIONS, FriendTransaction)
        # Entries whose friend is gone would break the cascade invariant
        self._entries: dict[str, FriendTransaction] = {
            entry_id: entry
            for entry_id, entry in entries.items()
            if entry.friend_id in self._friends
        }
        for friend_id in self._friends:
            self._refresh_balance(friend_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def friends(self) -> list[Friend]:
        return list(self._friends.values())

    @property
    def entries(self) -> list[FriendTransaction]:
        return list(self._entries.values())

    def get_friend(self, friend_id: str) -> Friend:
        if friend_id not in self._friends:
            raise NotFoundError("Friend", friend_id)
        return self._friends[friend_id]

    def get_entry(self, entry_id: str) -> FriendTransaction:
        if entry_id not in self._entries:
            raise NotFoundError("FriendTransaction", entry_id)
        return self._entries[entry_id]

    def get_friend_transactions(self, friend_id: str) -> list[FriendTransaction]:
        """Entries for one friend in insertion order (empty if none)."""
        return [entry for entry in self._entries.values() if entry.friend_id == friend_id]

    def balance_of(self, friend_id: str) -> Decimal:
        """
        Signed balance for a friend, folded from their entries.

        Pure: the same log always yields the same value.
        """
        return signed_total(
            self.get_friend_transactions(friend_id), lambda entry: entry.direction
        )

    def balances(self) -> dict[str, Decimal]:
        """{friend_id: balance} for every friend."""
        return {friend_id: self.balance_of(friend_id) for friend_id in self._friends}

    def total_owed_to_user(self) -> Decimal:
        """Sum of all positive balances."""
        return sum(
            (balance for balance in self.balances().values() if balance > 0),
            Decimal("0.00"),
        )

    def total_user_owes(self) -> Decimal:
        """Sum of all negative balances, as a positive amount."""
        return -sum(
            (balance for balance in self.balances().values() if balance < 0),
            Decimal("0.00"),
        )

    # ------------------------------------------------------------------
    # Friends
    # ------------------------------------------------------------------

    def add_friend(
        self,
        name: str,
        phone: Optional[str] = None,
        avatar: Optional[str] = None,
        friend_id: Optional[str] = None,
    ) -> Friend:
        """Create a friend with a zero balance."""
        data: dict[str, Any] = {"name": name, "phone": phone, "avatar": avatar}
        if friend_id is not None:
            data["id"] = friend_id

        try:
            friend = parse_record(Friend, data)
            if friend.id in self._friends:
                raise ValidationError(f"Friend already exists: {friend.id}", field="id")
        except ValidationError as e:
            self._rejected("add_friend", e)
            raise

        with self._mutation("_friends"):
            self._friends[friend.id] = friend
        self._audit.log_added("friend", friend.id, friend.name)
        return friend

    def update_friend(self, friend_id: str, patch: Mapping[str, Any]) -> Friend:
        """Patch name, phone or avatar. The balance cannot be edited."""
        current = self.get_friend(friend_id)
        try:
            updated = apply_patch(current, patch, protected=("total_balance",))
        except ValidationError as e:
            self._rejected("update_friend", e)
            raise

        with self._mutation("_friends"):
            self._friends[friend_id] = updated
        self._audit.log_updated("friend", friend_id, sorted(patch))
        return updated

    def delete_friend(self, friend_id: str) -> None:
        """Delete a friend, removing all of their entries first."""
        self.get_friend(friend_id)

        orphaned = [
            entry_id for entry_id, entry in self._entries.items()
            if entry.friend_id == friend_id
        ]
        with self._mutation():
            for entry_id in orphaned:
                del self._entries[entry_id]
            del self._friends[friend_id]
        self._audit.log_deleted("friend", friend_id, cascaded=len(orphaned))

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def add_entry(
        self,
        friend_id: str,
        entry_type: Union[FriendTransactionType, str],
        amount: Union[Decimal, int, float, str],
        entry_date: Union[date, str],
        description: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> FriendTransaction:
        """
        Record money lent to or borrowed from a friend.

        Raises:
            ValidationError: amount <= 0 or other invalid field
            NotFoundError: unknown friend
        """
        data: dict[str, Any] = {
            "friend_id": friend_id,
            "type": entry_type,
            "amount": amount,
            "date": entry_date,
            "description": description,
        }
        if entry_id is not None:
            data["id"] = entry_id

        try:
            entry = parse_record(FriendTransaction, data)
            self._check_amount(entry.amount)
            if entry.id in self._entries:
                raise ValidationError(f"Entry already exists: {entry.id}", field="id")
        except ValidationError as e:
            self._rejected("add_entry", e)
            raise
        self.get_friend(friend_id)

        with self._mutation():
            self._entries[entry.id] = entry
            self._refresh_balance(friend_id)
        self._audit.log_added(
            "friend_transaction",
            entry.id,
            f"{entry.type.value} {entry.amount}",
            details={"friend_id": friend_id},
        )
        return entry

    def update_entry(self, entry_id: str, patch: Mapping[str, Any]) -> FriendTransaction:
        """
        Patch an entry and refold the affected balance(s).

        If the entry moves to another friend, both friends are refolded.
        """
        current = self.get_entry(entry_id)
        try:
            updated = apply_patch(current, patch)
            self._check_amount(updated.amount)
        except ValidationError as e:
            self._rejected("update_entry", e)
            raise
        if updated.friend_id != current.friend_id:
            self.get_friend(updated.friend_id)

        with self._mutation():
            self._entries[entry_id] = updated
            self._refresh_balance(current.friend_id)
            if updated.friend_id != current.friend_id:
                self._refresh_balance(updated.friend_id)
        self._audit.log_updated("friend_transaction", entry_id, sorted(patch))
        return updated

    def delete_entry(self, entry_id: str) -> None:
        """Remove an entry and refold its friend's balance."""
        entry = self.get_entry(entry_id)

        with self._mutation():
            del self._entries[entry_id]
            self._refresh_balance(entry.friend_id)
        self._audit.log_deleted("friend_transaction", entry_id)

    # ------------------------------------------------------------------
    # Bulk replacement (import)
    # ------------------------------------------------------------------

    def replace_all(
        self,
        friends: list[Friend],
        entries: list[FriendTransaction],
    ) -> None:
        """
        Replace every friend and entry, then refold all balances.

        Entries for friends not in ``friends`` are discarded.
        """
        with self._mutation():
            self._friends = {friend.id: friend for friend in friends}
            self._entries = {
                entry.id: entry for entry in entries if entry.friend_id in self._friends
            }
            for friend_id in self._friends:
                self._refresh_balance(friend_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refresh_balance(self, friend_id: str) -> None:
        friend = self._friends.get(friend_id)
        if friend is None:
            return
        self._friends[friend_id] = friend.model_copy(
            update={"total_balance": self.balance_of(friend_id)}
        )
