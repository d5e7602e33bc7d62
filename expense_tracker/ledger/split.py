"""
Split Settlement Ledger

Groups of people sharing expenses. Each expense credits its payer the full
amount and debits every splitter an equal share. The ledger derives each
member's net position and a greedy plan of transfers that settles the group.

CRITICAL: SplitGroup.total_amount is a derived cache. It is recomputed from
the group's full expense log inside every call that changes that log.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from expense_tracker.audit import AuditLogger
from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.ledger.base import CollectionBook
from expense_tracker.ledger.settlement import compute_net_positions, settle_positions
from expense_tracker.models.common import apply_patch, parse_record
from expense_tracker.models.split import SplitBalance, SplitExpense, SplitGroup
from expense_tracker.queries.aggregation import sum_amounts
from expense_tracker.services.storage import (
    SPLIT_EXPENSES,
    SPLIT_GROUPS,
    StorageInterface,
)


class SplitLedger(CollectionBook):
    """
    Aggregate root for split groups and their shared expenses.
    """

    _collections = {"_expenses": SPLIT_EXPENSES, "_groups": SPLIT_GROUPS}

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(storage, audit_logger)
        self._groups: dict[str, SplitGroup] = self._load(SPLIT_GROUPS, SplitGroup)
        expenses = self._load(SPLIT_EXPENSES, SplitExpense)
        self._expenses: dict[str, SplitExpense] = {
            expense_id: expense
            for expense_id, expense in expenses.items()
            if expense.split_group_id in self._groups
        }
        for group_id in self._groups:
            self._refresh_total(group_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def groups(self) -> list[SplitGroup]:
        return list(self._groups.values())

    @property
    def expenses(self) -> list[SplitExpense]:
        return list(self._expenses.values())

    def get_group(self, group_id: str) -> SplitGroup:
        if group_id not in self._groups:
            raise NotFoundError("SplitGroup", group_id)
        return self._groups[group_id]

    def get_expense(self, expense_id: str) -> SplitExpense:
        if expense_id not in self._expenses:
            raise NotFoundError("SplitExpense", expense_id)
        return self._expenses[expense_id]

    def get_group_expenses(self, group_id: str) -> list[SplitExpense]:
        """Expenses of one group in insertion order (empty if none)."""
        return [
            expense for expense in self._expenses.values()
            if expense.split_group_id == group_id
        ]

    def net_positions(self, group_id: str) -> dict[str, Decimal]:
        """
        {member_id: net position} for every member, in member order.

        Positive: the member is owed money. Negative: the member owes.
        """
        group = self.get_group(group_id)
        return compute_net_positions(group.members, self.get_group_expenses(group_id))

    def settle(self, group_id: str) -> list[SplitBalance]:
        """
        Transfers that bring every member's position to zero.

        Pure: calling it twice yields the same plan.
        """
        return settle_positions(
            self.net_positions(group_id),
            self._settings.settlement_tolerance,
        )

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def add_group(
        self,
        name: str,
        members: list[str],
        description: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> SplitGroup:
        """Create a group. Members must be non-empty and unique."""
        data: dict[str, Any] = {
            "name": name,
            "members": list(members),
            "description": description,
        }
        if group_id is not None:
            data["id"] = group_id

        try:
            group = parse_record(SplitGroup, data)
            if group.id in self._groups:
                raise ValidationError(f"Group already exists: {group.id}", field="id")
        except ValidationError as e:
            self._rejected("add_group", e)
            raise

        with self._mutation("_groups"):
            self._groups[group.id] = group
        self._audit.log_added(
            "split_group", group.id, group.name, details={"members": len(group.members)}
        )
        return group

    def update_group(self, group_id: str, patch: Mapping[str, Any]) -> SplitGroup:
        """
        Patch name, description or members.

        A member referenced by any of the group's expenses cannot be removed.
        """
        current = self.get_group(group_id)
        try:
            updated = apply_patch(current, patch, protected=("total_amount",))
            referenced = self._referenced_members(group_id)
            removed = [member for member in referenced if member not in updated.members]
            if removed:
                raise ValidationError(
                    f"Members still referenced by expenses: {', '.join(removed)}",
                    field="members",
                )
        except ValidationError as e:
            self._rejected("update_group", e)
            raise

        with self._mutation("_groups"):
            self._groups[group_id] = updated
        self._audit.log_updated("split_group", group_id, sorted(patch))
        return updated

    def delete_group(self, group_id: str) -> None:
        """Delete a group, removing all of its expenses first."""
        self.get_group(group_id)

        orphaned = [
            expense_id for expense_id, expense in self._expenses.items()
            if expense.split_group_id == group_id
        ]
        with self._mutation():
            for expense_id in orphaned:
                del self._expenses[expense_id]
            del self._groups[group_id]
        self._audit.log_deleted("split_group", group_id, cascaded=len(orphaned))

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def add_expense(
        self,
        group_id: str,
        description: str,
        amount: Union[Decimal, int, float, str],
        paid_by: str,
        split_among: list[str],
        expense_date: Union[date, str],
        expense_id: Optional[str] = None,
    ) -> SplitExpense:
        """
        Record a shared expense.

        Raises:
            ValidationError: amount <= 0, empty split_among, or payer or
                splitter outside the group
            NotFoundError: unknown group
        """
        data: dict[str, Any] = {
            "split_group_id": group_id,
            "description": description,
            "amount": amount,
            "paid_by": paid_by,
            "split_among": list(split_among),
            "date": expense_date,
        }
        if expense_id is not None:
            data["id"] = expense_id

        try:
            expense = parse_record(SplitExpense, data)
            self._check_amount(expense.amount)
            if expense.id in self._expenses:
                raise ValidationError(f"Expense already exists: {expense.id}", field="id")
        except ValidationError as e:
            self._rejected("add_expense", e)
            raise
        group = self.get_group(group_id)
        self._check_membership(expense, group, "add_expense")

        with self._mutation():
            self._expenses[expense.id] = expense
            self._refresh_total(group_id)
        self._audit.log_added(
            "split_expense",
            expense.id,
            f"{expense.description} {expense.amount}",
            details={"group_id": group_id, "paid_by": expense.paid_by},
        )
        return expense

    def update_expense(self, expense_id: str, patch: Mapping[str, Any]) -> SplitExpense:
        """
        Patch an expense, re-validating it against its (possibly new) group.

        Both the old and the new group's totals are recomputed.
        """
        current = self.get_expense(expense_id)
        try:
            updated = apply_patch(current, patch)
            self._check_amount(updated.amount)
        except ValidationError as e:
            self._rejected("update_expense", e)
            raise
        group = self.get_group(updated.split_group_id)
        self._check_membership(updated, group, "update_expense")

        with self._mutation():
            self._expenses[expense_id] = updated
            self._refresh_total(current.split_group_id)
            if updated.split_group_id != current.split_group_id:
                self._refresh_total(updated.split_group_id)
        self._audit.log_updated("split_expense", expense_id, sorted(patch))
        return updated

    def delete_expense(self, expense_id: str) -> None:
        """Remove an expense and recompute its group's total."""
        expense = self.get_expense(expense_id)

        with self._mutation():
            del self._expenses[expense_id]
            self._refresh_total(expense.split_group_id)
        self._audit.log_deleted("split_expense", expense_id)

    # ------------------------------------------------------------------
    # Bulk replacement (import)
    # ------------------------------------------------------------------

    def replace_all(
        self,
        groups: list[SplitGroup],
        expenses: list[SplitExpense],
    ) -> None:
        """
        Replace every group and expense, then recompute all totals.

        Expenses for groups not in ``groups`` are discarded.
        """
        with self._mutation():
            self._groups = {group.id: group for group in groups}
            self._expenses = {
                expense.id: expense
                for expense in expenses
                if expense.split_group_id in self._groups
            }
            for group_id in self._groups:
                self._refresh_total(group_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_membership(
        self,
        expense: SplitExpense,
        group: SplitGroup,
        operation: str,
    ) -> None:
        problem = expense.check_membership(group.members)
        if problem:
            error = ValidationError(problem, field="split_among")
            self._rejected(operation, error)
            raise error

    def _referenced_members(self, group_id: str) -> list[str]:
        referenced: list[str] = []
        for expense in self.get_group_expenses(group_id):
            for member in [expense.paid_by, *expense.split_among]:
                if member not in referenced:
                    referenced.append(member)
        return referenced

    def _refresh_total(self, group_id: str) -> None:
        group = self._groups.get(group_id)
        if group is None:
            return
        self._groups[group_id] = group.model_copy(
            update={"total_amount": sum_amounts(self.get_group_expenses(group_id))}
        )
