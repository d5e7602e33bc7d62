"""
Settlement Engine

Pure functions behind the Split Settlement ledger:

1. split_minor_units: divide an amount into equal integer-paise shares
2. compute_net_positions: fold a group's expenses into signed positions
3. settle_positions: greedy debt-netting of positions into transfers

DESIGN DECISION: The netting is greedy, not minimum-transfer optimal.
Creditors and debtors are matched in the positions' iteration order, which
the ledger sets to the group's member order. The same positions always
produce the same plan.

CRITICAL: Every transfer decrements BOTH the creditor's remaining credit and
the debtor's remaining debt before the next pair is considered. A debtor can
never be asked to pay more than it owes in total.
"""

from decimal import Decimal
from typing import Iterable, Mapping

from expense_tracker.errors import ValidationError
from expense_tracker.models.split import SplitBalance, SplitExpense
from expense_tracker.money import from_minor_units, to_minor_units

DEFAULT_TOLERANCE = Decimal("0.01")


def split_minor_units(total: int, parts: int) -> list[int]:
    """
    Divide ``total`` paise into ``parts`` shares that add up exactly.

    The remainder paise go one each to the first shares, so
    ``split_minor_units(100, 3) == [34, 33, 33]``.

    Raises:
        ValidationError: parts is not positive
    """
    if parts <= 0:
        raise ValidationError("Cannot split an amount among zero people", field="split_among")

    base, remainder = divmod(total, parts)
    return [base + 1 if index < remainder else base for index in range(parts)]


def compute_net_positions(
    members: Iterable[str],
    expenses: Iterable[SplitExpense],
) -> dict[str, Decimal]:
    """
    Net position of every member across the given expenses.

    The payer is credited the full amount; each splitter is debited its
    share. Positive means the member is owed money, negative means the
    member owes money.

    Every member appears in ``members`` order, including zero positions.
    Ids referenced by an expense but missing from ``members`` are appended
    after them.

    Returns:
        {member_id: Decimal}. The values sum to exactly zero.
    """
    minor: dict[str, int] = {member: 0 for member in members}

    for expense in expenses:
        total = to_minor_units(expense.amount)
        minor[expense.paid_by] = minor.get(expense.paid_by, 0) + total

        shares = split_minor_units(total, len(expense.split_among))
        for splitter, share in zip(expense.split_among, shares):
            minor[splitter] = minor.get(splitter, 0) - share

    return {member: from_minor_units(value) for member, value in minor.items()}


def settle_positions(
    positions: Mapping[str, Decimal],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[SplitBalance]:
    """
    Greedily net signed positions into pairwise transfers.

    For each creditor in order, walk the debtors in order and transfer
    min(remaining credit, remaining debt) while both sides remain above
    ``tolerance``.

    Args:
        positions: {member_id: signed amount}; any iteration order
        tolerance: positions and remainders at or below this are settled

    Returns:
        Transfers in the order they were produced.
    """
    creditors = [[member, amount] for member, amount in positions.items() if amount > tolerance]
    debtors = [[member, -amount] for member, amount in positions.items() if amount < -tolerance]

    transfers: list[SplitBalance] = []
    for creditor in creditors:
        for debtor in debtors:
            if creditor[1] <= tolerance:
                break
            if debtor[1] <= tolerance:
                continue

            amount = min(creditor[1], debtor[1])
            transfers.append(
                SplitBalance(from_friend=debtor[0], to_friend=creditor[0], amount=amount)
            )
            creditor[1] -= amount
            debtor[1] -= amount

    return transfers
