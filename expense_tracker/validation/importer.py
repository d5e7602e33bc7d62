"""
Backup Import/Export

DESIGN DECISION: An imported document is untrusted. It goes through two
stages before anything reaches a ledger:

STAGE 1 - SCHEMA:
- The document must be a JSON object with a "transactions" array
- Every other collection, if present, must be an array
- Each record is parsed into its strict model; failures are dropped

STAGE 2 - REFERENCES:
- Children whose parent is not in the document are dropped as orphans
- Split expenses whose payer or splitters are not members are dropped
- Repeated ids within a collection are dropped

IMPORTANT: Import NEVER silently loses data. If anything was dropped the
caller gets a MalformedImportError with the counts, unless it explicitly
confirmed a partial import.
"""

import json
from datetime import datetime
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from expense_tracker.config import get_settings
from expense_tracker.errors import MalformedImportError
from expense_tracker.models.backup import BACKUP_COLLECTIONS, ImportResult
from expense_tracker.models.common import RecordModel, describe_validation_error, utc_now

logger = structlog.get_logger(__name__)

REQUIRED_COLLECTIONS = ("transactions",)

RawDocument = Union[str, bytes, bytearray, Mapping[str, Any]]

_TIMESTAMP = TypeAdapter(datetime)


def export_document(tracker) -> dict:
    """
    Build the backup document for a tracker.

    Returns a JSON-ready dict with one array per collection plus
    ``exportDate`` and ``version``.
    """
    collections = {
        "transactions": tracker.expenses.transactions,
        "budgets": tracker.budgets.budgets,
        "budgetTransactions": tracker.budgets.transactions,
        "splitGroups": tracker.splits.groups,
        "splitExpenses": tracker.splits.expenses,
        "friends": tracker.friends.friends,
        "friendTransactions": tracker.friends.entries,
    }
    document: dict[str, Any] = {
        key: [record.to_record() for record in records]
        for key, records in collections.items()
    }
    document["exportDate"] = utc_now().isoformat()
    document["version"] = get_settings().app.export_version
    return document


def _decode(raw: RawDocument) -> Mapping[str, Any]:
    if isinstance(raw, Mapping):
        return raw
    try:
        document = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedImportError(f"Backup is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise MalformedImportError("Backup must be a JSON object")
    return document


def _export_date(value: Any) -> Optional[datetime]:
    # Metadata only: an unreadable timestamp is ignored
    if value is None:
        return None
    try:
        return _TIMESTAMP.validate_python(value)
    except PydanticValidationError:
        return None


def _parse_schema(
    document: Mapping[str, Any],
    dropped: dict[str, int],
) -> dict[str, list[RecordModel]]:
    """Stage 1: shape checks and per-record model parsing."""
    parsed: dict[str, list[RecordModel]] = {}

    for key, model in BACKUP_COLLECTIONS.items():
        if key not in document:
            if key in REQUIRED_COLLECTIONS:
                raise MalformedImportError(f"Backup is missing the '{key}' collection")
            parsed[key] = []
            continue

        rows = document[key]
        if not isinstance(rows, list):
            raise MalformedImportError(f"Backup collection '{key}' must be an array")

        records: list[RecordModel] = []
        seen: set[str] = set()
        for index, row in enumerate(rows):
            if not isinstance(row, Mapping):
                logger.warning("import_row_dropped", collection=key, index=index, error="not an object")
                dropped[key] = dropped.get(key, 0) + 1
                continue
            try:
                record = model.model_validate(dict(row))
            except PydanticValidationError as e:
                logger.warning(
                    "import_row_dropped",
                    collection=key,
                    index=index,
                    error=describe_validation_error(e),
                )
                dropped[key] = dropped.get(key, 0) + 1
                continue
            if record.id in seen:
                logger.warning("import_row_dropped", collection=key, index=index, error="duplicate id")
                dropped[key] = dropped.get(key, 0) + 1
                continue
            seen.add(record.id)
            records.append(record)
        parsed[key] = records

    return parsed


def _keep(key: str, records: list, predicate, dropped: dict[str, int]) -> list:
    kept = [record for record in records if predicate(record)]
    orphans = len(records) - len(kept)
    if orphans:
        logger.warning("import_orphans_dropped", collection=key, count=orphans)
        dropped[key] = dropped.get(key, 0) + orphans
    return kept


def _check_references(
    parsed: dict[str, list[RecordModel]],
    dropped: dict[str, int],
) -> None:
    """Stage 2: drop children whose parent is absent."""
    budget_ids = {budget.id for budget in parsed["budgets"]}
    parsed["budgetTransactions"] = _keep(
        "budgetTransactions",
        parsed["budgetTransactions"],
        lambda t: t.budget_id in budget_ids,
        dropped,
    )

    groups = {group.id: group for group in parsed["splitGroups"]}
    parsed["splitExpenses"] = _keep(
        "splitExpenses",
        parsed["splitExpenses"],
        lambda e: e.split_group_id in groups
        and e.check_membership(groups[e.split_group_id].members) is None,
        dropped,
    )

    friend_ids = {friend.id for friend in parsed["friends"]}
    parsed["friendTransactions"] = _keep(
        "friendTransactions",
        parsed["friendTransactions"],
        lambda t: t.friend_id in friend_ids,
        dropped,
    )


def parse_import(raw: RawDocument, confirm_partial: bool = False) -> ImportResult:
    """
    Parse and validate a backup document.

    Args:
        raw: JSON text or bytes, or an already-decoded mapping
        confirm_partial: Accept the document even if records were dropped

    Returns:
        ImportResult holding only records that passed both stages

    Raises:
        MalformedImportError: unusable document, or dropped records
            without ``confirm_partial``
    """
    document = _decode(raw)
    dropped: dict[str, int] = {}

    parsed = _parse_schema(document, dropped)
    _check_references(parsed, dropped)

    version = document.get("version")
    result = ImportResult(
        transactions=parsed["transactions"],
        budgets=parsed["budgets"],
        budget_transactions=parsed["budgetTransactions"],
        split_groups=parsed["splitGroups"],
        split_expenses=parsed["splitExpenses"],
        friends=parsed["friends"],
        friend_transactions=parsed["friendTransactions"],
        version=version if isinstance(version, str) else None,
        export_date=_export_date(document.get("exportDate")),
        dropped=dropped,
    )

    if result.is_partial and not confirm_partial:
        raise MalformedImportError(
            f"{result.dropped_count} invalid or orphaned record(s) would be dropped",
            valid_count=result.valid_count,
            dropped_count=result.dropped_count,
            dropped=dict(dropped),
        )
    return result
