"""
Shared Model Building Blocks

Every persisted record derives from RecordModel:
- camelCase keys on the wire (the backup/export format), snake_case in Python
- amounts are Decimal at 2 places, written to JSON as numbers
- dates accept date, datetime or ISO strings

DESIGN DECISION: Partial updates go through apply_patch, which re-runs full
model validation on the merged record. A patch can never produce a record
that could not have been created directly.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Iterable, Mapping, TypeVar
from uuid import uuid4

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from expense_tracker.errors import ValidationError
from expense_tracker.money import to_decimal


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid4())


def clip_text(text: str, limit: int) -> str:
    """Shorten text to at most ``limit`` characters, marking the cut with "..."."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def _parse_iso(value: str) -> datetime:
    # fromisoformat only learned the trailing Z in 3.11
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def coerce_date(value: Any) -> Any:
    """
    Reduce datetimes and ISO timestamps to their date part.

    Other values are left for pydantic's own date parsing.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and ("T" in value or " " in value.strip()):
        try:
            return _parse_iso(value).date()
        except ValueError:
            return value
    return value


Amount = Annotated[
    Decimal,
    BeforeValidator(to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]

PositiveAmount = Annotated[
    Decimal,
    BeforeValidator(to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
    Field(gt=0),
]

FlexibleDate = Annotated[date, BeforeValidator(coerce_date)]

RecordId = Annotated[str, Field(min_length=1, max_length=100)]


class RecordModel(BaseModel):
    """Base class for every persisted record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_record(self) -> dict:
        """Serialise to the camelCase JSON shape used by storage and backups."""
        return self.model_dump(mode="json", by_alias=True)


RecordT = TypeVar("RecordT", bound=RecordModel)


def describe_validation_error(error: PydanticValidationError) -> str:
    """Flatten a pydantic error into one readable line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "record"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def parse_record(model: type[RecordT], data: Mapping[str, Any]) -> RecordT:
    """
    Build a record, raising the domain ValidationError on bad input.
    """
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as e:
        first = e.errors()[0]["loc"] if e.errors() else ()
        field = str(first[0]) if first else None
        raise ValidationError(
            f"Invalid {model.__name__}: {describe_validation_error(e)}",
            field=field,
        ) from e


def normalise_keys(model: type[RecordModel], data: Mapping[str, Any]) -> dict:
    """
    Map camelCase aliases to field names.

    Raises ValidationError for keys the model does not define.
    """
    by_alias = {
        (info.alias or name): name for name, info in model.model_fields.items()
    }
    normalised = {}
    for key, value in data.items():
        if key in model.model_fields:
            normalised[key] = value
        elif key in by_alias:
            normalised[by_alias[key]] = value
        else:
            raise ValidationError(
                f"{model.__name__} has no field '{key}'",
                field=key,
            )
    return normalised


def apply_patch(
    record: RecordT,
    patch: Mapping[str, Any],
    protected: Iterable[str] = (),
) -> RecordT:
    """
    Return a re-validated copy of ``record`` with ``patch`` applied.

    ``id``, ``created_at`` and any ``protected`` fields may not be patched.
    """
    model = type(record)
    changes = normalise_keys(model, patch)

    locked = {"id", "created_at", *protected}
    touched = locked.intersection(changes)
    if touched:
        raise ValidationError(
            f"Field(s) cannot be updated directly: {', '.join(sorted(touched))}",
            field=sorted(touched)[0],
        )

    merged = record.model_dump()
    merged.update(changes)
    return parse_record(model, merged)
