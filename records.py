"""Record variants for each shop collection and document validation helpers."""

from __future__ import annotations

import dataclasses
import datetime
import re
from typing import Any, Mapping

import pandas as pd


class MalformedDateError(ValueError):
    """Raised when a record date cannot be read as a calendar date."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"Malformed date: {value!r}")
        self.value = value


@dataclasses.dataclass(frozen=True)
class Sale:
    date: datetime.date
    item_name: str = ""
    amount: float = 0.0
    created_at: datetime.datetime | None = None
    id: str | None = None


@dataclasses.dataclass(frozen=True)
class Expense:
    date: datetime.date
    item_name: str = ""
    amount: float = 0.0
    created_at: datetime.datetime | None = None
    id: str | None = None


@dataclasses.dataclass(frozen=True)
class VolunteerSession:
    date: datetime.date
    volunteer_id: str = ""
    hours: float = 0.0
    id: str | None = None


@dataclasses.dataclass(frozen=True)
class TrashDisposal:
    date: datetime.date
    blue_bags: int = 0
    yellow_bags: int = 0
    trips_to_landfill: int = 0
    notes: str = ""
    id: str | None = None


@dataclasses.dataclass(frozen=True)
class LendingItem:
    """An item out on loan; ``date`` is the day it was borrowed."""

    date: datetime.date
    item_name: str = ""
    borrower: str = ""
    date_returned: datetime.date | None = None
    notes: str = ""
    id: str | None = None

    @property
    def is_outstanding(self) -> bool:
        return self.date_returned is None


@dataclasses.dataclass(frozen=True)
class GiftedItem:
    """An item given to another organization; ``date`` is the gift date."""

    date: datetime.date
    item_name: str = ""
    organization: str = ""
    notes: str = ""
    id: str | None = None


@dataclasses.dataclass(frozen=True)
class Volunteer:
    name: str = ""
    id: str | None = None


SALES = "sales"
EXPENSES = "expenses"
VOLUNTEER_SESSIONS = "volunteerSessions"
DISPOSED_TRASH = "disposedTrash"
LENDING_ITEMS = "lendingItems"
GIFTED_ITEMS = "giftedItems"
VOLUNTEERS = "volunteers"

DATED_COLLECTIONS = (SALES, EXPENSES, VOLUNTEER_SESSIONS, DISPOSED_TRASH, LENDING_ITEMS, GIFTED_ITEMS)

RECORD_TYPES: dict[str, type] = {
    SALES: Sale,
    EXPENSES: Expense,
    VOLUNTEER_SESSIONS: VolunteerSession,
    DISPOSED_TRASH: TrashDisposal,
    LENDING_ITEMS: LendingItem,
    GIFTED_ITEMS: GiftedItem,
    VOLUNTEERS: Volunteer,
}

# Document field names per attribute; anything not listed maps to itself.
_DOCUMENT_FIELDS: dict[str, dict[str, str]] = {
    SALES: {"item_name": "itemName", "created_at": "createdAt"},
    EXPENSES: {"item_name": "itemName", "created_at": "createdAt"},
    VOLUNTEER_SESSIONS: {"volunteer_id": "volunteerId"},
    DISPOSED_TRASH: {
        "blue_bags": "blueBags",
        "yellow_bags": "yellowBags",
        "trips_to_landfill": "tripsToLandfill",
    },
    LENDING_ITEMS: {
        "date": "dateBorrowed",
        "item_name": "itemName",
        "date_returned": "dateReturned",
    },
    GIFTED_ITEMS: {"date": "dateGifted", "item_name": "itemName"},
    VOLUNTEERS: {},
}

_FLOAT_FIELDS = {"amount", "hours"}
_INT_FIELDS = {"blue_bags", "yellow_bags", "trips_to_landfill"}

# Calendar date, optionally followed by a time; the time part is checked by pandas.
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}.*)?")


def date_field(collection: str) -> str:
    """Return the document field holding the record date for a collection."""
    return _DOCUMENT_FIELDS[_check_collection(collection)].get("date", "date")


def _check_collection(collection: str) -> str:
    if collection not in RECORD_TYPES:
        raise ValueError(f"Unsupported collection: {collection}")
    return collection


def parse_record_date(value: Any) -> datetime.date:
    """Return a calendar date from a date, datetime, timestamp or ISO string."""
    if value is pd.NaT:
        raise MalformedDateError(value)
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not _ISO_DATE.fullmatch(text):
            raise MalformedDateError(value)
        try:
            if len(text) == 10:
                return datetime.date.fromisoformat(text)
            return pd.to_datetime(text, format="ISO8601").date()
        except (TypeError, ValueError):
            raise MalformedDateError(value) from None
    raise MalformedDateError(value)


def _parse_optional_date(value: Any) -> datetime.date | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_record_date(value)


def _parse_timestamp(value: Any) -> datetime.datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value
    stamp = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(stamp):
        return None
    return stamp.to_pydatetime()


def _to_number(name: str, value: Any) -> float | int:
    if value is None or value == "":
        return 0 if name in _INT_FIELDS else 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Field {name} is not numeric: {value!r}") from None
    return int(number) if name in _INT_FIELDS else number


def from_document(collection: str, doc_id: str | None, payload: Mapping[str, Any]) -> Any:
    """Validate a raw document and build its record variant."""
    record_type = RECORD_TYPES[_check_collection(collection)]
    names = _DOCUMENT_FIELDS[collection]
    values: dict[str, Any] = {"id": doc_id}
    for field in dataclasses.fields(record_type):
        if field.name == "id":
            continue
        key = names.get(field.name, field.name)
        raw = payload.get(key)
        if field.name == "date":
            values["date"] = parse_record_date(raw)
        elif field.name == "date_returned":
            values["date_returned"] = _parse_optional_date(raw)
        elif field.name == "created_at":
            values["created_at"] = _parse_timestamp(raw)
        elif field.name in _FLOAT_FIELDS or field.name in _INT_FIELDS:
            values[field.name] = _to_number(field.name, raw)
        elif raw is not None:
            values[field.name] = str(raw)
    return record_type(**values)


def to_document_fields(collection: str, values: Mapping[str, Any]) -> dict[str, Any]:
    """Rename record attributes to document fields and write dates as ISO strings."""
    names = _DOCUMENT_FIELDS[_check_collection(collection)]
    payload: dict[str, Any] = {}
    for name, value in values.items():
        if name == "id":
            continue
        if isinstance(value, (datetime.date, datetime.datetime)):
            value = value.isoformat()
        payload[names.get(name, name)] = value
    return payload


def to_document(collection: str, record: Any) -> dict[str, Any]:
    """Map a record to its camelCase document payload (without the id)."""
    values = {field.name: getattr(record, field.name) for field in dataclasses.fields(record)}
    return to_document_fields(collection, values)


def records_frame(records: list[Any]) -> pd.DataFrame:
    """Tabulate records with a datetime ``Date`` column for display and filtering."""
    if not records:
        return pd.DataFrame(columns=["id", "Date"])
    df = pd.DataFrame([dataclasses.asdict(record) for record in records])
    if "date" in df.columns:
        df["Date"] = pd.to_datetime(df["date"])
        df = df.drop(columns=["date"])
    cols = ["id", "Date"] + [col for col in df.columns if col not in ("id", "Date")]
    return df[[col for col in cols if col in df.columns]]
