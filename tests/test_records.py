import datetime

import pandas as pd
import pytest

from records import (
    DISPOSED_TRASH,
    GIFTED_ITEMS,
    LENDING_ITEMS,
    SALES,
    VOLUNTEERS,
    LendingItem,
    MalformedDateError,
    Sale,
    TrashDisposal,
    Volunteer,
    date_field,
    from_document,
    parse_record_date,
    records_frame,
    to_document,
    to_document_fields,
)


def test_parse_record_date_accepts_common_shapes() -> None:
    day = datetime.date(2024, 1, 5)

    assert parse_record_date("2024-01-05") == day
    assert parse_record_date("2024-01-05T18:30:00Z") == day
    assert parse_record_date(datetime.datetime(2024, 1, 5, 23, 59)) == day
    assert parse_record_date(pd.Timestamp("2024-01-05")) == day


def test_parse_record_date_rejects_garbage() -> None:
    bad = ["", "yesterday", "2024-13-01", None, 20240105, pd.NaT]
    bad += ["2024-01-05garbage", "20240105xx", "20240105", "2024-W01-1", "2024-01-05Tnoon"]
    for value in bad:
        with pytest.raises(MalformedDateError):
            parse_record_date(value)


def test_date_field_per_collection() -> None:
    assert date_field(SALES) == "date"
    assert date_field(LENDING_ITEMS) == "dateBorrowed"
    assert date_field(GIFTED_ITEMS) == "dateGifted"
    with pytest.raises(ValueError):
        date_field("customers")


def test_from_document_builds_lending_item() -> None:
    payload = {
        "dateBorrowed": "2024-02-01",
        "itemName": "Ladder",
        "borrower": "Rosa",
        "dateReturned": "",
        "notes": "back by Friday",
    }

    item = from_document(LENDING_ITEMS, "doc-1", payload)

    assert item == LendingItem(
        date=datetime.date(2024, 2, 1),
        item_name="Ladder",
        borrower="Rosa",
        date_returned=None,
        notes="back by Friday",
        id="doc-1",
    )
    assert item.is_outstanding


def test_from_document_fills_missing_numbers_and_parses_created_at() -> None:
    trash = from_document(DISPOSED_TRASH, "t1", {"date": "2024-03-09", "blueBags": "3"})
    sale = from_document(SALES, "s1", {"date": "2024-03-09", "amount": 4, "createdAt": "2024-03-09T10:00:00Z"})

    assert trash == TrashDisposal(date=datetime.date(2024, 3, 9), blue_bags=3, id="t1")
    assert sale.amount == 4.0
    assert sale.created_at == datetime.datetime(2024, 3, 9, 10, tzinfo=datetime.timezone.utc)


def test_from_document_rejects_bad_payloads() -> None:
    with pytest.raises(MalformedDateError):
        from_document(SALES, "s1", {"amount": 1})
    with pytest.raises(ValueError, match="amount"):
        from_document(SALES, "s1", {"date": "2024-01-01", "amount": "ten"})
    with pytest.raises(ValueError):
        from_document("customers", "c1", {})


def test_to_document_uses_stored_field_names() -> None:
    item = LendingItem(date=datetime.date(2024, 2, 1), item_name="Ladder", id="doc-1")

    payload = to_document(LENDING_ITEMS, item)

    assert payload == {
        "dateBorrowed": "2024-02-01",
        "itemName": "Ladder",
        "borrower": "",
        "dateReturned": None,
        "notes": "",
    }
    assert to_document_fields(LENDING_ITEMS, {"date_returned": datetime.date(2024, 2, 9)}) == {
        "dateReturned": "2024-02-09"
    }
    assert to_document(VOLUNTEERS, Volunteer(name="Alex")) == {"name": "Alex"}


def test_records_frame_puts_id_and_date_first() -> None:
    sales = [
        Sale(date=datetime.date(2024, 1, 2), item_name="Mug", amount=2.5, id="a"),
        Sale(date=datetime.date(2024, 1, 3), item_name="Lamp", amount=8, id="b"),
    ]

    out = records_frame(sales)

    assert list(out.columns[:2]) == ["id", "Date"]
    assert out["Date"].iloc[1] == pd.Timestamp("2024-01-03")
    assert float(out["amount"].sum()) == 10.5
    assert list(records_frame([]).columns) == ["id", "Date"]
