import datetime
import locale

import pandas as pd
import pytest

from analytics import (
    aggregate,
    assemble_report,
    available_periods,
    bucket_key,
    history_balance,
    history_entries,
    income_expense_trend,
    lending_status,
    month_entry_count,
    period_bounds,
    periods_for_records,
    recent_entries,
    recent_window,
    volunteer_totals,
)
from records import (
    Expense,
    GiftedItem,
    LendingItem,
    MalformedDateError,
    Sale,
    TrashDisposal,
    Volunteer,
    VolunteerSession,
)

D = datetime.date


def _utc(*args: int) -> datetime.datetime:
    return datetime.datetime(*args, tzinfo=datetime.timezone.utc)


def test_bucket_key_formats_each_granularity() -> None:
    day = D(2024, 1, 5)

    assert bucket_key(day, "daily") == "2024-01-05"
    assert bucket_key(day, "weekly") == "Week 1, 2024"
    assert bucket_key(day, "monthly") == "Jan 2024"
    assert bucket_key("2024-01-05", "Monthly") == "Jan 2024"


def test_bucket_key_uses_iso_week_year_across_new_year() -> None:
    assert bucket_key(D(2024, 12, 30), "weekly") == "Week 1, 2025"
    assert bucket_key(D(2025, 1, 2), "weekly") == bucket_key(D(2024, 12, 30), "weekly")
    assert bucket_key(D(2021, 1, 1), "weekly") == "Week 53, 2020"


def test_bucket_key_is_deterministic() -> None:
    for granularity in ["daily", "weekly", "monthly"]:
        assert bucket_key("2024-06-30", granularity) == bucket_key(D(2024, 6, 30), granularity)


def test_bucket_key_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        bucket_key(D(2024, 1, 5), "hourly")
    with pytest.raises(MalformedDateError):
        bucket_key("05/01/2024", "daily")


def test_bucket_key_month_labels_ignore_locale() -> None:
    labels = [bucket_key(D(2024, month, 1), "monthly") for month in range(1, 13)]
    assert labels[0] == "Jan 2024"
    assert labels[2] == "Mar 2024"
    assert labels[11] == "Dec 2024"

    saved = locale.setlocale(locale.LC_TIME)
    try:
        locale.setlocale(locale.LC_TIME, "de_DE.UTF-8")
    except locale.Error:
        pytest.skip("de_DE.UTF-8 locale not installed")
    try:
        assert bucket_key(D(2024, 3, 1), "monthly") == "Mar 2024"
        assert bucket_key(D(2024, 10, 1), "monthly") == "Oct 2024"
    finally:
        locale.setlocale(locale.LC_TIME, saved)


def test_aggregate_refuses_record_with_trailing_garbage_in_date() -> None:
    records = [{"date": "2024-01-05", "amount": 1}, {"date": "2024-01-05xx", "amount": 3}]

    with pytest.raises(MalformedDateError):
        aggregate(records, "daily", ["amount"])


def test_aggregate_collapses_same_month() -> None:
    records = [{"date": "2024-01-05", "amount": 10}, {"date": "2024-01-20", "amount": 5}]

    out = aggregate(records, "monthly", ["amount"])

    assert list(out.index) == ["Jan 2024"]
    assert float(out.loc["Jan 2024", "amount"]) == 15.0


def test_aggregate_keeps_chronological_month_order() -> None:
    records = [{"date": "2024-01-01", "amount": 10}, {"date": "2024-02-01", "amount": 5}]

    out = aggregate(records, "monthly", ["amount"])

    assert list(out.index) == ["Jan 2024", "Feb 2024"]
    assert list(out["amount"]) == [10.0, 5.0]


def test_aggregate_follows_first_occurrence_order() -> None:
    records = [{"date": "2024-02-01", "amount": 1}, {"date": "2024-01-01", "amount": 2}]

    out = aggregate(records, "monthly", ["amount"])

    assert list(out.index) == ["Feb 2024", "Jan 2024"]


def test_aggregate_conserves_totals_and_treats_missing_as_zero() -> None:
    records = [
        TrashDisposal(date=D(2024, 3, 1), blue_bags=2, yellow_bags=1),
        TrashDisposal(date=D(2024, 3, 3), blue_bags=1, trips_to_landfill=1),
        {"date": "2024-03-11", "blue_bags": 4},
        {"date": "2024-03-31", "yellow_bags": None},
    ]
    fields = ["blue_bags", "yellow_bags", "trips_to_landfill"]

    out = aggregate(records, "weekly", fields)

    assert float(out["blue_bags"].sum()) == 7.0
    assert float(out["yellow_bags"].sum()) == 1.0
    assert float(out["trips_to_landfill"].sum()) == 1.0
    assert list(out.columns) == fields


def test_aggregate_is_idempotent_and_leaves_input_alone() -> None:
    records = [{"date": "2024-01-05", "amount": 10}, {"date": "2024-01-29", "amount": 5}]
    snapshot = [dict(r) for r in records]

    first = aggregate(records, "weekly", ["amount"])
    second = aggregate(records, "weekly", ["amount"])

    pd.testing.assert_frame_equal(first, second)
    assert records == snapshot


def test_aggregate_boundary_record_lands_in_one_bucket() -> None:
    records = [{"date": "2024-01-31", "amount": 1}, {"date": "2024-02-01", "amount": 2}]

    out = aggregate(records, "monthly", ["amount"])

    assert float(out.loc["Jan 2024", "amount"]) == 1.0
    assert float(out.loc["Feb 2024", "amount"]) == 2.0


def test_aggregate_empty_input_returns_empty_frame() -> None:
    out = aggregate([], "daily", ["amount"])

    assert out.empty
    assert list(out.columns) == ["amount"]


def test_available_periods_descending() -> None:
    out = available_periods("2024-01-15", "2024-03-10")

    assert [str(p) for p in out] == ["2024-03", "2024-02", "2024-01"]


def test_available_periods_same_month_and_fallback() -> None:
    today = D(2026, 10, 19)

    assert [str(p) for p in available_periods("2024-05-02", "2024-05-30")] == ["2024-05"]
    assert [str(p) for p in available_periods("2024-03-01", "2024-01-01", today=today)] == ["2026-10"]
    assert [str(p) for p in available_periods(None, None, today=today)] == ["2026-10"]


def test_periods_for_records_spans_all_datasets() -> None:
    sales = [Sale(date=D(2024, 2, 3), amount=1)]
    gifted = [GiftedItem(date=D(2023, 12, 24))]

    out = periods_for_records(sales, [], gifted, today=D(2026, 1, 1))

    assert [str(p) for p in out] == ["2024-02", "2024-01", "2023-12"]
    assert [str(p) for p in periods_for_records([], today=D(2026, 1, 1))] == ["2026-01"]


def test_period_bounds_covers_whole_month() -> None:
    assert period_bounds("2024-02") == (D(2024, 2, 1), D(2024, 2, 29))
    assert period_bounds((2023, 12)) == (D(2023, 12, 1), D(2023, 12, 31))


def test_assemble_report_totals_and_net_balance() -> None:
    sales = [Sale(date=D(2024, 3, 1), amount=20), Sale(date=D(2024, 3, 15), amount=30)]
    expenses = [Expense(date=D(2024, 3, 2), amount=5)]

    report = assemble_report("2024-03", "daily", sales=sales, expenses=expenses)

    assert report.total_income == 50.0
    assert report.total_expenses == 5.0
    assert report.net_balance == 45.0
    assert list(report.trend.index) == ["2024-03-01", "2024-03-02", "2024-03-15"]
    assert list(report.trend["CumulativeNet"]) == [20.0, 15.0, 45.0]


def test_assemble_report_with_empty_datasets_is_zeroed() -> None:
    report = assemble_report("2024-03", "weekly", sales=[], expenses=[])

    assert report.total_income == 0.0
    assert report.total_expenses == 0.0
    assert report.net_balance == 0.0
    assert report.trend.empty
    assert report.volunteer_trend.empty
    assert report.as_dict()["gifted_items"] == 0


def test_assemble_report_filters_to_period_and_counts_categories() -> None:
    sales = [Sale(date=D(2024, 2, 29), amount=100), Sale(date=D(2024, 3, 31), amount=7)]
    sessions = [
        VolunteerSession(date=D(2024, 3, 4), volunteer_id="v1", hours=3),
        VolunteerSession(date=D(2024, 3, 5), volunteer_id="v2", hours=2.5),
        VolunteerSession(date=D(2024, 4, 1), volunteer_id="v1", hours=9),
    ]
    trash = [TrashDisposal(date=D(2024, 3, 9), blue_bags=3, yellow_bags=2, trips_to_landfill=1)]
    lending = [
        LendingItem(date=D(2024, 3, 1), item_name="Ladder"),
        LendingItem(date=D(2024, 3, 2), item_name="Drill", date_returned=D(2024, 3, 20)),
        LendingItem(date=D(2024, 1, 2), item_name="Tent"),
    ]
    gifted = [GiftedItem(date=D(2024, 3, 10)), GiftedItem(date=D(2024, 5, 1))]

    report = assemble_report(
        pd.Period("2024-03", freq="M"),
        "monthly",
        sales=sales,
        volunteer_sessions=sessions,
        trash=trash,
        lending=lending,
        gifted=gifted,
    )

    assert report.total_income == 7.0
    assert report.total_expenses == 0.0
    assert report.volunteer_hours == 5.5
    assert report.volunteer_sessions == 2
    assert (report.blue_bags, report.yellow_bags, report.trips_to_landfill) == (3.0, 2.0, 1.0)
    assert report.lending_outstanding == 1
    assert report.lending_returned == 1
    assert report.gifted_items == 1
    assert list(report.trend.index) == ["Mar 2024"]
    assert float(report.volunteer_trend.loc["Mar 2024", "hours"]) == 5.5


def test_income_expense_trend_sorts_before_grouping() -> None:
    sales = [Sale(date=D(2024, 2, 10), amount=4), Sale(date=D(2024, 1, 10), amount=6)]
    expenses = [Expense(date=D(2024, 1, 12), amount=1)]

    out = income_expense_trend(sales, expenses, "monthly")

    assert list(out.index) == ["Jan 2024", "Feb 2024"]
    assert list(out["Net"]) == [5.0, 4.0]
    assert list(out["CumulativeIncome"]) == [6.0, 10.0]


def test_history_entries_newest_first_and_single_day() -> None:
    sales = [Sale(date=D(2024, 1, 3), item_name="Lamp", amount=12, id="s1")]
    expenses = [
        Expense(date=D(2024, 1, 5), item_name="Bags", amount=4, id="e1"),
        Expense(date=D(2024, 2, 1), item_name="Tape", amount=2, id="e2"),
    ]

    out = history_entries(sales, expenses, "2024-01-01", "2024-01-31")
    day = history_entries(sales, expenses, D(2024, 1, 3), D(2024, 1, 3))

    assert list(out["id"]) == ["e1", "s1"]
    assert list(out["Type"]) == ["Expense", "Sale"]
    assert list(day["ItemName"]) == ["Lamp"]


def test_history_balance_carries_opening_balance() -> None:
    sales = [Sale(date=D(2023, 12, 30), amount=50), Sale(date=D(2024, 1, 10), amount=20)]
    expenses = [Expense(date=D(2023, 12, 31), amount=10), Expense(date=D(2024, 1, 11), amount=5)]

    out = history_balance(sales, expenses, D(2024, 1, 1), D(2024, 1, 31))

    assert out["opening_balance"] == 40.0
    assert out["period_income"] == 20.0
    assert out["period_expenses"] == 5.0
    assert out["period_net"] == 15.0
    assert out["closing_balance"] == 55.0


def test_recent_entries_orders_by_creation_time() -> None:
    sales = [
        Sale(date=D(2024, 1, 1), amount=1, created_at=_utc(2024, 1, 1, 9), id="old"),
        Sale(date=D(2023, 1, 1), amount=2, created_at=_utc(2024, 1, 2, 9), id="late-entry"),
    ]
    expenses = [Expense(date=D(2024, 1, 1), amount=3, created_at=_utc(2024, 1, 1, 12), id="mid")]

    out = recent_entries(sales, expenses, limit=2)

    assert list(out["id"]) == ["late-entry", "mid"]
    assert recent_entries([], [], limit=5).empty


def test_lending_status_filters() -> None:
    items = [
        LendingItem(date=D(2024, 1, 1), id="a"),
        LendingItem(date=D(2024, 1, 2), date_returned=D(2024, 1, 9), id="b"),
    ]

    assert [i.id for i in lending_status(items, "borrowed")] == ["a"]
    assert [i.id for i in lending_status(items, "Returned")] == ["b"]
    assert len(lending_status(items, "all")) == 2
    with pytest.raises(ValueError):
        lending_status(items, "lost")


def test_volunteer_totals_derived_from_sessions() -> None:
    volunteers = [Volunteer(name="Sam", id="v2"), Volunteer(name="Alex", id="v1")]
    sessions = [
        VolunteerSession(date=D(2024, 1, 1), volunteer_id="v1", hours=2),
        VolunteerSession(date=D(2024, 1, 8), volunteer_id="v1", hours=1.5),
    ]

    out = volunteer_totals(volunteers, sessions)

    assert list(out["Name"]) == ["Alex", "Sam"]
    assert list(out["Hours"]) == [3.5, 0.0]
    assert list(out["Sessions"]) == [2, 0]


def test_recent_window_and_month_entry_count() -> None:
    today = D(2024, 7, 15)
    sessions = [
        VolunteerSession(date=D(2024, 1, 14), hours=1),
        VolunteerSession(date=D(2024, 1, 15), hours=1),
        VolunteerSession(date=D(2024, 7, 1), hours=1),
    ]

    assert len(recent_window(sessions, months=6, today=today)) == 2
    assert month_entry_count(sessions, today=today) == 1
