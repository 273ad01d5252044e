"""Period aggregation and reporting helpers for shop records."""

from __future__ import annotations

import dataclasses
import datetime
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from records import parse_record_date

GRANULARITIES = ("daily", "weekly", "monthly")
LENDING_STATUSES = ("all", "borrowed", "returned")

TREND_COLUMNS = [
    "Income",
    "Expenses",
    "Net",
    "CumulativeIncome",
    "CumulativeExpenses",
    "CumulativeNet",
]
TRASH_FIELDS = ["blue_bags", "yellow_bags", "trips_to_landfill"]
LEDGER_COLUMNS = ["Date", "Type", "ItemName", "Amount", "id"]

# Fixed English labels; strftime("%b") follows the process locale.
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def _normalize_granularity(granularity: str) -> str:
    value = str(granularity or "").strip().lower()
    if value not in GRANULARITIES:
        raise ValueError(f"Unsupported granularity: {granularity}")
    return value


def _field_value(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _numeric(value: Any) -> float:
    if value is None:
        return 0.0
    number = float(value)
    return 0.0 if pd.isna(number) else number


def _record_date(record: Any) -> datetime.date:
    return parse_record_date(_field_value(record, "date"))


def _sum(records: Iterable[Any], field: str) -> float:
    return float(sum(_numeric(_field_value(record, field)) for record in records))


def bucket_key(date: Any, granularity: str) -> str:
    """Return the bucket label of a date at daily, weekly (ISO) or monthly resolution."""
    day = parse_record_date(date)
    interval = _normalize_granularity(granularity)
    if interval == "weekly":
        # ISO week-year keeps a week that straddles New Year in one bucket.
        iso_year, iso_week, _ = day.isocalendar()
        return f"Week {iso_week}, {iso_year}"
    if interval == "monthly":
        return f"{MONTH_ABBREVIATIONS[day.month - 1]} {day.year}"
    return day.isoformat()


def aggregate(records: Iterable[Any], granularity: str, fields: Iterable[str]) -> pd.DataFrame:
    """Sum numeric fields per time bucket.

    Rows follow the first occurrence of each bucket in ``records``, so callers
    pass records sorted by date ascending to get a chronological series.
    Missing field values count as zero and the input is left untouched.
    """
    columns = list(fields)
    interval = _normalize_granularity(granularity)
    items = list(records)
    if not items:
        return pd.DataFrame(columns=columns, index=pd.Index([], name="Period"), dtype=float)

    rows = []
    for record in items:
        row: dict[str, Any] = {"Period": bucket_key(_field_value(record, "date"), interval)}
        for field in columns:
            row[field] = _numeric(_field_value(record, field))
        rows.append(row)

    work = pd.DataFrame(rows, columns=["Period", *columns])
    summary = work.groupby("Period", sort=False)[columns].sum()
    return summary.astype(float)


def sort_by_date(records: Iterable[Any]) -> list[Any]:
    """Stable ascending sort on the record date."""
    return sorted(records, key=_record_date)


def _as_period(period: Any) -> pd.Period:
    if isinstance(period, pd.Period):
        return period.asfreq("M")
    if isinstance(period, tuple):
        year, month = period
        return pd.Period(year=int(year), month=int(month), freq="M")
    if isinstance(period, (datetime.date, pd.Timestamp)):
        return pd.Period(parse_record_date(period), freq="M")
    return pd.Period(str(period), freq="M")


def _current_period(today: datetime.date | None = None) -> pd.Period:
    return pd.Period(today or datetime.date.today(), freq="M")


def period_bounds(period: Any) -> tuple[datetime.date, datetime.date]:
    """First and last calendar day of a monthly period."""
    month = _as_period(period)
    return month.start_time.date(), month.end_time.date()


def available_periods(
    earliest: Any, latest: Any, today: datetime.date | None = None
) -> list[pd.Period]:
    """Calendar months from ``latest`` back to ``earliest``, most recent first.

    An empty or inverted range falls back to the current month so the period
    selector always has an option.
    """
    if earliest is None or latest is None:
        return [_current_period(today)]
    start = parse_record_date(earliest)
    end = parse_record_date(latest)
    if start > end:
        return [_current_period(today)]
    months = pd.period_range(start=pd.Period(start, freq="M"), end=pd.Period(end, freq="M"), freq="M")
    return list(months[::-1])


def periods_for_records(*datasets: Iterable[Any], today: datetime.date | None = None) -> list[pd.Period]:
    """Selectable months spanning every record across the given datasets."""
    dates = [_record_date(record) for dataset in datasets for record in (dataset or [])]
    if not dates:
        return available_periods(None, None, today=today)
    return available_periods(min(dates), max(dates), today=today)


def filter_by_date_range(records: Iterable[Any] | None, start_date: Any, end_date: Any) -> list[Any]:
    """Keep records dated within the inclusive range."""
    start = parse_record_date(start_date)
    end = parse_record_date(end_date)
    return [record for record in (records or []) if start <= _record_date(record) <= end]


def filter_by_period(records: Iterable[Any] | None, period: Any) -> list[Any]:
    start, end = period_bounds(period)
    return filter_by_date_range(records, start, end)


def recent_window(
    records: Iterable[Any] | None, months: int = 6, today: datetime.date | None = None
) -> list[Any]:
    """Records dated on or after the day ``months`` months before today."""
    anchor = pd.Timestamp(today or datetime.date.today())
    cutoff = (anchor - pd.DateOffset(months=int(months))).date()
    return [record for record in (records or []) if _record_date(record) >= cutoff]


def income_expense_trend(
    sales: Iterable[Any] | None, expenses: Iterable[Any] | None, granularity: str
) -> pd.DataFrame:
    """Income vs expenses per bucket with net and running totals."""
    rows: list[dict[str, Any]] = []
    for sale in sales or []:
        rows.append({"date": _record_date(sale), "Income": _field_value(sale, "amount")})
    for expense in expenses or []:
        rows.append({"date": _record_date(expense), "Expenses": _field_value(expense, "amount")})

    trend = aggregate(sort_by_date(rows), granularity, ["Income", "Expenses"])
    trend["Net"] = trend["Income"] - trend["Expenses"]
    trend["CumulativeIncome"] = trend["Income"].cumsum()
    trend["CumulativeExpenses"] = trend["Expenses"].cumsum()
    trend["CumulativeNet"] = trend["Net"].cumsum()
    return trend[TREND_COLUMNS]


def volunteer_hours_series(sessions: Iterable[Any] | None, granularity: str) -> pd.DataFrame:
    return aggregate(sort_by_date(sessions or []), granularity, ["hours"])


def trash_series(disposals: Iterable[Any] | None, granularity: str) -> pd.DataFrame:
    return aggregate(sort_by_date(disposals or []), granularity, TRASH_FIELDS)


@dataclasses.dataclass(eq=False)
class ReportViewModel:
    """Totals and chart series for one reporting month."""

    period: pd.Period
    granularity: str
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_balance: float = 0.0
    volunteer_hours: float = 0.0
    volunteer_sessions: int = 0
    blue_bags: float = 0.0
    yellow_bags: float = 0.0
    trips_to_landfill: float = 0.0
    lending_outstanding: int = 0
    lending_returned: int = 0
    gifted_items: int = 0
    trend: pd.DataFrame = dataclasses.field(default_factory=pd.DataFrame)
    volunteer_trend: pd.DataFrame = dataclasses.field(default_factory=pd.DataFrame)
    trash_trend: pd.DataFrame = dataclasses.field(default_factory=pd.DataFrame)

    def as_dict(self) -> dict[str, object]:
        """Scalar totals keyed by name, for metric cards and exports."""
        return {
            "period": str(self.period),
            "granularity": self.granularity,
            "total_income": self.total_income,
            "total_expenses": self.total_expenses,
            "net_balance": self.net_balance,
            "volunteer_hours": self.volunteer_hours,
            "volunteer_sessions": self.volunteer_sessions,
            "blue_bags": self.blue_bags,
            "yellow_bags": self.yellow_bags,
            "trips_to_landfill": self.trips_to_landfill,
            "lending_outstanding": self.lending_outstanding,
            "lending_returned": self.lending_returned,
            "gifted_items": self.gifted_items,
        }


def assemble_report(
    period: Any,
    granularity: str = "daily",
    sales: Sequence[Any] | None = None,
    expenses: Sequence[Any] | None = None,
    volunteer_sessions: Sequence[Any] | None = None,
    trash: Sequence[Any] | None = None,
    lending: Sequence[Any] | None = None,
    gifted: Sequence[Any] | None = None,
) -> ReportViewModel:
    """Build the report for one month from already-fetched datasets.

    Every dataset is optional; a missing one contributes zero totals and an
    empty series.
    """
    month = _as_period(period)
    interval = _normalize_granularity(granularity)

    month_sales = filter_by_period(sales, month)
    month_expenses = filter_by_period(expenses, month)
    month_sessions = filter_by_period(volunteer_sessions, month)
    month_trash = filter_by_period(trash, month)
    month_lending = filter_by_period(lending, month)
    month_gifted = filter_by_period(gifted, month)

    total_income = _sum(month_sales, "amount")
    total_expenses = _sum(month_expenses, "amount")
    outstanding = sum(1 for item in month_lending if _field_value(item, "date_returned") is None)

    return ReportViewModel(
        period=month,
        granularity=interval,
        total_income=total_income,
        total_expenses=total_expenses,
        net_balance=total_income - total_expenses,
        volunteer_hours=_sum(month_sessions, "hours"),
        volunteer_sessions=len(month_sessions),
        blue_bags=_sum(month_trash, "blue_bags"),
        yellow_bags=_sum(month_trash, "yellow_bags"),
        trips_to_landfill=_sum(month_trash, "trips_to_landfill"),
        lending_outstanding=outstanding,
        lending_returned=len(month_lending) - outstanding,
        gifted_items=len(month_gifted),
        trend=income_expense_trend(month_sales, month_expenses, interval),
        volunteer_trend=volunteer_hours_series(month_sessions, interval),
        trash_trend=trash_series(month_trash, interval),
    )


def _ledger_rows(records: Iterable[Any], entry_type: str) -> list[dict[str, object]]:
    return [
        {
            "Date": pd.Timestamp(_record_date(record)),
            "Type": entry_type,
            "ItemName": _field_value(record, "item_name") or "",
            "Amount": _numeric(_field_value(record, "amount")),
            "id": _field_value(record, "id"),
            "CreatedAt": _field_value(record, "created_at"),
        }
        for record in records
    ]


def history_entries(
    sales: Iterable[Any] | None, expenses: Iterable[Any] | None, start_date: Any, end_date: Any
) -> pd.DataFrame:
    """Sales and expenses dated within the range, newest first.

    A single-day range is the calendar view for that day.
    """
    rows = _ledger_rows(filter_by_date_range(sales, start_date, end_date), "Sale")
    rows += _ledger_rows(filter_by_date_range(expenses, start_date, end_date), "Expense")
    if not rows:
        return pd.DataFrame(columns=LEDGER_COLUMNS)
    out = pd.DataFrame(rows)[LEDGER_COLUMNS]
    return out.sort_values("Date", ascending=False, kind="mergesort").reset_index(drop=True)


def history_balance(
    sales: Iterable[Any] | None, expenses: Iterable[Any] | None, start_date: Any, end_date: Any
) -> dict[str, float]:
    """Opening balance from earlier entries plus the range's income, expenses and closing balance."""
    start = parse_record_date(start_date)
    sales = list(sales or [])
    expenses = list(expenses or [])

    opening = _sum([s for s in sales if _record_date(s) < start], "amount") - _sum(
        [e for e in expenses if _record_date(e) < start], "amount"
    )
    period_income = _sum(filter_by_date_range(sales, start, end_date), "amount")
    period_expenses = _sum(filter_by_date_range(expenses, start, end_date), "amount")
    period_net = period_income - period_expenses
    return {
        "opening_balance": opening,
        "period_income": period_income,
        "period_expenses": period_expenses,
        "period_net": period_net,
        "closing_balance": opening + period_net,
    }


def recent_entries(
    sales: Iterable[Any] | None, expenses: Iterable[Any] | None, limit: int = 10
) -> pd.DataFrame:
    """Most recently created sales and expenses; entries without a creation time sort by date."""
    rows = _ledger_rows(sales or [], "Sale") + _ledger_rows(expenses or [], "Expense")
    if not rows:
        return pd.DataFrame(columns=LEDGER_COLUMNS)
    out = pd.DataFrame(rows)
    created = pd.to_datetime(out["CreatedAt"], errors="coerce", utc=True)
    out["_sort"] = created.fillna(out["Date"].dt.tz_localize("UTC"))
    out = out.sort_values("_sort", ascending=False, kind="mergesort")
    return out.head(max(int(limit), 0))[LEDGER_COLUMNS].reset_index(drop=True)


def lending_status(items: Iterable[Any] | None, status: str = "all") -> list[Any]:
    """Filter lending items by ``all``, ``borrowed`` (not yet back) or ``returned``."""
    value = str(status or "").strip().lower()
    if value not in LENDING_STATUSES:
        raise ValueError(f"Unsupported lending status: {status}")
    items = list(items or [])
    if value == "borrowed":
        return [item for item in items if _field_value(item, "date_returned") is None]
    if value == "returned":
        return [item for item in items if _field_value(item, "date_returned") is not None]
    return items


def volunteer_totals(volunteers: Iterable[Any] | None, sessions: Iterable[Any] | None) -> pd.DataFrame:
    """Hours and session counts per volunteer, derived from logged sessions."""
    hours: dict[str, float] = {}
    counts: dict[str, int] = {}
    for session in sessions or []:
        volunteer_id = str(_field_value(session, "volunteer_id") or "")
        hours[volunteer_id] = hours.get(volunteer_id, 0.0) + _numeric(_field_value(session, "hours"))
        counts[volunteer_id] = counts.get(volunteer_id, 0) + 1

    rows = []
    for volunteer in volunteers or []:
        volunteer_id = str(_field_value(volunteer, "id") or "")
        rows.append(
            {
                "id": volunteer_id,
                "Name": _field_value(volunteer, "name") or "",
                "Hours": hours.get(volunteer_id, 0.0),
                "Sessions": counts.get(volunteer_id, 0),
            }
        )
    if not rows:
        return pd.DataFrame(columns=["id", "Name", "Hours", "Sessions"])
    return pd.DataFrame(rows).sort_values("Name", kind="mergesort").reset_index(drop=True)


def month_entry_count(records: Iterable[Any] | None, today: datetime.date | None = None) -> int:
    """Number of records dated in the current calendar month."""
    return len(filter_by_period(records, _current_period(today)))
