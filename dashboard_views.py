"""Modular Streamlit page renderers."""

from __future__ import annotations

import datetime
from typing import Any, Callable

import streamlit as st

from analytics import (
    GRANULARITIES,
    LENDING_STATUSES,
    assemble_report,
    history_balance,
    history_entries,
    lending_status,
    month_entry_count,
    periods_for_records,
    recent_entries,
    recent_window,
    trash_series,
    volunteer_hours_series,
    volunteer_totals,
)
from record_source import RecordSource, RecordSourceError
from records import (
    DISPOSED_TRASH,
    EXPENSES,
    GIFTED_ITEMS,
    LENDING_ITEMS,
    SALES,
    VOLUNTEER_SESSIONS,
    VOLUNTEERS,
    Expense,
    GiftedItem,
    LendingItem,
    Sale,
    TrashDisposal,
    Volunteer,
    VolunteerSession,
    records_frame,
)


def _fmt_money(value: float) -> str:
    return f"{value:,.2f}"


def _run_write(operation: Callable[..., Any], *args: Any) -> Any:
    """Run a store write; show the failure and return None instead of raising into the page."""
    try:
        result = operation(*args)
    except RecordSourceError as exc:
        st.error(f"Could not save changes: {exc}")
        return None
    return True if result is None else result


def _granularity_picker(key: str) -> str:
    return st.radio(
        "Group by",
        list(GRANULARITIES),
        index=0,
        horizontal=True,
        format_func=str.title,
        key=key,
    )


def _entry_form(source: RecordSource, collection: str, record_type: type, label: str) -> None:
    with st.form(key=f"{collection}_form", clear_on_submit=True):
        entry_date = st.date_input("Date", value=datetime.date.today())
        item_name = st.text_input("Item Name")
        amount = st.number_input("Amount", min_value=0.0, value=0.0, step=0.5)
        submit = st.form_submit_button(f"Save {label} Entry")

    if not submit:
        return
    if not item_name.strip():
        st.warning("Item name is required.")
        return

    record = record_type(date=entry_date, item_name=item_name.strip(), amount=float(amount))
    doc_id = _run_write(source.add, collection, record)
    if doc_id:
        st.session_state["last_added_entry"] = {
            "id": doc_id,
            "Type": label,
            "Date": entry_date.isoformat(),
            "ItemName": record.item_name,
            "Amount": record.amount,
        }
        st.rerun()


def render_dashboard(source: RecordSource, sales: list, expenses: list) -> None:
    st.header("Dashboard")

    active_form = st.radio("Add entry", ["Sales", "Expenses"], horizontal=True, key="dashboard_form")
    if active_form == "Sales":
        _entry_form(source, SALES, Sale, "Sale")
    else:
        _entry_form(source, EXPENSES, Expense, "Expense")

    last_added = st.session_state.pop("last_added_entry", None)
    if last_added:
        st.success(
            f"Entry added: {last_added['Type']} on {last_added['Date']}, "
            f"{last_added['ItemName']} ({_fmt_money(last_added['Amount'])})"
        )

    st.markdown("### Recent entries")
    recent = recent_entries(sales, expenses, limit=10)
    if recent.empty:
        st.info("No sales or expenses recorded yet.")
        return
    st.dataframe(recent.drop(columns=["id"]), use_container_width=True, hide_index=True)


def render_report_kpis(report_values: dict[str, object]) -> None:
    st.subheader(f"Totals for {report_values['period']}")
    rows = [
        [
            ("Income", _fmt_money(float(report_values["total_income"]))),
            ("Expenses", _fmt_money(float(report_values["total_expenses"]))),
            ("Net balance", _fmt_money(float(report_values["net_balance"]))),
            ("Gifted items", f"{int(report_values['gifted_items']):,}"),
        ],
        [
            ("Volunteer hours", f"{float(report_values['volunteer_hours']):,.1f}"),
            ("Volunteer sessions", f"{int(report_values['volunteer_sessions']):,}"),
            ("Items on loan", f"{int(report_values['lending_outstanding']):,}"),
            ("Items returned", f"{int(report_values['lending_returned']):,}"),
        ],
        [
            ("Blue bags", f"{float(report_values['blue_bags']):,.0f}"),
            ("Yellow bags", f"{float(report_values['yellow_bags']):,.0f}"),
            ("Trips to landfill", f"{float(report_values['trips_to_landfill']):,.0f}"),
        ],
    ]
    for row in rows:
        cols = st.columns(4)
        for idx, (label, value) in enumerate(row):
            cols[idx].metric(label, value)


def render_reports(datasets: dict[str, list]) -> None:
    st.header("Reports")

    periods = periods_for_records(*datasets.values())
    left, right = st.columns([1, 2])
    with left:
        period = st.selectbox(
            "Month",
            periods,
            index=0,
            format_func=lambda p: p.strftime("%B %Y"),
            key="report_period",
        )
    with right:
        granularity = _granularity_picker("report_granularity")

    report = assemble_report(
        period,
        granularity,
        sales=datasets.get(SALES),
        expenses=datasets.get(EXPENSES),
        volunteer_sessions=datasets.get(VOLUNTEER_SESSIONS),
        trash=datasets.get(DISPOSED_TRASH),
        lending=datasets.get(LENDING_ITEMS),
        gifted=datasets.get(GIFTED_ITEMS),
    )
    render_report_kpis(report.as_dict())

    st.markdown("### Income vs expenses")
    if report.trend.empty:
        st.info("No data available for the selected period.")
    else:
        a, b = st.columns(2)
        with a:
            st.bar_chart(report.trend[["Income", "Expenses"]])
        with b:
            st.line_chart(report.trend[["CumulativeIncome", "CumulativeExpenses", "CumulativeNet"]])

    c, d = st.columns(2)
    with c:
        st.markdown("### Volunteer hours")
        if report.volunteer_trend.empty:
            st.info("No volunteer sessions in this period.")
        else:
            st.bar_chart(report.volunteer_trend)
    with d:
        st.markdown("### Disposed trash")
        if report.trash_trend.empty:
            st.info("No trash disposal recorded in this period.")
        else:
            st.bar_chart(report.trash_trend)


def render_history(sales: list, expenses: list) -> None:
    st.header("History")

    today = datetime.date.today()
    a, b = st.columns(2)
    start_date = a.date_input("Start date", value=today.replace(day=1), key="history_start")
    end_date = b.date_input("End date", value=today, key="history_end")
    if start_date > end_date:
        st.warning("Start date is after end date.")
        return

    balance = history_balance(sales, expenses, start_date, end_date)
    cols = st.columns(4)
    cols[0].metric("Opening balance", _fmt_money(balance["opening_balance"]))
    cols[1].metric("Income", _fmt_money(balance["period_income"]))
    cols[2].metric("Expenses", _fmt_money(balance["period_expenses"]))
    cols[3].metric("Closing balance", _fmt_money(balance["closing_balance"]), _fmt_money(balance["period_net"]))

    ledger = history_entries(sales, expenses, start_date, end_date)
    if ledger.empty:
        st.info("No entries in this date range.")
        return
    st.dataframe(ledger.drop(columns=["id"]), use_container_width=True, hide_index=True)


def render_calendar(sales: list, expenses: list) -> None:
    st.header("Calendar")
    selected = st.date_input("Day", value=datetime.date.today(), key="calendar_day")
    st.markdown(f"### Entries for {selected.isoformat()}")
    entries = history_entries(sales, expenses, selected, selected)
    if entries.empty:
        st.info("Nothing recorded on this day.")
        return
    st.dataframe(entries.drop(columns=["id"]), use_container_width=True, hide_index=True)


def render_lending(source: RecordSource, items: list) -> None:
    st.header("Lending Tracker")

    with st.form(key="lending_form", clear_on_submit=True):
        a, b = st.columns(2)
        item_name = a.text_input("Item Name")
        borrower = b.text_input("Borrower")
        borrowed_on = a.date_input("Date Borrowed", value=datetime.date.today())
        notes = b.text_area("Notes")
        submit = st.form_submit_button("Add Item")
    if submit:
        if not item_name.strip() or not borrower.strip():
            st.warning("Item name and borrower are required.")
        else:
            record = LendingItem(
                date=borrowed_on, item_name=item_name.strip(), borrower=borrower.strip(), notes=notes
            )
            if _run_write(source.add, LENDING_ITEMS, record):
                st.rerun()

    status = st.selectbox("Filter", list(LENDING_STATUSES), format_func=str.title, key="lending_filter")
    shown = lending_status(items, status)
    if not shown:
        st.info("No lending items match this filter.")
        return

    for item in shown:
        returned = item.date_returned.isoformat() if item.date_returned else "Not returned"
        with st.expander(f"{item.item_name} | {item.borrower} | {item.date.isoformat()} | {returned}"):
            new_notes = st.text_area("Notes", value=item.notes, key=f"lending_notes_{item.id}")
            left, right = st.columns(2)
            if left.button("Save Notes", key=f"lending_save_{item.id}"):
                if _run_write(source.update, LENDING_ITEMS, item.id, {"notes": new_notes}):
                    st.rerun()
            if item.is_outstanding:
                if right.button("Mark as Returned", key=f"lending_return_{item.id}"):
                    fields = {"date_returned": datetime.date.today()}
                    if _run_write(source.update, LENDING_ITEMS, item.id, fields):
                        st.rerun()
            elif right.button("Mark as Not Returned", key=f"lending_unreturn_{item.id}"):
                if _run_write(source.update, LENDING_ITEMS, item.id, {"date_returned": None}):
                    st.rerun()


def _delete_control(source: RecordSource, collection: str, doc_id: str) -> None:
    confirm = st.checkbox("Confirm delete", key=f"{collection}_confirm_{doc_id}")
    if st.button("Delete", key=f"{collection}_delete_{doc_id}", disabled=not confirm):
        if _run_write(source.delete, collection, doc_id):
            st.rerun()


def render_gifted_items(source: RecordSource, items: list) -> None:
    st.header("Gifted Items Tracker")
    st.caption(f"Entries for the current month: {month_entry_count(items)}")

    with st.form(key="gifted_form", clear_on_submit=True):
        a, b = st.columns(2)
        item_name = a.text_input("Item Name")
        organization = b.text_input("Organization")
        gifted_on = a.date_input("Date Gifted", value=datetime.date.today())
        notes = b.text_area("Notes")
        submit = st.form_submit_button("Add Item")
    if submit:
        if not item_name.strip() or not organization.strip():
            st.warning("Item name and organization are required.")
        else:
            record = GiftedItem(
                date=gifted_on, item_name=item_name.strip(), organization=organization.strip(), notes=notes
            )
            if _run_write(source.add, GIFTED_ITEMS, record):
                st.rerun()

    if not items:
        st.info("No gifted items recorded yet.")
        return

    for item in sorted(items, key=lambda i: i.date, reverse=True):
        with st.expander(f"{item.date.isoformat()} | {item.item_name} | {item.organization}"):
            with st.form(key=f"gifted_edit_{item.id}"):
                item_name = st.text_input("Item Name", value=item.item_name, key=f"gifted_name_{item.id}")
                organization = st.text_input(
                    "Organization", value=item.organization, key=f"gifted_org_{item.id}"
                )
                gifted_on = st.date_input("Date Gifted", value=item.date, key=f"gifted_date_{item.id}")
                notes = st.text_area("Notes", value=item.notes, key=f"gifted_notes_{item.id}")
                save = st.form_submit_button("Save")
            if save:
                fields = {
                    "item_name": item_name.strip(),
                    "organization": organization.strip(),
                    "date": gifted_on,
                    "notes": notes,
                }
                if _run_write(source.update, GIFTED_ITEMS, item.id, fields):
                    st.rerun()
            _delete_control(source, GIFTED_ITEMS, item.id)


def _trash_inputs(key: str, defaults: TrashDisposal | None = None) -> dict[str, Any]:
    if defaults is None:
        defaults = TrashDisposal(date=datetime.date.today())
    return {
        "date": st.date_input("Date", value=defaults.date, key=f"{key}_date"),
        "blue_bags": int(st.number_input("Blue Bags", min_value=0, value=defaults.blue_bags, key=f"{key}_blue")),
        "yellow_bags": int(
            st.number_input("Yellow Bags", min_value=0, value=defaults.yellow_bags, key=f"{key}_yellow")
        ),
        "trips_to_landfill": int(
            st.number_input(
                "Trips to Landfill", min_value=0, value=defaults.trips_to_landfill, key=f"{key}_trips"
            )
        ),
        "notes": st.text_area("Notes", value=defaults.notes, key=f"{key}_notes"),
    }


def render_trash_disposal(source: RecordSource, items: list) -> None:
    st.header("Disposed Trash Tracker")

    with st.form(key="trash_form", clear_on_submit=True):
        values = _trash_inputs("trash_new")
        submit = st.form_submit_button("Add Record")
    if submit and _run_write(source.add, DISPOSED_TRASH, TrashDisposal(**values)):
        st.rerun()

    st.markdown("### Last six months")
    granularity = _granularity_picker("trash_granularity")
    chart = trash_series(recent_window(items, months=6), granularity)
    if chart.empty:
        st.info("No trash disposal recorded in the last six months.")
    else:
        st.bar_chart(chart)

    for item in sorted(items, key=lambda i: i.date, reverse=True):
        label = (
            f"{item.date.isoformat()} | blue {item.blue_bags} | yellow {item.yellow_bags} "
            f"| trips {item.trips_to_landfill}"
        )
        with st.expander(label):
            with st.form(key=f"trash_edit_{item.id}"):
                values = _trash_inputs(f"trash_{item.id}", item)
                save = st.form_submit_button("Save")
            if save:
                if _run_write(source.update, DISPOSED_TRASH, item.id, values):
                    st.rerun()
            _delete_control(source, DISPOSED_TRASH, item.id)


def render_volunteers(source: RecordSource, volunteers: list, sessions: list) -> None:
    st.header("Volunteer Tracking")

    a, b = st.columns(2)
    with a:
        st.markdown("### Add New Volunteer")
        with st.form(key="volunteer_form", clear_on_submit=True):
            name = st.text_input("Name")
            submit = st.form_submit_button("Add Volunteer")
        if submit:
            if not name.strip():
                st.warning("Name is required.")
            elif _run_write(source.add, VOLUNTEERS, Volunteer(name=name.strip())):
                st.rerun()

    names = {volunteer.id: volunteer.name for volunteer in volunteers}
    with b:
        st.markdown("### Log Volunteer Session")
        if not volunteers:
            st.info("Add a volunteer before logging sessions.")
        else:
            with st.form(key="session_form", clear_on_submit=True):
                volunteer_id = st.selectbox("Volunteer", list(names), format_func=names.get)
                session_date = st.date_input("Date", value=datetime.date.today())
                hours = st.number_input("Hours", min_value=0.0, value=1.0, step=0.5)
                submit_session = st.form_submit_button("Log Session")
            if submit_session:
                record = VolunteerSession(date=session_date, volunteer_id=volunteer_id, hours=float(hours))
                if _run_write(source.add, VOLUNTEER_SESSIONS, record):
                    st.rerun()

    st.markdown("### Volunteer totals")
    totals = volunteer_totals(volunteers, sessions)
    if totals.empty:
        st.info("No volunteers yet.")
    else:
        st.dataframe(totals.drop(columns=["id"]), use_container_width=True, hide_index=True)

    st.markdown("### Hours over the last six months")
    granularity = _granularity_picker("volunteer_granularity")
    chart = volunteer_hours_series(recent_window(sessions, months=6), granularity)
    if chart.empty:
        st.info("No volunteer sessions in the last six months.")
    else:
        st.bar_chart(chart)

    st.markdown("### Sessions")
    if not sessions:
        st.info("No sessions logged yet.")
        return
    table = records_frame(sorted(sessions, key=lambda s: s.date, reverse=True))
    table["Volunteer"] = table["volunteer_id"].map(names).fillna("Unknown")
    st.dataframe(table[["Date", "Volunteer", "hours"]], use_container_width=True, hide_index=True)

    session_ids = [session.id for session in sessions]
    to_delete = st.selectbox(
        "Delete session",
        [None] + session_ids,
        format_func=lambda sid: "Select a session" if sid is None else _session_label(sessions, names, sid),
        key="session_delete",
    )
    if to_delete and st.button("Delete Session", key="session_delete_button"):
        if _run_write(source.delete, VOLUNTEER_SESSIONS, to_delete):
            st.rerun()


def _session_label(sessions: list, names: dict[str, str], session_id: str) -> str:
    session = next(s for s in sessions if s.id == session_id)
    return f"{session.date.isoformat()} | {names.get(session.volunteer_id, 'Unknown')} | {session.hours:g} h"

