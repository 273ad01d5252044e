import json

import pytest
from streamlit.testing.v1 import AppTest

from config import get_settings


@pytest.fixture
def seeded_store(tmp_path, monkeypatch):
    store = {
        "sales": {
            "s1": {"date": "2024-03-01", "itemName": "Lamp", "amount": 20, "createdAt": "2024-03-01T09:00:00+00:00"},
            "s2": {"date": "2024-03-15", "itemName": "Coat", "amount": 30, "createdAt": "2024-03-15T09:00:00+00:00"},
        },
        "expenses": {
            "e1": {"date": "2024-03-02", "itemName": "Bags", "amount": 5, "createdAt": "2024-03-02T09:00:00+00:00"},
        },
        "lendingItems": {"l1": {"dateBorrowed": "2024-03-03", "itemName": "Ladder", "borrower": "Rosa"}},
        "volunteers": {"v1": {"name": "Alex"}},
        "volunteerSessions": {"vs1": {"date": "2024-03-04", "volunteerId": "v1", "hours": 3}},
    }
    path = tmp_path / "store.json"
    path.write_text(json.dumps(store), encoding="utf-8")
    monkeypatch.setenv("THRIFTLEDGER_BACKEND", "local")
    monkeypatch.setenv("THRIFTLEDGER_DATA_PATH", str(path))
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


def test_dashboard_lists_recent_entries(seeded_store) -> None:
    at = AppTest.from_file("../app.py", default_timeout=30).run()

    assert not at.exception
    assert at.header[0].value == "Dashboard"
    assert len(at.dataframe) == 1


def test_reports_page_shows_month_totals(seeded_store) -> None:
    at = AppTest.from_file("../app.py", default_timeout=30).run()
    at.sidebar.radio[0].set_value("viewReports").run()

    assert not at.exception
    values = {metric.label: metric.value for metric in at.metric}
    assert values["Income"] == "50.00"
    assert values["Net balance"] == "45.00"
