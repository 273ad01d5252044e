"""ThriftLedger Streamlit entrypoint with modular page navigation."""

from __future__ import annotations

import streamlit as st

from config import get_settings
from dashboard_views import (
    render_calendar,
    render_dashboard,
    render_gifted_items,
    render_history,
    render_lending,
    render_reports,
    render_trash_disposal,
    render_volunteers,
)
from logging_setup import configure_logging, get_logger
from record_source import RecordSource, RecordSourceError, build_record_source
from records import (
    DISPOSED_TRASH,
    EXPENSES,
    GIFTED_ITEMS,
    LENDING_ITEMS,
    SALES,
    VOLUNTEER_SESSIONS,
    VOLUNTEERS,
    MalformedDateError,
)
from translations import PAGES, TRANSLATIONS, translate

st.set_page_config(page_title="ThriftLedger", page_icon="\U0001f6cd", layout="wide")

logger = get_logger("app")


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        @import url('https://fonts.googleapis.com/css2?family=Outfit:wght@400;500;700&display=swap');

        html, body, [class*="css"] {
            font-family: 'Outfit', sans-serif;
        }
        .stApp {
            background:
              radial-gradient(1200px 420px at 12% 0%, rgba(16, 185, 129, 0.14), transparent 58%),
              radial-gradient(1000px 520px at 90% 0%, rgba(139, 92, 246, 0.12), transparent 62%),
              linear-gradient(180deg, #f7fbf8 0%, #eef6f1 100%);
        }
        .hero {
            margin-bottom: 0.6rem;
            padding: 1rem 1.2rem;
            border: 1px solid rgba(20, 110, 80, 0.23);
            border-radius: 14px;
            background: rgba(255,255,255,0.82);
            box-shadow: 0 16px 36px rgba(30, 90, 70, 0.12);
        }
        .hero h1 {
            margin: 0;
            letter-spacing: 0.3px;
        }
        .hero p {
            margin: 0.35rem 0 0 0;
            color: #1f5a44;
        }
        [data-testid="stMetric"] {
            background: rgba(255,255,255,0.90);
            border: 1px solid rgba(30, 120, 90, 0.25);
            border-radius: 12px;
            padding: 0.45rem 0.6rem;
            box-shadow: 0 8px 20px rgba(30, 90, 70, 0.10);
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _render_header() -> None:
    st.markdown(
        """
        <div class="hero">
          <h1>ThriftLedger</h1>
          <p>Sales, expenses, lending, gifts, trash and volunteer hours for your charity shop.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _connect() -> RecordSource | None:
    try:
        return build_record_source(get_settings())
    except ValueError as exc:
        st.error(f"Record store is not configured: {exc}")
        return None


def _load_datasets(source: RecordSource) -> dict[str, list] | None:
    try:
        datasets = source.fetch_all()
        datasets[VOLUNTEERS] = source.fetch(VOLUNTEERS, order_by="name")
    except (RecordSourceError, MalformedDateError) as exc:
        logger.warning("Loading records failed: %s", exc)
        st.error(f"Could not load records: {exc}")
        return None

    logger.debug(
        "Loaded %s", {collection: len(records) for collection, records in datasets.items()}
    )
    return datasets


def main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    _inject_styles()
    _render_header()

    languages = list(TRANSLATIONS)
    default_language = settings.LANGUAGE if settings.LANGUAGE in languages else "en"
    language = st.sidebar.selectbox(
        "Language", languages, index=languages.index(default_language), key="language"
    )
    view = st.sidebar.radio(
        "Navigate",
        PAGES,
        format_func=lambda page: translate(page, language),
    )

    source = _connect()
    if source is None:
        return
    datasets = _load_datasets(source)
    if datasets is None:
        return

    sales = datasets[SALES]
    expenses = datasets[EXPENSES]

    if view == "dashboard":
        render_dashboard(source, sales, expenses)
    elif view == "viewReports":
        render_reports({key: value for key, value in datasets.items() if key != VOLUNTEERS})
    elif view == "history":
        render_history(sales, expenses)
    elif view == "calendar":
        render_calendar(sales, expenses)
    elif view == "lending":
        render_lending(source, datasets[LENDING_ITEMS])
    elif view == "giftedItems":
        render_gifted_items(source, datasets[GIFTED_ITEMS])
    elif view == "trashDisposal":
        render_trash_disposal(source, datasets[DISPOSED_TRASH])
    elif view == "volunteers":
        render_volunteers(source, datasets[VOLUNTEERS], datasets[VOLUNTEER_SESSIONS])


if __name__ == "__main__":
    main()
