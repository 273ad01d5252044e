"""Navigation labels for the app."""

TRANSLATIONS = {
    "en": {
        "dashboard": "Dashboard",
        "viewReports": "View Reports",
        "history": "History",
        "calendar": "Calendar",
        "lending": "Lending",
        "giftedItems": "Gifted Items",
        "trashDisposal": "Trash Disposal",
        "volunteers": "Volunteers",
    },
    "it": {
        "dashboard": "Cruscotto",
        "viewReports": "Visualizza Rapporti",
        "history": "Cronologia",
        "calendar": "Calendario",
        "lending": "Prestiti",
        "giftedItems": "Articoli Donati",
        "trashDisposal": "Smaltimento Rifiuti",
        "volunteers": "Volontari",
    },
}

PAGES = [
    "dashboard",
    "viewReports",
    "history",
    "calendar",
    "lending",
    "giftedItems",
    "trashDisposal",
    "volunteers",
]


def translate(key: str, language: str = "en") -> str:
    """Label for ``key`` in ``language``, falling back to English, then the key itself."""
    labels = TRANSLATIONS.get(str(language).lower(), {})
    return labels.get(key) or TRANSLATIONS["en"].get(key, key)
