"""Record storage adapters: a local JSON file and the hosted Firestore REST API."""

from __future__ import annotations

import datetime
import json
import uuid
from pathlib import Path
from typing import Any, Mapping

import requests

from logging_setup import get_logger
from records import (
    DATED_COLLECTIONS,
    VOLUNTEERS,
    date_field,
    from_document,
    parse_record_date,
    to_document,
    to_document_fields,
)

logger = get_logger("record_source")

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"


class RecordSourceError(RuntimeError):
    """Raised when the record store cannot be read or written."""


def _order_field(collection: str, order_by: str) -> str:
    if order_by == "date" and collection != VOLUNTEERS:
        return date_field(collection)
    return order_by


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RecordSource:
    """Read/write interface shared by every backend."""

    def fetch(
        self,
        collection: str,
        start: Any = None,
        end: Any = None,
        order_by: str = "date",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Any]:
        raise NotImplementedError

    def add(self, collection: str, record: Any) -> str:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def fetch_all(self, start: Any = None, end: Any = None) -> dict[str, list[Any]]:
        """Every dated collection, oldest first."""
        return {
            collection: self.fetch(collection, start=start, end=end)
            for collection in DATED_COLLECTIONS
        }

    def _new_payload(self, collection: str, record: Any) -> dict[str, Any]:
        payload = to_document(collection, record)
        if "createdAt" in payload and payload["createdAt"] is None:
            payload["createdAt"] = _utc_now()
        return payload


class LocalRecordSource(RecordSource):
    """JSON file store laid out as ``{collection: {id: document}}``."""

    def __init__(self, path: str) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, dict[str, dict[str, Any]]]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise RecordSourceError(f"Cannot read store {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise RecordSourceError(f"Unexpected store layout in {self.path}")
        return payload

    def _save(self, store: dict[str, dict[str, dict[str, Any]]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(store, indent=2, ensure_ascii=True), encoding="utf-8")
        except OSError as exc:
            raise RecordSourceError(f"Cannot write store {self.path}: {exc}") from exc

    def fetch(
        self,
        collection: str,
        start: Any = None,
        end: Any = None,
        order_by: str = "date",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Any]:
        documents = self._load().get(collection, {})
        items = list(documents.items())

        if start is not None or end is not None:
            field = date_field(collection)
            lower = parse_record_date(start) if start is not None else None
            upper = parse_record_date(end) if end is not None else None
            kept = []
            for doc_id, payload in items:
                day = parse_record_date(payload.get(field))
                if (lower is None or day >= lower) and (upper is None or day <= upper):
                    kept.append((doc_id, payload))
            items = kept

        sort_field = _order_field(collection, order_by)
        present = [item for item in items if item[1].get(sort_field) is not None]
        missing = [item for item in items if item[1].get(sort_field) is None]
        present.sort(key=lambda item: item[1][sort_field], reverse=descending)
        items = present + missing
        if limit is not None:
            items = items[: int(limit)]

        logger.debug("Fetched %d %s documents from %s", len(items), collection, self.path)
        return [from_document(collection, doc_id, payload) for doc_id, payload in items]

    def add(self, collection: str, record: Any) -> str:
        store = self._load()
        doc_id = uuid.uuid4().hex
        payload = self._new_payload(collection, record)
        if isinstance(payload.get("createdAt"), datetime.datetime):
            payload["createdAt"] = payload["createdAt"].isoformat()
        store.setdefault(collection, {})[doc_id] = payload
        self._save(store)
        logger.debug("Added %s/%s", collection, doc_id)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        store = self._load()
        documents = store.get(collection, {})
        if doc_id not in documents:
            raise RecordSourceError(f"No document {collection}/{doc_id}")
        documents[doc_id].update(to_document_fields(collection, fields))
        self._save(store)
        logger.debug("Updated %s/%s fields=%s", collection, doc_id, sorted(fields))

    def delete(self, collection: str, doc_id: str) -> None:
        store = self._load()
        if store.get(collection, {}).pop(doc_id, None) is not None:
            self._save(store)
            logger.debug("Deleted %s/%s", collection, doc_id)


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore REST typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime.datetime):
        stamp = value if value.tzinfo else value.replace(tzinfo=datetime.timezone.utc)
        return {"timestampValue": stamp.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, datetime.date):
        return {"stringValue": value.isoformat()}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": {str(k): encode_value(v) for k, v in value.items()}}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def decode_value(value: Mapping[str, Any]) -> Any:
    """Decode a Firestore REST typed value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return value["timestampValue"]
    if "stringValue" in value:
        return value["stringValue"]
    if "mapValue" in value:
        fields = value["mapValue"].get("fields", {})
        return {key: decode_value(item) for key, item in fields.items()}
    if "arrayValue" in value:
        return [decode_value(item) for item in value["arrayValue"].get("values", [])]
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def _field_filter(field: str, op: str, value: Any) -> dict[str, Any]:
    return {"fieldFilter": {"field": {"fieldPath": field}, "op": op, "value": encode_value(value)}}


class FirestoreRecordSource(RecordSource):
    """Firestore REST v1 client; dates are stored as ``YYYY-MM-DD`` strings."""

    def __init__(
        self,
        project_id: str,
        id_token: str | None = None,
        api_key: str | None = None,
        database: str = "(default)",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.project_id = project_id
        self.id_token = id_token
        self.api_key = api_key
        self.database = database
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def documents_url(self) -> str:
        return f"{FIRESTORE_BASE_URL}/projects/{self.project_id}/databases/{self.database}/documents"

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        headers = {"Authorization": f"Bearer {self.id_token}"} if self.id_token else {}
        params = kwargs.pop("params", [])
        if self.api_key:
            params = list(params) + [("key", self.api_key)]
        try:
            response = self.session.request(
                method, url, headers=headers, params=params, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Firestore %s %s failed: %s", method, url, exc)
            raise RecordSourceError(f"Firestore request failed: {exc}") from exc
        if not response.content:
            return {}
        return response.json()

    def build_query(
        self,
        collection: str,
        start: Any = None,
        end: Any = None,
        order_by: str = "date",
        descending: bool = False,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Structured query body for ``documents:runQuery``."""
        query: dict[str, Any] = {"from": [{"collectionId": collection}]}
        filters = []
        if start is not None:
            filters.append(
                _field_filter(date_field(collection), "GREATER_THAN_OR_EQUAL", parse_record_date(start))
            )
        if end is not None:
            filters.append(_field_filter(date_field(collection), "LESS_THAN_OR_EQUAL", parse_record_date(end)))
        if len(filters) == 1:
            query["where"] = filters[0]
        elif filters:
            query["where"] = {"compositeFilter": {"op": "AND", "filters": filters}}
        query["orderBy"] = [
            {
                "field": {"fieldPath": _order_field(collection, order_by)},
                "direction": "DESCENDING" if descending else "ASCENDING",
            }
        ]
        if limit is not None:
            query["limit"] = int(limit)
        return {"structuredQuery": query}

    def fetch(
        self,
        collection: str,
        start: Any = None,
        end: Any = None,
        order_by: str = "date",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Any]:
        body = self.build_query(collection, start, end, order_by, descending, limit)
        rows = self._request("POST", f"{self.documents_url}:runQuery", json=body)
        records = []
        for row in rows or []:
            document = row.get("document")
            if not document:
                continue
            doc_id = document["name"].rsplit("/", 1)[-1]
            payload = {key: decode_value(value) for key, value in document.get("fields", {}).items()}
            records.append(from_document(collection, doc_id, payload))
        logger.debug("Fetched %d %s documents from Firestore", len(records), collection)
        return records

    def add(self, collection: str, record: Any) -> str:
        payload = self._new_payload(collection, record)
        fields = {key: encode_value(value) for key, value in payload.items()}
        created = self._request("POST", f"{self.documents_url}/{collection}", json={"fields": fields})
        doc_id = str(created.get("name", "")).rsplit("/", 1)[-1]
        logger.debug("Added %s/%s", collection, doc_id)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        payload = to_document_fields(collection, fields)
        params = [("updateMask.fieldPaths", key) for key in payload]
        params.append(("currentDocument.exists", "true"))
        self._request(
            "PATCH",
            f"{self.documents_url}/{collection}/{doc_id}",
            params=params,
            json={"fields": {key: encode_value(value) for key, value in payload.items()}},
        )
        logger.debug("Updated %s/%s fields=%s", collection, doc_id, sorted(payload))

    def delete(self, collection: str, doc_id: str) -> None:
        self._request("DELETE", f"{self.documents_url}/{collection}/{doc_id}")
        logger.debug("Deleted %s/%s", collection, doc_id)


def build_record_source(settings: Any) -> RecordSource:
    """Create the record source selected by the app settings."""
    if settings.BACKEND == "firestore":
        if not settings.FIRESTORE_PROJECT_ID:
            raise ValueError("THRIFTLEDGER_FIRESTORE_PROJECT_ID is required for the firestore backend")
        return FirestoreRecordSource(
            project_id=settings.FIRESTORE_PROJECT_ID,
            id_token=settings.FIRESTORE_ID_TOKEN or None,
            api_key=settings.FIRESTORE_API_KEY or None,
            database=settings.FIRESTORE_DATABASE,
            timeout=settings.REQUEST_TIMEOUT,
        )
    return LocalRecordSource(settings.DATA_PATH)
