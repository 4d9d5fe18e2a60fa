# portal/app/services/document_store.py
"""
Thin document store on top of Qdrant payloads.

Goals:
- Address documents by (collection, id) like a hosted document database.
- Keep the payload schema agnostic: a document is a JSON object.
- Equality / membership queries on top-level fields via payload filters.
- Create collections lazily; payload indexes are best-effort.

Each logical collection maps to `<prefix>_<collection>`. Points carry a
1-dim placeholder vector because every Qdrant point needs one; nothing here
searches by vector. `QDRANT_URL=":memory:"` selects the client's in-process
mode (tests, dev).
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional

from qdrant_client import QdrantClient, models

from portal.app.config import settings
from portal.app.errors import NotFound
from portal.app.utils.docids import new_doc_id, point_id_for

log = logging.getLogger(__name__)

USERS = "users"
EVENTS = "subEvents"
REGISTRATIONS = "event_registrations"
TASKS = "tasks"
NOTIFICATIONS = "notifications"
BOARDS = "boards"

INDEXED_FIELDS = ("slug", "role", "subEventId", "userId", "uid", "collegeRollNumber", "name", "memberUids")

_ID_KEY = "_id"
_PLACEHOLDER_VECTOR = [1.0]


def get_qdrant_client(url: Optional[str] = None) -> QdrantClient:
    """Return a Qdrant client configured from settings."""
    url = url or settings.QDRANT_URL
    if url == ":memory:":
        return QdrantClient(location=":memory:")
    return QdrantClient(url=url, timeout=10.0)


def now_iso() -> str:
    """Server-side timestamp, stored as ISO-8601 UTC."""
    return datetime.now(timezone.utc).isoformat()


def _jsonable(value: Any) -> Any:
    """Payloads are JSON: timestamps become ISO-8601 strings."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return value


class DocumentStore:
    def __init__(self, client: Optional[QdrantClient] = None, prefix: Optional[str] = None):
        self.client = client or get_qdrant_client()
        self.prefix = prefix or settings.STORE_PREFIX
        self._ready: set[str] = set()
        self._lock = threading.RLock()

    # -------------------------- Collections --------------------------

    def collection_name(self, collection: str) -> str:
        return f"{self.prefix}_{collection}"

    def _collection_exists(self, name: str) -> bool:
        try:
            cols = self.client.get_collections()
            items = getattr(cols, "collections", None) or []
            return any(getattr(c, "name", "") == name for c in items)
        except Exception:
            return False

    def ensure_collection(self, collection: str) -> str:
        name = self.collection_name(collection)
        if name in self._ready:
            return name
        with self._lock:
            if name not in self._ready:
                if not self._collection_exists(name):
                    self.client.create_collection(
                        collection_name=name,
                        vectors_config=models.VectorParams(
                            size=len(_PLACEHOLDER_VECTOR), distance=models.Distance.DOT
                        ),
                    )
                    log.info(f"[store] created collection {name}")
                self._ensure_payload_indexes(name)
                self._ready.add(name)
        return name

    def _ensure_payload_indexes(self, name: str) -> None:
        """Best-effort creation of keyword indexes for the fields we filter on."""
        for field in INDEXED_FIELDS:
            try:
                self.client.create_payload_index(
                    collection_name=name,
                    field_name=field,
                    field_schema=models.PayloadSchemaType.KEYWORD,
                )
            except Exception as e:
                log.debug(f"[store] payload index {name}.{field} skipped: {e}")

    @contextmanager
    def transaction(self) -> Iterator["DocumentStore"]:
        """Serialize read-modify-write sequences within this process."""
        with self._lock:
            yield self

    # -------------------------- Documents --------------------------

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        name = self.ensure_collection(collection)
        records = self.client.retrieve(
            collection_name=name,
            ids=[point_id_for(collection, doc_id)],
            with_payload=True,
            with_vectors=False,
        )
        if not records:
            return None
        return self._to_doc(records[0].payload)

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create or fully replace a document."""
        name = self.ensure_collection(collection)
        payload = _jsonable({k: v for k, v in data.items() if k != "id"})
        payload[_ID_KEY] = doc_id
        self.client.upsert(
            collection_name=name,
            wait=True,
            points=[
                models.PointStruct(
                    id=point_id_for(collection, doc_id),
                    vector=_PLACEHOLDER_VECTOR,
                    payload=payload,
                )
            ],
        )
        return self._to_doc(payload)

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = new_doc_id()
        self.set(collection, doc_id, data)
        return doc_id

    def update(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Merge top-level fields into an existing document."""
        with self._lock:
            current = self.get(collection, doc_id)
            if current is None:
                raise NotFound(f"{collection}/{doc_id} does not exist")
            name = self.collection_name(collection)
            payload = _jsonable({k: v for k, v in changes.items() if k not in ("id", _ID_KEY)})
            if payload:
                self.client.set_payload(
                    collection_name=name,
                    payload=payload,
                    points=[point_id_for(collection, doc_id)],
                    wait=True,
                )
            current.update(payload)
            return current

    def delete(self, collection: str, doc_id: str) -> None:
        name = self.ensure_collection(collection)
        self.client.delete(
            collection_name=name,
            points_selector=models.PointIdsList(points=[point_id_for(collection, doc_id)]),
            wait=True,
        )

    # -------------------------- Queries --------------------------

    def where(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        cond = models.FieldCondition(key=field, match=models.MatchValue(value=value))
        return self._scroll(collection, models.Filter(must=[cond]))

    def where_in(self, collection: str, field: str, values: Iterable[Any]) -> List[Dict[str, Any]]:
        values = list(values)
        if not values:
            return []
        cond = models.FieldCondition(key=field, match=models.MatchAny(any=values))
        return self._scroll(collection, models.Filter(must=[cond]))

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return self._scroll(collection, None)

    def count(self, collection: str) -> int:
        """Count documents in a collection. Returns 0 on failure."""
        try:
            name = self.ensure_collection(collection)
            res = self.client.count(collection_name=name, exact=True)
            return int(getattr(res, "count", 0))
        except Exception:
            return 0

    def _scroll(self, collection: str, flt: Optional[models.Filter]) -> List[Dict[str, Any]]:
        name = self.ensure_collection(collection)
        out: List[Dict[str, Any]] = []
        next_page = None
        while True:
            points, next_page = self.client.scroll(
                collection_name=name,
                scroll_filter=flt,
                with_payload=True,
                with_vectors=False,
                limit=256,
                offset=next_page,
            )
            out.extend(self._to_doc(p.payload) for p in points)
            if next_page is None or not points:
                break
        return out

    @staticmethod
    def _to_doc(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        doc = copy.deepcopy(dict(payload or {}))
        doc["id"] = doc.pop(_ID_KEY, doc.get("id"))
        return doc
