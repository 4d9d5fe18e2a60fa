# portal/app/routers/events.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from portal.app.dependencies.auth import current_profile, require_roles
from portal.app.dependencies.store import get_store
from portal.app.errors import InvalidInput
from portal.app.models import STAFF_ROLES, STUDENT_ROLES, UserProfile
from portal.app.schema.forms import CreateEvent, EventUpdate, NewColumn
from portal.app.services import events, registrations
from portal.app.services.document_store import DocumentStore

router = APIRouter(prefix="/events", tags=["events"])


def _parse_filters(raw: List[str]) -> List[registrations.Filter]:
    """`column:operator:value` triples from repeated ?filter= params."""
    out = []
    for item in raw:
        parts = item.split(":", 2)
        if len(parts) != 3 or not parts[0]:
            raise InvalidInput(f"malformed filter '{item}', expected column:operator:value")
        column, operator, value = parts
        out.append((column, operator, value))
    return out


@router.get("")
def get_events(store: DocumentStore = Depends(get_store)):
    return {"ok": True, "events": [e.to_doc() for e in events.list_events(store)]}


@router.post("")
def post_event(
    body: CreateEvent,
    editor: UserProfile = Depends(current_profile),
    store: DocumentStore = Depends(get_store),
):
    event = events.create_event(store, editor, body)
    return {"ok": True, "event": event.to_doc()}


@router.get("/{slug}")
def get_event(slug: str, store: DocumentStore = Depends(get_store)):
    return {"ok": True, "event": events.get_event_by_slug(store, slug).to_doc()}


@router.patch("/{slug}")
def patch_event(
    slug: str,
    body: EventUpdate,
    editor: UserProfile = Depends(current_profile),
    store: DocumentStore = Depends(get_store),
):
    event = events.update_event(store, editor, slug, body)
    return {"ok": True, "event": event.to_doc()}


@router.post("/{slug}/columns")
def post_column(
    slug: str,
    body: NewColumn,
    editor: UserProfile = Depends(current_profile),
    store: DocumentStore = Depends(get_store),
):
    column = events.add_custom_column(store, editor, slug, body)
    return {"ok": True, "column": column.to_doc()}


@router.post("/{slug}/register")
def register(
    slug: str,
    custom_data: Optional[Dict[str, Any]] = Body(default=None, alias="customData", embed=True),
    student: UserProfile = Depends(require_roles(*STUDENT_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    reg = registrations.register_for_event(store, student, slug, custom_data)
    return {"ok": True, "registration": reg.to_doc()}


@router.get("/{slug}/participants")
def get_participants(
    slug: str,
    filters: List[str] = Query(default=[], alias="filter"),
    viewer: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    rows = registrations.list_participants(store, viewer, slug, _parse_filters(filters))
    return {"ok": True, "count": len(rows), "participants": rows}
