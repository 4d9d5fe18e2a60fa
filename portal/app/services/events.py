# portal/app/services/events.py
from __future__ import annotations

import re
from typing import List, Optional

from portal.app.errors import Conflict, InvalidInput, NotFound, PermissionDenied
from portal.app.models import EVENT_MANAGER_ROLES, CustomColumn, SubEvent, UserProfile
from portal.app.schema.forms import CreateEvent, EventUpdate, NewColumn
from portal.app.services.document_store import EVENTS, DocumentStore, now_iso
from portal.app.utils.docids import slugify


def require_event_manager(profile: UserProfile) -> None:
    if profile.role not in EVENT_MANAGER_ROLES:
        raise PermissionDenied("Only admins and overall heads can manage events.")


def list_events(store: DocumentStore) -> List[SubEvent]:
    events = [SubEvent.model_validate(d) for d in store.all(EVENTS)]
    return sorted(events, key=lambda e: e.title.lower())


def find_event_by_slug(store: DocumentStore, slug: str) -> Optional[SubEvent]:
    docs = store.where(EVENTS, "slug", slug)
    return SubEvent.model_validate(docs[0]) if docs else None


def get_event_by_slug(store: DocumentStore, slug: str) -> SubEvent:
    event = find_event_by_slug(store, slug)
    if event is None:
        raise NotFound(f"event '{slug}' not found")
    return event


def create_event(store: DocumentStore, editor: UserProfile, form: CreateEvent) -> SubEvent:
    require_event_manager(editor)
    slug = slugify(form.title)
    with store.transaction():
        if find_event_by_slug(store, slug) is not None:
            raise Conflict(f"an event with slug '{slug}' already exists")
        data = {
            **form.model_dump(by_alias=True, exclude_none=True),
            "slug": slug,
            "eventReps": [],
            "organizerUids": [],
            "customData": {},
            "createdAt": now_iso(),
        }
        event_id = store.add(EVENTS, data)
    return SubEvent.model_validate({**data, "id": event_id})


def update_event(
    store: DocumentStore, editor: UserProfile, slug: str, changes: EventUpdate
) -> SubEvent:
    require_event_manager(editor)
    event = get_event_by_slug(store, slug)
    updates = changes.model_dump(by_alias=True, exclude_none=True)
    if not updates:
        return event
    updates["updatedAt"] = now_iso()
    doc = store.update(EVENTS, event.id, updates)
    return SubEvent.model_validate(doc)


def add_custom_column(
    store: DocumentStore, editor: UserProfile, slug: str, column: NewColumn
) -> CustomColumn:
    """Add a participant-table column definition to an event."""
    require_event_manager(editor)
    event = get_event_by_slug(store, slug)
    column_id = "custom_" + re.sub(r"\s", "_", column.name.lower())

    options = None
    if column.data_type == "dropdown":
        options = [o.strip() for o in (column.options or "").split(",") if o.strip()]
        if not options:
            raise InvalidInput(
                "Please provide at least one comma-separated option for the dropdown."
            )

    definition = CustomColumn(id=column_id, name=column.name, data_type=column.data_type, options=options)
    with store.transaction():
        current = store.get(EVENTS, event.id) or {}
        custom = dict(current.get("customData") or {})
        custom[column_id] = definition.to_doc()
        store.update(EVENTS, event.id, {"customData": custom})
    return definition
