# portal/app/services/registrations.py
"""
Event registrations and the participant table shown to event staff.

Who may see a participant table:
  * admin, overall_head: every event
  * event_representative: events listed in assignedEventUids
  * organizer: events whose studentDataEventAccess flag is true
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from portal.app.errors import Conflict, InvalidInput, NotFound, PermissionDenied
from portal.app.models import (
    REGISTRATION_STATUSES,
    EventRegistration,
    SubEvent,
    UserProfile,
)
from portal.app.services.document_store import (
    EVENTS,
    REGISTRATIONS,
    USERS,
    DocumentStore,
    now_iso,
)
from portal.app.services.events import get_event_by_slug
from portal.app.telemetry import telemetry

FILTER_OPERATORS = ("contains", "equals", "is")
EDITABLE_FIELDS = ("registrationStatus", "presentee", "admitCardUrl")

Filter = Tuple[str, str, Any]


def can_view_participants(profile: UserProfile, event: SubEvent) -> bool:
    if profile.role in ("admin", "overall_head"):
        return True
    if profile.role == "event_representative":
        return event.id in profile.assigned_event_uids
    if profile.role == "organizer":
        return profile.student_data_event_access.get(event.id) is True
    return False


def _require_view(profile: UserProfile, event: SubEvent) -> None:
    if not can_view_participants(profile, event):
        raise PermissionDenied("You do not have permission to view student data for this event.")


def register_for_event(
    store: DocumentStore,
    profile: UserProfile,
    slug: str,
    custom_data: Optional[Dict[str, Any]] = None,
) -> EventRegistration:
    event = get_event_by_slug(store, slug)
    with store.transaction():
        existing = [
            r for r in store.where(REGISTRATIONS, "userId", profile.uid)
            if r.get("subEventId") == event.id
        ]
        if existing:
            raise Conflict("You are already registered for this event.")
        ts = now_iso()
        data = {
            "subEventId": event.id,
            "userId": profile.uid,
            "registrationStatus": "pending",
            "presentee": False,
            "customData": custom_data or {},
            "registeredAt": ts,
            "lastUpdatedAt": ts,
        }
        reg_id = store.add(REGISTRATIONS, data)
    return EventRegistration.model_validate({**data, "id": reg_id})


def list_my_registrations(store: DocumentStore, profile: UserProfile) -> List[Dict[str, Any]]:
    out = []
    for doc in store.where(REGISTRATIONS, "userId", profile.uid):
        reg = EventRegistration.model_validate(doc)
        event = store.get(EVENTS, reg.sub_event_id)
        out.append(
            {
                **reg.to_doc(),
                "event": {"id": reg.sub_event_id, "slug": event.get("slug"), "title": event.get("title")}
                if event
                else None,
            }
        )
    return sorted(out, key=lambda r: r.get("registeredAt") or "")


def _matches(row: Dict[str, Any], flt: Filter) -> bool:
    column, operator, expected = flt
    value = row.get(column)
    if operator == "contains":
        return str(expected).lower() in str(value).lower()
    if operator == "equals":
        return str(value).lower() == str(expected).lower()
    if operator == "is":
        return value == expected
    return True


def list_participants(
    store: DocumentStore,
    viewer: UserProfile,
    slug: str,
    filters: Iterable[Filter] = (),
) -> List[Dict[str, Any]]:
    """Registrations of an event joined with their user profiles."""
    event = get_event_by_slug(store, slug)
    _require_view(viewer, event)

    rows: List[Dict[str, Any]] = []
    for doc in store.where(REGISTRATIONS, "subEventId", event.id):
        reg = EventRegistration.model_validate(doc)
        user = store.get(USERS, reg.user_id)
        if user is None:
            continue
        user.pop("id", None)
        rows.append(
            {
                **user,
                **reg.custom_data,
                "uid": reg.user_id,
                "registrationId": reg.id,
                "registrationStatus": reg.registration_status,
                "presentee": reg.presentee,
                "admitCardUrl": reg.admit_card_url,
                "registeredAt": reg.registered_at,
            }
        )

    filters = list(filters)
    for _, operator, _ in filters:
        if operator not in FILTER_OPERATORS:
            raise InvalidInput(f"unknown filter operator '{operator}'")
    rows = [r for r in rows if all(_matches(r, f) for f in filters)]
    return sorted(rows, key=lambda r: r.get("registeredAt") or "")


def _registration_and_event(
    store: DocumentStore, registration_id: str
) -> Tuple[Dict[str, Any], SubEvent]:
    reg = store.get(REGISTRATIONS, registration_id)
    if reg is None:
        raise NotFound(f"registration {registration_id} not found")
    event = store.get(EVENTS, reg["subEventId"])
    if event is None:
        raise NotFound(f"event {reg['subEventId']} not found")
    return reg, SubEvent.model_validate(event)


def update_registration_field(
    store: DocumentStore,
    viewer: UserProfile,
    registration_id: str,
    field: str,
    value: Any,
    custom: bool = False,
) -> EventRegistration:
    with store.transaction():
        reg, event = _registration_and_event(store, registration_id)
        _require_view(viewer, event)

        updates: Dict[str, Any] = {"lastUpdatedAt": now_iso()}
        if custom:
            updates["customData"] = {**(reg.get("customData") or {}), field: value}
        else:
            if field not in EDITABLE_FIELDS:
                raise InvalidInput(f"field '{field}' cannot be changed")
            if field == "registrationStatus" and value not in REGISTRATION_STATUSES:
                raise InvalidInput(
                    f"registrationStatus must be one of {', '.join(REGISTRATION_STATUSES)}"
                )
            updates[field] = value

        # Nothing is written unless the merged document is still a valid registration.
        try:
            merged = EventRegistration.model_validate({**reg, **updates})
        except ValidationError as e:
            raise InvalidInput(f"invalid value for '{field}': {e.errors()[0]['msg']}")
        stored = merged.model_dump(by_alias=True)
        store.update(REGISTRATIONS, registration_id, {k: stored[k] for k in updates})

    telemetry.increment("registration_updates_total")
    telemetry.log_json(
        "registration_updated",
        registration_id=registration_id,
        field=field,
        custom=custom,
        by=viewer.uid,
    )
    return merged


def set_admit_card(
    store: DocumentStore, viewer: UserProfile, registration_id: str, url: str
) -> EventRegistration:
    return update_registration_field(store, viewer, registration_id, "admitCardUrl", url)
