# portal/app/routers/registrations.py
from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from portal.app.dependencies.auth import current_profile, require_roles
from portal.app.dependencies.store import get_store
from portal.app.models import STAFF_ROLES, UserProfile
from portal.app.schema.forms import RegistrationFieldUpdate
from portal.app.services import registrations
from portal.app.services.document_store import DocumentStore

router = APIRouter(tags=["registrations"])


@router.patch("/registrations/{registration_id}")
def patch_registration(
    registration_id: str,
    body: RegistrationFieldUpdate,
    viewer: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    reg = registrations.update_registration_field(
        store, viewer, registration_id, body.field, body.value, custom=body.custom
    )
    return {"ok": True, "registration": reg.to_doc()}


@router.put("/registrations/{registration_id}/admit-card")
def put_admit_card(
    registration_id: str,
    admit_card_url: str = Body(..., alias="admitCardUrl", embed=True, min_length=1),
    viewer: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    reg = registrations.set_admit_card(store, viewer, registration_id, admit_card_url)
    return {"ok": True, "registration": reg.to_doc()}


@router.get("/my-registrations")
def my_registrations(
    profile: UserProfile = Depends(current_profile),
    store: DocumentStore = Depends(get_store),
):
    return {"ok": True, "registrations": registrations.list_my_registrations(store, profile)}
