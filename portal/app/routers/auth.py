# portal/app/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr

from portal.app.dependencies.auth import bearer_token, current_profile, require_roles
from portal.app.dependencies.store import get_store
from portal.app.models import EVENT_MANAGER_ROLES, UserProfile
from portal.app.schema.forms import OrganizerSignup
from portal.app.services import profiles
from portal.app.services.document_store import DocumentStore
from portal.app.services.identity import IdentityProvider, get_identity_provider
from portal.app.services.session import SessionState

log = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


class Credentials(BaseModel):
    email: EmailStr
    password: str


class PasswordResetIn(BaseModel):
    email: EmailStr


def _session_body(session: SessionState) -> dict:
    user = session.current_user
    return {
        "ok": True,
        "uid": user.uid if user else None,
        "email": user.email if user else None,
        "idToken": user.id_token if user else None,
        "profile": session.profile.to_doc() if session.profile else None,
    }


@router.post("/sign-in")
async def sign_in(
    body: Credentials,
    identity: IdentityProvider = Depends(get_identity_provider),
    store: DocumentStore = Depends(get_store),
):
    session = SessionState(identity, store)
    await session.sign_in(body.email, body.password)
    return _session_body(session)


@router.post("/sign-up")
def sign_up(
    body: OrganizerSignup,
    editor: UserProfile = Depends(require_roles(*EVENT_MANAGER_ROLES)),
    identity: IdentityProvider = Depends(get_identity_provider),
    store: DocumentStore = Depends(get_store),
):
    """Staff account creation by an admin or overall head; the caller stays signed in."""
    profile = profiles.register_organizer(store, identity, editor, body)
    log.info(f"[auth] {editor.uid} created {profile.role} {profile.uid}")
    return {"ok": True, "profile": profile.to_doc()}


@router.post("/first-admin")
async def first_admin(
    body: OrganizerSignup,
    identity: IdentityProvider = Depends(get_identity_provider),
    store: DocumentStore = Depends(get_store),
):
    profiles.create_first_admin(store, identity, body)
    session = SessionState(identity, store)
    await session.sign_in(body.email, body.password)
    return _session_body(session)


@router.post("/sign-out")
async def sign_out(
    token: str = Depends(bearer_token),
    identity: IdentityProvider = Depends(get_identity_provider),
    store: DocumentStore = Depends(get_store),
):
    session = SessionState(identity, store)
    await session.restore(token)
    await session.sign_out()
    return {"ok": True}


@router.post("/password-reset")
async def password_reset(
    body: PasswordResetIn,
    identity: IdentityProvider = Depends(get_identity_provider),
    store: DocumentStore = Depends(get_store),
):
    await SessionState(identity, store).send_password_reset(body.email)
    return {"ok": True}


@router.get("/me")
def me(profile: UserProfile = Depends(current_profile)):
    return {"ok": True, "profile": profile.to_doc()}
