# portal/app/routers/profiles.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from portal.app.dependencies.auth import current_profile, require_roles
from portal.app.dependencies.store import get_store
from portal.app.models import EVENT_MANAGER_ROLES, STAFF_ROLES, UserProfile
from portal.app.schema.forms import ProfileUpdate, StaffUpdate
from portal.app.services import profiles
from portal.app.services.document_store import DocumentStore

router = APIRouter(tags=["profiles"])


@router.get("/profile")
def read_profile(profile: UserProfile = Depends(current_profile)):
    return {"ok": True, "profile": profile.to_doc()}


@router.patch("/profile")
def patch_profile(
    body: ProfileUpdate,
    profile: UserProfile = Depends(current_profile),
    store: DocumentStore = Depends(get_store),
):
    updated = profiles.update_own_profile(store, profile, body)
    return {"ok": True, "profile": updated.to_doc()}


@router.get("/staff")
def get_staff(
    _: UserProfile = Depends(require_roles(*EVENT_MANAGER_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    return {"ok": True, "staff": [p.to_doc() for p in profiles.list_staff(store)]}


@router.patch("/staff/{uid}")
def patch_staff(
    uid: str,
    body: StaffUpdate,
    editor: UserProfile = Depends(require_roles(*EVENT_MANAGER_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    updated = profiles.update_staff(store, editor, uid, body)
    return {"ok": True, "profile": updated.to_doc()}


@router.get("/leaderboard")
def get_leaderboard(
    limit: Optional[int] = None,
    _: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    ranked = profiles.leaderboard(store, limit)
    return {
        "ok": True,
        "leaderboard": [
            {
                "rank": i + 1,
                "uid": p.uid,
                "name": p.full_name or p.display_name or p.email,
                "role": p.role,
                "credibilityScore": p.credibility_score,
                "points": p.points,
            }
            for i, p in enumerate(ranked)
        ],
    }
