# portal/app/services/profiles.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from portal.app.config import settings
from portal.app.errors import Conflict, InvalidInput, NotFound, PermissionDenied
from portal.app.models import EVENT_MANAGER_ROLES, STAFF_ROLES, UserProfile
from portal.app.schema.forms import OrganizerSignup, ProfileUpdate, StaffUpdate
from portal.app.services import boards
from portal.app.services.document_store import EVENTS, USERS, DocumentStore, now_iso
from portal.app.services.identity import IdentityProvider

log = logging.getLogger(__name__)


def get_profile(store: DocumentStore, uid: str) -> UserProfile:
    doc = store.get(USERS, uid)
    if doc is None:
        raise NotFound(f"profile {uid} not found")
    doc.setdefault("uid", uid)
    return UserProfile.model_validate(doc)


def update_own_profile(
    store: DocumentStore, profile: UserProfile, changes: ProfileUpdate
) -> UserProfile:
    """Apply the editable subset of a user's own profile."""
    updates: Dict[str, Any] = {
        "phoneNumbers": [n for n in (changes.phone_numbers or []) if n],
        "additionalNumber": changes.additional_number or None,
        "photoURL": changes.photo_url or None,
        "updatedAt": now_iso(),
    }

    if profile.is_student:
        try:
            standard = int(changes.standard or "0")
        except ValueError:
            standard = -1
        if not settings.STUDENT_MIN_STANDARD <= standard <= settings.STUDENT_MAX_STANDARD:
            raise InvalidInput(
                f"Standard must be a number between {settings.STUDENT_MIN_STANDARD} "
                f"and {settings.STUDENT_MAX_STANDARD}."
            )
        updates["schoolName"] = changes.school_name
        updates["standard"] = changes.standard
        updates["division"] = changes.division or None
        # Verification only survives when the school did not change.
        updates["schoolVerifiedByOrganizer"] = (
            profile.school_verified_by_organizer
            if profile.school_name == changes.school_name
            else False
        )
    else:
        updates["department"] = changes.department

    doc = store.update(USERS, profile.uid, updates)
    return UserProfile.model_validate(doc)


def _create_staff_profile(
    store: DocumentStore, identity: IdentityProvider, signup: OrganizerSignup
) -> UserProfile:
    with store.transaction():
        if store.where(USERS, "collegeRollNumber", signup.college_roll_number):
            raise Conflict("This College Roll Number is already registered.")
        user = identity.sign_up(signup.email, signup.password)
        ts = now_iso()
        profile = UserProfile(
            uid=user.uid,
            email=user.email,
            full_name=signup.full_name,
            display_name=signup.full_name,
            role=signup.role,
            department=signup.department,
            phone_numbers=[signup.phone_number],
            additional_number=signup.additional_number,
            college_roll_number=signup.college_roll_number,
            photo_url=signup.photo_url,
            points=0,
            credibility_score=0,
            created_at=ts,
            updated_at=ts,
        )
        store.set(USERS, user.uid, profile.to_doc())
    boards.add_to_general_board(store, user.uid)
    log.info(f"[profiles] created {signup.role} profile {user.uid}")
    return profile


def register_organizer(
    store: DocumentStore,
    identity: IdentityProvider,
    editor: UserProfile,
    signup: OrganizerSignup,
) -> UserProfile:
    """Staff account created by an admin or overall head; only admins create admins."""
    if editor.role not in EVENT_MANAGER_ROLES:
        raise PermissionDenied("Only admins and overall heads can create staff accounts.")
    if signup.role == "admin" and editor.role != "admin":
        raise PermissionDenied("Only admins can create admin accounts.")
    return _create_staff_profile(store, identity, signup)


def create_first_admin(
    store: DocumentStore, identity: IdentityProvider, signup: OrganizerSignup
) -> UserProfile:
    with store.transaction():
        if store.where(USERS, "role", "admin"):
            raise Conflict("An admin account already exists.")
        return _create_staff_profile(
            store, identity, signup.model_copy(update={"role": "admin"})
        )


def list_staff(store: DocumentStore) -> List[UserProfile]:
    docs = store.where_in(USERS, "role", STAFF_ROLES)
    staff = [UserProfile.model_validate({**d, "uid": d.get("uid") or d["id"]}) for d in docs]
    return sorted(staff, key=lambda p: (p.full_name or p.display_name or p.email or "").lower())


def leaderboard(store: DocumentStore, limit: Optional[int] = None) -> List[UserProfile]:
    ranked = sorted(
        list_staff(store),
        key=lambda p: (p.credibility_score, p.points),
        reverse=True,
    )
    return ranked[:limit] if limit else ranked


def update_staff(
    store: DocumentStore, editor: UserProfile, uid: str, changes: StaffUpdate
) -> UserProfile:
    """Admin/overall-head edit of a staff member, mirrored onto event documents."""
    if editor.role not in EVENT_MANAGER_ROLES:
        raise PermissionDenied("Only admins and overall heads can edit staff.")

    with store.transaction():
        doc = store.update(
            USERS,
            uid,
            {
                "role": changes.role,
                "assignedEventUids": changes.assigned_event_uids,
                "studentDataEventAccess": changes.student_data_event_access,
                "points": int(changes.points or 0),
                "updatedAt": now_iso(),
            },
        )

        if changes.role == "event_representative":
            for event_id in changes.assigned_event_uids:
                event = store.get(EVENTS, event_id)
                if event is None:
                    continue
                reps = event.get("eventReps") or []
                if uid not in reps:
                    store.update(EVENTS, event_id, {"eventReps": [*reps, uid]})

        if changes.role == "organizer":
            access = changes.student_data_event_access
            for event in store.all(EVENTS):
                current = event.get("organizerUids") or []
                should_be_assigned = access.get(event["id"]) is True
                if should_be_assigned and uid not in current:
                    store.update(EVENTS, event["id"], {"organizerUids": [*current, uid]})
                elif not should_be_assigned and uid in current:
                    store.update(
                        EVENTS, event["id"], {"organizerUids": [u for u in current if u != uid]}
                    )

    return UserProfile.model_validate({**doc, "uid": uid})
