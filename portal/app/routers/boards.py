# portal/app/routers/boards.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from portal.app.dependencies.auth import require_roles
from portal.app.dependencies.store import get_store
from portal.app.models import EVENT_MANAGER_ROLES, STAFF_ROLES, UserProfile
from portal.app.schema.forms import NewBoard
from portal.app.services import boards
from portal.app.services.document_store import DocumentStore

router = APIRouter(prefix="/boards", tags=["boards"])


@router.get("")
def get_boards(
    actor: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    mine, others = boards.list_boards(store, actor)
    return {
        "ok": True,
        "mine": [b.to_doc() for b in mine],
        "others": [b.to_doc() for b in others],
    }


@router.post("")
def post_board(
    body: NewBoard,
    actor: UserProfile = Depends(require_roles(*EVENT_MANAGER_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    return {"ok": True, "board": boards.create_board(store, actor, body).to_doc()}


@router.post("/{board_id}/join")
def join(
    board_id: str,
    actor: UserProfile = Depends(require_roles(*STAFF_ROLES)),
    store: DocumentStore = Depends(get_store),
):
    return {"ok": True, "board": boards.join_board(store, actor, board_id).to_doc()}
