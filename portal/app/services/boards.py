# portal/app/services/boards.py
"""
Task boards. Staff see the boards they belong to and may join any other.
New staff accounts are added to the board named "general" when it exists.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from portal.app.errors import Conflict, NotFound, PermissionDenied
from portal.app.models import EVENT_MANAGER_ROLES, Board, UserProfile
from portal.app.schema.forms import NewBoard
from portal.app.services.document_store import BOARDS, DocumentStore, now_iso

log = logging.getLogger(__name__)

GENERAL_BOARD = "general"


def _require_staff(profile: UserProfile) -> None:
    if not profile.is_staff:
        raise PermissionDenied("Only staff members can use task boards.")


def _add_member(store: DocumentStore, board: dict, uid: str) -> dict:
    members = board.get("memberUids") or []
    if uid in members:
        return board
    return store.update(BOARDS, board["id"], {"memberUids": [*members, uid]})


def list_boards(store: DocumentStore, actor: UserProfile) -> Tuple[List[Board], List[Board]]:
    """(boards the actor belongs to, boards they could join), each sorted by name."""
    _require_staff(actor)
    boards = sorted(
        (Board.model_validate(d) for d in store.all(BOARDS)),
        key=lambda b: b.name.lower(),
    )
    mine = [b for b in boards if actor.uid in b.member_uids]
    others = [b for b in boards if actor.uid not in b.member_uids]
    return mine, others


def create_board(store: DocumentStore, actor: UserProfile, form: NewBoard) -> Board:
    if actor.role not in EVENT_MANAGER_ROLES:
        raise PermissionDenied("Only admins and overall heads can create boards.")
    with store.transaction():
        if store.where(BOARDS, "name", form.name):
            raise Conflict(f"A board named '{form.name}' already exists.")
        data = {
            **form.model_dump(by_alias=True, exclude_none=True),
            "memberUids": [actor.uid],
            "createdBy": actor.uid,
            "createdAt": now_iso(),
        }
        board_id = store.add(BOARDS, data)
    log.info(f"[boards] {actor.uid} created board {form.name}")
    return Board.model_validate({**data, "id": board_id})


def join_board(store: DocumentStore, actor: UserProfile, board_id: str) -> Board:
    _require_staff(actor)
    with store.transaction():
        board = store.get(BOARDS, board_id)
        if board is None:
            raise NotFound(f"board {board_id} not found")
        return Board.model_validate(_add_member(store, board, actor.uid))


def add_to_general_board(store: DocumentStore, uid: str) -> bool:
    with store.transaction():
        found = store.where(BOARDS, "name", GENERAL_BOARD)
        if not found:
            log.warning(f"[boards] no '{GENERAL_BOARD}' board to add {uid} to")
            return False
        _add_member(store, found[0], uid)
    return True
