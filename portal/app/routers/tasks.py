# portal/app/routers/tasks.py
from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from portal.app.dependencies.auth import current_profile, require_roles
from portal.app.dependencies.store import get_store
from portal.app.models import STAFF_ROLES, UserProfile
from portal.app.schema.forms import NewTask, TaskStatusChange, TaskUpdate
from portal.app.services import tasks
from portal.app.services.document_store import DocumentStore

router = APIRouter(tags=["tasks"])

staff_only = require_roles(*STAFF_ROLES)


@router.get("/tasks")
def get_tasks(
    actor: UserProfile = Depends(staff_only),
    store: DocumentStore = Depends(get_store),
):
    return {"ok": True, "tasks": [t.to_doc() for t in tasks.list_tasks(store, actor)]}


@router.post("/tasks")
def post_task(
    body: NewTask,
    actor: UserProfile = Depends(staff_only),
    store: DocumentStore = Depends(get_store),
):
    return {"ok": True, "task": tasks.create_task(store, actor, body).to_doc()}


@router.patch("/tasks/{task_id}")
def patch_task(
    task_id: str,
    body: TaskUpdate,
    actor: UserProfile = Depends(staff_only),
    store: DocumentStore = Depends(get_store),
):
    return {"ok": True, "task": tasks.update_task(store, actor, task_id, body).to_doc()}


@router.patch("/tasks/{task_id}/status")
def patch_task_status(
    task_id: str,
    body: TaskStatusChange,
    actor: UserProfile = Depends(staff_only),
    store: DocumentStore = Depends(get_store),
):
    task = tasks.change_task_status(store, actor, task_id, body.status)
    return {"ok": True, "task": task.to_doc()}


@router.delete("/tasks/{task_id}")
def remove_task(
    task_id: str,
    actor: UserProfile = Depends(staff_only),
    store: DocumentStore = Depends(get_store),
):
    tasks.delete_task(store, actor, task_id)
    return {"ok": True, "deleted": task_id}


@router.get("/notifications")
def get_notifications(
    profile: UserProfile = Depends(current_profile),
    store: DocumentStore = Depends(get_store),
):
    items = tasks.list_notifications(store, profile.uid)
    return {
        "ok": True,
        "unread": sum(1 for n in items if not n.read),
        "notifications": [n.to_doc() for n in items],
    }


@router.patch("/notifications/{notification_id}")
def patch_notification(
    notification_id: str,
    read: bool = Body(True, embed=True),
    profile: UserProfile = Depends(current_profile),
    store: DocumentStore = Depends(get_store),
):
    item = tasks.mark_notification(store, profile.uid, notification_id, read)
    return {"ok": True, "notification": item.to_doc()}
