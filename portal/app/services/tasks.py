# portal/app/services/tasks.py
from __future__ import annotations

import logging
from typing import List

from portal.app.config import settings
from portal.app.errors import Conflict, InvalidInput, NotFound, PermissionDenied
from portal.app.models import Notification, Task, TaskStatus, UserProfile
from portal.app.schema.forms import NewTask, TaskUpdate
from portal.app.services.document_store import (
    NOTIFICATIONS,
    TASKS,
    USERS,
    DocumentStore,
    now_iso,
)

log = logging.getLogger(__name__)


def _require_staff(profile: UserProfile) -> None:
    if not profile.is_staff:
        raise PermissionDenied("Only staff members can manage tasks.")


def notify(store: DocumentStore, user_id: str, title: str, message: str = "") -> str:
    return store.add(
        NOTIFICATIONS,
        {"userId": user_id, "title": title, "message": message, "read": False, "createdAt": now_iso()},
    )


def list_tasks(store: DocumentStore, actor: UserProfile) -> List[Task]:
    _require_staff(actor)
    tasks = [Task.model_validate(d) for d in store.all(TASKS)]
    return sorted(tasks, key=lambda t: t.created_at or "")


def create_task(store: DocumentStore, actor: UserProfile, form: NewTask) -> Task:
    _require_staff(actor)
    ts = now_iso()
    data = {
        **form.model_dump(by_alias=True, exclude_none=True),
        "status": "Not Started",
        "createdBy": actor.uid,
        "createdAt": ts,
        "updatedAt": ts,
    }
    task_id = store.add(TASKS, data)
    for assignee in form.assigned_to_user_ids:
        notify(store, assignee, "New task assigned", form.title)
    return Task.model_validate({**data, "id": task_id})


def update_task(store: DocumentStore, actor: UserProfile, task_id: str, form: TaskUpdate) -> Task:
    """Edit title, description, links, assignees or points; status moves via change_task_status."""
    _require_staff(actor)
    changes = form.model_dump(by_alias=True, exclude_unset=True)
    if "title" in changes and not changes["title"]:
        raise InvalidInput("Task title cannot be empty.")
    if "assignedToUserIds" in changes:
        changes["assignedToUserIds"] = changes["assignedToUserIds"] or []

    with store.transaction():
        doc = store.get(TASKS, task_id)
        if doc is None:
            raise NotFound(f"task {task_id} not found")
        before = Task.model_validate(doc)
        changes.update({"assignedByUserId": actor.uid, "updatedAt": now_iso()})
        task = Task.model_validate(store.update(TASKS, task_id, changes))

    for assignee in task.assigned_to_user_ids:
        if assignee not in before.assigned_to_user_ids:
            notify(store, assignee, "New task assigned", task.title)
    return task


def delete_task(store: DocumentStore, actor: UserProfile, task_id: str) -> None:
    _require_staff(actor)
    if store.get(TASKS, task_id) is None:
        raise NotFound(f"task {task_id} not found")
    store.delete(TASKS, task_id)


def change_task_status(
    store: DocumentStore, actor: UserProfile, task_id: str, status: TaskStatus
) -> Task:
    """Move a task; completing it awards its points to every assignee."""
    _require_staff(actor)
    with store.transaction():
        doc = store.get(TASKS, task_id)
        if doc is None:
            raise NotFound(f"task {task_id} not found")
        task = Task.model_validate(doc)

        if status != "Completed":
            doc = store.update(TASKS, task_id, {"status": status, "updatedAt": now_iso()})
            return Task.model_validate(doc)

        if task.status == "Completed":
            raise Conflict("Task is already completed.")

        ts = now_iso()
        doc = store.update(
            TASKS,
            task_id,
            {"status": "Completed", "completedByUserId": actor.uid, "completedAt": ts, "updatedAt": ts},
        )
        points = task.points_on_completion or settings.DEFAULT_TASK_POINTS
        awarded = []
        for assignee in task.assigned_to_user_ids:
            user = store.get(USERS, assignee)
            if user is None:
                continue
            score = int(user.get("credibilityScore") or 0) + points
            store.update(USERS, assignee, {"credibilityScore": score})
            awarded.append(assignee)

    for assignee in awarded:
        notify(store, assignee, "Task completed", f"{task.title}: {points} points awarded.")
    log.info(f"[tasks] {task_id} completed by {actor.uid}; {points} points to {len(awarded)} user(s)")
    return Task.model_validate(doc)


def list_notifications(store: DocumentStore, uid: str) -> List[Notification]:
    items = [Notification.model_validate(d) for d in store.where(NOTIFICATIONS, "userId", uid)]
    return sorted(items, key=lambda n: n.created_at or "", reverse=True)


def mark_notification(store: DocumentStore, uid: str, notification_id: str, read: bool) -> Notification:
    doc = store.get(NOTIFICATIONS, notification_id)
    if doc is None or doc.get("userId") != uid:
        raise NotFound(f"notification {notification_id} not found")
    return Notification.model_validate(store.update(NOTIFICATIONS, notification_id, {"read": read}))
