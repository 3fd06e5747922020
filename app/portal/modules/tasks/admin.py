from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.portal.db import commit_or_fail, db_session
from app.portal.rbac import require_permission
from app.portal.utils import current_user, get_or_404, request_payload

from .models import Task
from .service import TASK_GATE, delete_task, list_tasks, post_status_update, present_task, update_task

bp = Blueprint("tasks", __name__)


@bp.get("/tasks")
@require_permission("tasks.view")
def tasks_list():
    s = db_session()
    tasks = list_tasks(
        s,
        current_user(),
        assigned_to=request.args.get("assignedTo") or request.args.get("employee"),
        status=request.args.get("status"),
    )
    return jsonify([present_task(t) for t in tasks])


@bp.post("/tasks")
@require_permission("tasks.create")
def tasks_create():
    s = db_session()
    data = TASK_GATE.run(s, request_payload(), current_user())
    return jsonify({"success": True, "data": data}), 201


@bp.put("/tasks/<int:task_id>")
@require_permission("tasks.view")
def task_update(task_id: int):
    s = db_session()
    task = get_or_404(s, Task, task_id, "Task")
    update_task(s, task, request_payload(), current_user())
    commit_or_fail(s)
    return jsonify({"success": True, "data": present_task(task)})


@bp.patch("/tasks/<int:task_id>/status")
@require_permission("tasks.update_status")
def task_status_update(task_id: int):
    s = db_session()
    task = get_or_404(s, Task, task_id, "Task")
    post_status_update(s, task, request_payload(), current_user(), field="statusUpdate")
    commit_or_fail(s)
    return jsonify({"success": True, "data": present_task(task)})


@bp.put("/tasks/update-status/<int:task_id>")
@require_permission("tasks.update_status")
def task_employee_status(task_id: int):
    s = db_session()
    task = get_or_404(s, Task, task_id, "Task")
    post_status_update(s, task, request_payload(), current_user(), field="statusText")
    commit_or_fail(s)
    return jsonify({"success": True, "data": present_task(task)})


@bp.delete("/tasks/<int:task_id>")
@require_permission("tasks.delete")
def task_delete(task_id: int):
    s = db_session()
    task = get_or_404(s, Task, task_id, "Task")
    delete_task(s, task, current_user())
    commit_or_fail(s)
    return jsonify({"success": True, "message": "Task deleted successfully"})
