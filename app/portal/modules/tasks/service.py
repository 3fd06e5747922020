"""
Task assignment service.

Tasks are stored as one ``task_text`` whose first line is the title. The duplicate
policy only blocks exact repeats: same normalized title, same assignee, same
calendar day.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

from app.portal.audit import record_event
from app.portal.duplicates import TASK_POLICY, as_calendar_day, first_line
from app.portal.errors import FieldInvalid, Forbidden
from app.portal.insert_gate import InsertGate

from .models import Task

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.portal.models import User

logger = logging.getLogger(__name__)

# "Carried Forward" is a presentation of an overdue pending task.
STATUS_MAP = {
    "pending": "pending",
    "completed": "completed",
    "carried forward": "pending",
}


def map_status(value: Any) -> str:
    key = str(value or "").strip().lower()
    return STATUS_MAP.get(key, key)


def _as_utc_naive(value: datetime) -> datetime:
    # stored naive in UTC; an offset can move the calendar day
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_task_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return _as_utc_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            return _as_utc_naive(parsed)
    raise FieldInvalid("Invalid date")


def _join_text(title: Any, description: Any) -> str:
    return f"{title or ''}\n{description or ''}".strip()


def parse_task_payload(body: dict) -> dict[str, Any]:
    """Accept the page format (employee/title/description/deadline) or the storage format."""
    if body.get("employee"):
        return {
            "assigned_to": body.get("employee"),
            "date": body.get("deadline"),
            "task_text": _join_text(body.get("title"), body.get("description")),
            "status": map_status(body.get("status") or "pending"),
        }
    return {
        "assigned_to": body.get("assignedTo"),
        "date": body.get("date"),
        "task_text": body.get("taskText"),
        "status": map_status(body.get("status") or "pending"),
    }


def _clean_text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise FieldInvalid("Task text must be non-empty text")
    return value.strip()


def clean_task(body: dict) -> dict[str, Any]:
    data = parse_task_payload(body)
    if not data["assigned_to"] or not data["date"] or not data["task_text"]:
        raise FieldInvalid("Please provide assignedTo/employee, date/deadline, and taskText/title+description")
    return {
        "assigned_to": str(data["assigned_to"]).strip(),
        "date": parse_task_date(data["date"]),
        "task_text": _clean_text(data["task_text"]),
        "status": "completed" if data["status"] == "completed" else "pending",
    }


def policy_record(t: Task) -> dict[str, Any]:
    return {
        "id": t.id,
        "assigned_to": t.assigned_to,
        "task_text": t.task_text,
        "date": t.date,
        "status": t.status,
    }


def load_task_peers(s: "Session") -> list[dict[str, Any]]:
    return [policy_record(t) for t in s.query(Task).order_by(Task.id.asc()).all()]


def persist_task(s: "Session", c: dict[str, Any], user: "User | None") -> Task:
    task = Task(
        assigned_to=c["assigned_to"],
        assigned_by=user.username if user else None,
        date=c["date"],
        task_text=c["task_text"],
        status=c["status"],
        status_history=[],
        created_at=datetime.utcnow(),
    )
    s.add(task)
    return task


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def split_task_text(text: str) -> tuple[str, str]:
    title = first_line(text)
    description = "\n".join(text.split("\n")[1:]) or text
    return title, description


def is_carried_forward(t: Task, today: date | None = None) -> bool:
    today = today or date.today()
    deadline = as_calendar_day(t.date)
    return t.status == "pending" and deadline is not None and deadline < today


def display_status(t: Task, today: date | None = None) -> str:
    if is_carried_forward(t, today):
        return "Carried Forward"
    return t.status.capitalize()


def status_history(t: Task) -> list[dict[str, Any]]:
    """Stored history, or a single entry built from the older free-text status fields."""
    history = list(t.status_history or [])
    if history:
        return history
    if t.status_update and t.status_update.strip():
        at = t.status_updated_at or t.last_updated_on or t.created_at
        return [{"statusText": t.status_update.strip(), "updatedAt": _iso(at)}]
    if t.employee_status and t.employee_status.strip():
        at = t.last_updated_on or t.created_at
        return [{"statusText": t.employee_status.strip(), "updatedAt": _iso(at)}]
    return []


def present_task(t: Task, today: date | None = None) -> dict[str, Any]:
    title, description = split_task_text(t.task_text)
    return {
        "_id": t.id,
        "id": t.id,
        "employee": t.assigned_to,
        "title": title,
        "description": description,
        "deadline": _iso(t.date),
        "assignedDate": _iso(t.created_at),
        "assignedBy": t.assigned_by,
        "status": display_status(t, today),
        "statusUpdate": t.status_update or "",
        "statusUpdatedAt": _iso(t.status_updated_at),
        "employeeStatus": t.employee_status or "",
        "lastUpdatedOn": _iso(t.last_updated_on),
        "statusHistory": status_history(t),
        "createdAt": _iso(t.created_at),
    }


TASK_GATE = InsertGate(
    entity="Task",
    action="task.create",
    policy=TASK_POLICY,
    clean=clean_task,
    load_peers=load_task_peers,
    persist=persist_task,
    present=present_task,
)


def list_tasks(s: "Session", user: "User", *, assigned_to: str | None = None, status: str | None = None) -> list[Task]:
    q = s.query(Task)
    if not user.is_admin:
        q = q.filter(Task.assigned_to == user.username)
    elif assigned_to:
        q = q.filter(Task.assigned_to == assigned_to)
    if status:
        q = q.filter(Task.status == map_status(status))
    return q.order_by(Task.date.desc(), Task.id.desc()).all()


def _ensure_owner(task: Task, user: "User", message: str) -> None:
    if task.assigned_to != user.username:
        raise Forbidden(message)


def update_task(s: "Session", task: Task, body: dict, user: "User") -> Task:
    """
    Admins may replace any field. Employees may only change ``status`` and
    ``statusUpdate`` on tasks assigned to them.
    """
    changes: dict[str, Any] = {}

    def _set(column: str, value: Any) -> None:
        old = getattr(task, column)
        if value != old:
            changes[column] = {"old": old, "new": value}
            setattr(task, column, value)

    if user.is_admin:
        assigned_to = body.get("employee") or body.get("assignedTo")
        if assigned_to:
            _set("assigned_to", str(assigned_to).strip())

        deadline = body.get("deadline") or body.get("date")
        if deadline:
            _set("date", parse_task_date(deadline))

        if body.get("title") or body.get("description"):
            _set("task_text", _join_text(body.get("title"), body.get("description")))
        elif body.get("taskText"):
            _set("task_text", _clean_text(body["taskText"]))
    else:
        _ensure_owner(task, user, "Not authorized to update this task")
        if "statusUpdate" in body:
            _set("status_update", body.get("statusUpdate") or "")
            task.status_updated_at = datetime.utcnow()

    if body.get("status"):
        _set("status", map_status(body["status"]))

    record_event(
        s,
        actor=user,
        action="task.edit",
        entity_type="Task",
        entity_id=str(task.id),
        metadata={"assigned_to": task.assigned_to, "changes": changes},
    )
    return task


def _append_history(task: Task, history: list[dict[str, Any]], text: str, now: datetime) -> None:
    if task.status == "completed" or not text.strip():
        return
    # reassign so the JSON column is flagged dirty
    task.status_history = [*history, {"statusText": text.strip(), "updatedAt": now.isoformat()}]
    logger.info("Task %s status history now has %d entries", task.id, len(task.status_history))


def post_status_update(s: "Session", task: Task, body: dict, user: "User", *, field: str = "statusUpdate") -> Task:
    """
    Employee progress note on their own task.

    ``statusUpdate`` (PATCH /tasks/<id>/status) writes ``status_update``;
    ``statusText`` (PUT /tasks/update-status/<id>) writes ``employee_status``.
    Either way the note is appended to the history unless the task is completed.
    """
    if user.is_admin:
        raise Forbidden("Only employees can update task status")
    _ensure_owner(task, user, "Not authorized to update this task. Task is not assigned to you.")

    text = body.get(field)
    if text is None:
        raise FieldInvalid(f"{field} is required")
    text = str(text)

    history = status_history(task)
    now = datetime.utcnow()
    if field == "statusText":
        task.employee_status = text
        task.last_updated_on = now
    else:
        task.status_update = text
        task.status_updated_at = now
    _append_history(task, history, text, now)

    record_event(
        s,
        actor=user,
        action="task.update_status",
        entity_type="Task",
        entity_id=str(task.id),
        metadata={"statusText": text.strip()},
    )
    return task


def delete_task(s: "Session", task: Task, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="task.delete",
        entity_type="Task",
        entity_id=str(task.id),
        metadata={"assigned_to": task.assigned_to, "title": first_line(task.task_text)},
    )
    s.delete(task)
