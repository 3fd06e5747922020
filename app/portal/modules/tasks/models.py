from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.portal.models import Base, JSONType


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_assigned_to", "assigned_to"),
        Index("idx_tasks_date", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # usernames, not user ids: tasks can be assigned before an account exists
    assigned_to: Mapped[str] = mapped_column(String(128), nullable=False)
    assigned_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)  # deadline
    task_text: Mapped[str] = mapped_column(Text, nullable=False)  # first line = title
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")  # pending|completed

    status_update: Mapped[str | None] = mapped_column(Text, nullable=True)
    status_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    employee_status: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_updated_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    status_history: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)  # [{statusText, updatedAt}]

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
