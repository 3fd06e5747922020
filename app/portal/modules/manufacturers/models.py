from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.portal.models import Base, JSONType


class Manufacturer(Base):
    __tablename__ = "manufacturers"
    __table_args__ = (
        Index("idx_manufacturers_name", "name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Required
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    contact: Mapped[str] = mapped_column(String(32), nullable=False)  # 10-digit phone

    # [{"productType": "W-Beam", "price": 420}, ...]
    products_offered: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Optional company details
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gst_number: Mapped[str | None] = mapped_column(String(15), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_person_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    contact_person_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    contact_person_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_person_designation: Mapped[str | None] = mapped_column(String(128), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    created_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
