from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from app.portal.models import Base, JSONType


class _PartnerColumns:
    """Columns every trading-partner directory shares."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    company_name: Mapped[str] = mapped_column(String(160), nullable=False)
    business_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")  # active|inactive

    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    city: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)

    payment_terms: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    @declared_attr
    def created_by_user_id(cls) -> Mapped[int | None]:
        return mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class Dealer(_PartnerColumns, Base):
    __tablename__ = "dealers"

    gst_number: Mapped[str | None] = mapped_column(String(15), nullable=True)
    pan_number: Mapped[str | None] = mapped_column(String(10), nullable=True)
    establishment_year: Mapped[str | None] = mapped_column(String(4), nullable=True)
    pin_code: Mapped[str | None] = mapped_column(String(6), nullable=True)
    territory_covered: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mobile: Mapped[str | None] = mapped_column(String(32), nullable=True)

    contact_person_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    contact_person_designation: Mapped[str | None] = mapped_column(String(128), nullable=True)
    contact_person_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    contact_person_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    products_offered: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)  # [{productType, price}]
    brands_handled: Mapped[str | None] = mapped_column(String(255), nullable=True)
    credit_limit: Mapped[float | None] = mapped_column(Float, nullable=True)

    bank_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    bank_account_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bank_ifsc: Mapped[str | None] = mapped_column(String(11), nullable=True)

    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    agreement_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    agreement_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class Importer(_PartnerColumns, Base):
    __tablename__ = "importers"

    iec_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    products_offered: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    countries_importing_from: Mapped[str | None] = mapped_column(String(255), nullable=True)

    contact_person_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    contact_person_designation: Mapped[str | None] = mapped_column(String(128), nullable=True)
    contact_person_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    contact_person_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    bank_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    bank_account_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bank_ifsc: Mapped[str | None] = mapped_column(String(11), nullable=True)

    rating: Mapped[float | None] = mapped_column(Float, nullable=True)


class Customer(_PartnerColumns, Base):
    __tablename__ = "customers"

    contact_person: Mapped[str | None] = mapped_column(String(160), nullable=True)
    designation: Mapped[str | None] = mapped_column(String(128), nullable=True)
    mobile: Mapped[str | None] = mapped_column(String(32), nullable=True)
    pin_code: Mapped[str | None] = mapped_column(String(6), nullable=True)
    gst_number: Mapped[str | None] = mapped_column(String(15), nullable=True)
    pan_number: Mapped[str | None] = mapped_column(String(10), nullable=True)
    credit_limit: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
