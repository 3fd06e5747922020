"""
Trading-partner directories: dealers, importers and customers.

The three share one CRUD path driven by a ``Directory`` descriptor (field map,
required fields, validators, business code). They carry no duplicate policy.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from app.portal.audit import record_event
from app.portal.errors import FieldInvalid
from app.portal.utils import as_number
from app.portal.validators import (
    ValidationResult,
    ensure,
    parse_number,
    validate_email,
    validate_gst,
    validate_iec,
    validate_ifsc,
    validate_name,
    validate_numeric,
    validate_optional_phone,
    validate_pan,
    validate_pincode,
    validate_website,
    validate_year,
)

from .models import Customer, Dealer, Importer

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.portal.models import User


@dataclass(frozen=True)
class Field:
    body_key: str  # camelCase request key
    page_key: str  # presentation key
    column: str
    kind: str = "text"  # text|upper|number|date|products
    default: Any = None


@dataclass(frozen=True)
class Directory:
    entity: str
    action_prefix: str
    model: type
    code: Callable[[int], str]
    code_key: str
    fields: tuple[Field, ...]
    required: tuple[str, ...]
    required_message: str
    products_key: str | None = None  # comma-joined productType list in presentation


def _rating(value: Any) -> ValidationResult:
    return validate_numeric(value, "Rating", allow_zero=True, minimum=0)


def _credit_limit(value: Any) -> ValidationResult:
    return validate_numeric(value, "Credit limit", allow_zero=True, minimum=0)


VALIDATORS: dict[str, Callable[[Any], ValidationResult]] = {
    "company_name": lambda v: validate_name(v, "Company name"),
    "gst_number": validate_gst,
    "pan_number": validate_pan,
    "bank_ifsc": validate_ifsc,
    "iec_code": validate_iec,
    "pin_code": validate_pincode,
    "phone": lambda v: validate_optional_phone(v, "Phone number"),
    "mobile": lambda v: validate_optional_phone(v, "Mobile number"),
    "contact_person_phone": lambda v: validate_optional_phone(v, "Contact person phone"),
    "email": validate_email,
    "contact_person_email": validate_email,
    "website": validate_website,
    "establishment_year": validate_year,
    "rating": _rating,
    "credit_limit": _credit_limit,
}

_COMMON = (
    Field("companyName", "Company_Name", "company_name"),
    Field("status", "Status", "status", default="active"),
    Field("country", "Country", "country"),
    Field("state", "State", "state"),
    Field("city", "City", "city"),
    Field("address", "Address", "address"),
    Field("phone", "Phone", "phone"),
    Field("email", "Email", "email"),
    Field("website", "Website", "website"),
    Field("paymentTerms", "Payment_Terms", "payment_terms"),
)

_CONTACT_PERSON = (
    Field("contactPersonName", "Contact_Person_Name", "contact_person_name"),
    Field("contactPersonDesignation", "Contact_Person_Designation", "contact_person_designation"),
    Field("contactPersonPhone", "Contact_Person_Phone", "contact_person_phone"),
    Field("contactPersonEmail", "Contact_Person_Email", "contact_person_email"),
)

_BANK = (
    Field("bankName", "Bank_Name", "bank_name"),
    Field("bankAccountNumber", "Bank_Account_Number", "bank_account_number"),
    Field("bankIFSC", "Bank_IFSC", "bank_ifsc", kind="upper"),
)

DEALERS = Directory(
    entity="Dealer",
    action_prefix="dealer",
    model=Dealer,
    code=lambda i: f"DLR{i:04d}",
    code_key="Dealer_ID",
    fields=_COMMON
    + _CONTACT_PERSON
    + _BANK
    + (
        Field("businessType", "Business_Type", "business_type", default="Dealer"),
        Field("gstNumber", "GST_Number", "gst_number", kind="upper"),
        Field("panNumber", "PAN_Number", "pan_number", kind="upper"),
        Field("establishmentYear", "Establishment_Year", "establishment_year"),
        Field("pinCode", "PIN_Code", "pin_code"),
        Field("territoryCovered", "Territory_Covered", "territory_covered"),
        Field("mobile", "Mobile", "mobile"),
        Field("productsOffered", "productsOffered", "products_offered", kind="products"),
        Field("brandsHandled", "Brands_Handled", "brands_handled"),
        Field("creditLimit", "Credit_Limit", "credit_limit", kind="number"),
        Field("rating", "Rating", "rating", kind="number"),
        Field("agreementStartDate", "Agreement_Start_Date", "agreement_start_date", kind="date"),
        Field("agreementEndDate", "Agreement_End_Date", "agreement_end_date", kind="date"),
    ),
    required=("company_name",),
    required_message="Company name is required",
    products_key="Products_Dealing",
)

IMPORTERS = Directory(
    entity="Importer",
    action_prefix="importer",
    model=Importer,
    code=lambda i: f"IMP{i:03d}",
    code_key="Importer_ID",
    fields=_COMMON
    + _CONTACT_PERSON
    + _BANK
    + (
        Field("businessType", "Business_Type", "business_type"),
        Field("iecCode", "IEC_Code", "iec_code", kind="upper"),
        Field("productsOffered", "productsOffered", "products_offered", kind="products"),
        Field("countriesImportingFrom", "Countries_Importing_From", "countries_importing_from"),
        Field("rating", "Rating", "rating", kind="number"),
    ),
    required=("company_name", "country"),
    required_message="Please provide company name and country",
    products_key="Products_Imported",
)

CUSTOMERS = Directory(
    entity="Customer",
    action_prefix="customer",
    model=Customer,
    code=lambda i: f"CUST-{i:05d}",
    code_key="Customer_ID",
    fields=tuple(f for f in _COMMON if f.column != "country")
    + (
        Field("country", "Country", "country", default="India"),
        Field("contactPerson", "Contact_Person", "contact_person"),
        Field("designation", "Designation", "designation"),
        Field("mobile", "Mobile", "mobile"),
        Field("pinCode", "PIN_Code", "pin_code"),
        Field("gstNumber", "GST_Number", "gst_number", kind="upper"),
        Field("panNumber", "PAN_Number", "pan_number", kind="upper"),
        Field("creditLimit", "Credit_Limit", "credit_limit", kind="number"),
        Field("notes", "Notes", "notes"),
    ),
    required=("company_name",),
    required_message="Company name is required",
)

DIRECTORIES = {"dealers": DEALERS, "importers": IMPORTERS, "customers": CUSTOMERS}


def _clean_products(value: Any) -> list[dict[str, Any]]:
    if not value:
        return []
    if not isinstance(value, list):
        raise FieldInvalid("productsOffered must be a list")
    cleaned = []
    for item in value:
        if not isinstance(item, dict) or not (item.get("productType") or "").strip():
            continue
        entry: dict[str, Any] = {"productType": item["productType"].strip()}
        if item.get("price") not in (None, ""):
            ensure(validate_numeric(item["price"], "Product price", allow_zero=False, minimum=0.01))
            entry["price"] = as_number(parse_number(item["price"]))
        cleaned.append(entry)
    return cleaned


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as e:
        raise FieldInvalid(f"Invalid date: {value}") from e


def _coerce(f: Field, value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
    if value in (None, ""):
        return [] if f.kind == "products" else f.default
    if f.kind == "upper":
        return str(value).upper()
    if f.kind == "number":
        return parse_number(value)
    if f.kind == "date":
        return _parse_date(value)
    if f.kind == "products":
        return _clean_products(value)
    return str(value)


def _value(f: Field, body: dict) -> Any:
    if f.body_key in body:
        return body.get(f.body_key)
    return body.get(f.page_key)


def _provided(f: Field, body: dict) -> bool:
    return f.body_key in body or f.page_key in body


def clean_partner(directory: Directory, body: dict, *, partial: bool = False) -> dict[str, Any]:
    """Validated column values. ``partial`` keeps only the fields present in ``body``."""
    if not partial:
        for column in directory.required:
            f = next(f for f in directory.fields if f.column == column)
            raw = _value(f, body)
            if not isinstance(raw, str) or not raw.strip():
                raise FieldInvalid(directory.required_message)

    cleaned: dict[str, Any] = {}
    for f in directory.fields:
        if partial and not _provided(f, body):
            continue
        raw = _value(f, body)
        if partial and f.column in directory.required and (not isinstance(raw, str) or not raw.strip()):
            raise FieldInvalid(directory.required_message)
        validator = VALIDATORS.get(f.column)
        if validator is not None and raw not in (None, ""):
            ensure(validator(raw))
        cleaned[f.column] = _coerce(f, raw)
    return cleaned


def present_partner(directory: Directory, obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {"_id": obj.id, "id": obj.id, directory.code_key: directory.code(obj.id)}
    for f in directory.fields:
        value = getattr(obj, f.column)
        if f.kind == "products":
            value = value or []
        elif f.kind == "date":
            value = value.isoformat() if value else ""
        elif f.kind == "number":
            value = as_number(value) if value is not None else ""
        else:
            value = value or f.default or ""
        out[f.page_key] = value
    if directory.products_key:
        out[directory.products_key] = ", ".join(p.get("productType", "") for p in obj.products_offered or [])
    out["created_at"] = obj.created_at.isoformat() if obj.created_at else None
    return out


def list_partners(s: "Session", directory: Directory) -> list[Any]:
    model = directory.model
    return s.query(model).order_by(model.created_at.desc(), model.id.desc()).all()


def create_partner(s: "Session", directory: Directory, body: dict, user: "User | None") -> Any:
    cleaned = clean_partner(directory, body)
    now = datetime.utcnow()
    obj = directory.model(**cleaned, created_at=now, updated_at=now, created_by_user_id=user.id if user else None)
    s.add(obj)
    s.flush()
    record_event(
        s,
        actor=user,
        action=f"{directory.action_prefix}.create",
        entity_type=directory.entity,
        entity_id=str(obj.id),
        metadata={"company_name": obj.company_name},
    )
    return obj


def update_partner(s: "Session", directory: Directory, obj: Any, body: dict, user: "User") -> Any:
    cleaned = clean_partner(directory, body, partial=True)
    changes: dict[str, Any] = {}
    for column, value in cleaned.items():
        old = getattr(obj, column)
        if value != old:
            changes[column] = {"old": old, "new": value}
            setattr(obj, column, value)
    obj.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action=f"{directory.action_prefix}.edit",
        entity_type=directory.entity,
        entity_id=str(obj.id),
        metadata={"company_name": obj.company_name, "changes": changes},
    )
    return obj


def delete_partner(s: "Session", directory: Directory, obj: Any, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action=f"{directory.action_prefix}.delete",
        entity_type=directory.entity,
        entity_id=str(obj.id),
        metadata={"company_name": obj.company_name},
    )
    s.delete(obj)
