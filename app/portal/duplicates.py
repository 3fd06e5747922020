"""
Duplicate-submission policies.

Every entity policy is a declarative descriptor evaluated by one engine:

- a *rule* compares one field of the candidate with the same field of an
  existing record (fuzzy score, exact normalized text, numeric tolerance,
  calendar day, best pair across two lists, or an empty list on either side);
- a *clause* is conjunctive: all of its rules must hold;
- a *policy* is disjunctive over its clauses: the first clause that holds for
  an existing record flags the candidate.

Existing records are scanned in the order given; the first record that satisfies
any clause wins, there is no ranking among several matches.

Records are plain mappings in storage naming (``product_type``,
``from_location`` ...). ORM rows are converted by each module's service.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from app.portal.matching import normalize_text, similarity

FUZZY_THRESHOLD = 0.85
NAME_ONLY_THRESHOLD = 0.95
QUANTITY_TOLERANCE = 0.01


@dataclass(frozen=True)
class RuleMatch:
    field: str
    score: float
    candidate_item: Any = None
    existing_item: Any = None


def _get(record: Mapping[str, Any] | Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def _item_value(item: Any, key: str | None) -> Any:
    if key is None:
        return item
    return _get(item, key)


@dataclass(frozen=True)
class Fuzzy:
    field: str
    threshold: float = FUZZY_THRESHOLD

    def evaluate(self, candidate: Mapping[str, Any], existing: Mapping[str, Any]) -> RuleMatch | None:
        score = similarity(_get(candidate, self.field), _get(existing, self.field))
        if score >= self.threshold:
            return RuleMatch(self.field, score)
        return None


@dataclass(frozen=True)
class Overlap:
    """Best-first pair search over two lists (candidate x existing)."""

    field: str
    item_key: str | None = None
    threshold: float = FUZZY_THRESHOLD

    def evaluate(self, candidate: Mapping[str, Any], existing: Mapping[str, Any]) -> RuleMatch | None:
        for new_item in _get(candidate, self.field) or []:
            for old_item in _get(existing, self.field) or []:
                score = similarity(_item_value(new_item, self.item_key), _item_value(old_item, self.item_key))
                if score >= self.threshold:
                    return RuleMatch(self.field, score, new_item, old_item)
        return None


@dataclass(frozen=True)
class EitherEmpty:
    """Holds when the candidate or the existing record has nothing in a list field."""

    field: str

    def evaluate(self, candidate: Mapping[str, Any], existing: Mapping[str, Any]) -> RuleMatch | None:
        if not _get(candidate, self.field) or not _get(existing, self.field):
            return RuleMatch(self.field, 1.0)
        return None


@dataclass(frozen=True)
class Exact:
    """Identical normalized text, optionally after a projection (e.g. first line)."""

    field: str
    project: Callable[[Any], Any] | None = None

    def evaluate(self, candidate: Mapping[str, Any], existing: Mapping[str, Any]) -> RuleMatch | None:
        a = _get(candidate, self.field)
        b = _get(existing, self.field)
        if self.project is not None:
            a, b = self.project(a), self.project(b)
        if normalize_text(a) == normalize_text(b):
            return RuleMatch(self.field, 1.0)
        return None


@dataclass(frozen=True)
class NumericTolerance:
    field: str
    tolerance: float = QUANTITY_TOLERANCE

    def evaluate(self, candidate: Mapping[str, Any], existing: Mapping[str, Any]) -> RuleMatch | None:
        try:
            a = float(_get(candidate, self.field))
            b = float(_get(existing, self.field))
        except (TypeError, ValueError):
            return None
        if abs(a - b) < self.tolerance:
            return RuleMatch(self.field, 1.0)
        return None


def as_calendar_day(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            try:
                return date.fromisoformat(raw[:10])
            except ValueError:
                return None
    return None


@dataclass(frozen=True)
class SameDay:
    field: str

    def evaluate(self, candidate: Mapping[str, Any], existing: Mapping[str, Any]) -> RuleMatch | None:
        a = as_calendar_day(_get(candidate, self.field))
        b = as_calendar_day(_get(existing, self.field))
        if a is not None and a == b:
            return RuleMatch(self.field, 1.0)
        return None


Snapshot = Callable[[Mapping[str, Any], dict[str, RuleMatch]], dict[str, Any]]


@dataclass(frozen=True)
class Clause:
    label: str
    rules: tuple[Any, ...]
    snapshot: Snapshot

    def evaluate(self, candidate: Mapping[str, Any], existing: Mapping[str, Any]) -> dict[str, RuleMatch] | None:
        matches: dict[str, RuleMatch] = {}
        for rule in self.rules:
            m = rule.evaluate(candidate, existing)
            if m is None:
                return None
            matches[rule.field] = m
        return matches


@dataclass(frozen=True)
class Conflict:
    entity: str
    clause: str
    record: Mapping[str, Any]
    existing: dict[str, Any]


@dataclass(frozen=True)
class DuplicatePolicy:
    entity: str
    clauses: tuple[Clause, ...] = field(default_factory=tuple)

    def find_conflict(self, candidate: Mapping[str, Any], peers: Iterable[Mapping[str, Any]]) -> Conflict | None:
        for record in peers:
            for clause in self.clauses:
                matches = clause.evaluate(candidate, record)
                if matches is not None:
                    return Conflict(
                        entity=self.entity,
                        clause=clause.label,
                        record=record,
                        existing=clause.snapshot(record, matches),
                    )
        return None


# ---------- snapshot helpers ----------
def _iso(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def first_line(text: Any) -> str:
    if not isinstance(text, str):
        return ""
    head = text.split("\n", 1)[0]
    return head or text


def _manufacturer_product_snapshot(record: Mapping[str, Any], matches: dict[str, RuleMatch]) -> dict[str, Any]:
    offered = matches["products_offered"].existing_item
    return {
        "name": _get(record, "name"),
        "location": _get(record, "location"),
        "productType": _get(offered, "productType"),
        "price": _get(offered, "price"),
    }


def _manufacturer_name_snapshot(record: Mapping[str, Any], _matches: dict[str, RuleMatch]) -> dict[str, Any]:
    return {
        "name": _get(record, "name"),
        "location": _get(record, "location"),
        "contact": _get(record, "contact"),
    }


def _product_subtype_snapshot(record: Mapping[str, Any], matches: dict[str, RuleMatch]) -> dict[str, Any]:
    return {
        "name": _get(record, "name"),
        "subtype": matches["subtypes"].existing_item,
        "unit": _get(record, "unit"),
    }


def _product_name_snapshot(record: Mapping[str, Any], _matches: dict[str, RuleMatch]) -> dict[str, Any]:
    return {
        "name": _get(record, "name"),
        "subtypes": list(_get(record, "subtypes") or []),
        "unit": _get(record, "unit"),
    }


def _order_snapshot(record: Mapping[str, Any], _matches: dict[str, RuleMatch]) -> dict[str, Any]:
    return {
        "manufacturer": _get(record, "manufacturer"),
        "product": _get(record, "product"),
        "productType": _get(record, "product_type"),
        "quantity": _get(record, "quantity"),
        "fromLocation": _get(record, "from_location"),
        "toLocation": _get(record, "to_location"),
        "totalCost": _get(record, "total_cost"),
        "createdAt": _iso(_get(record, "created_at")),
    }


def _task_snapshot(record: Mapping[str, Any], _matches: dict[str, RuleMatch]) -> dict[str, Any]:
    return {
        "assignedTo": _get(record, "assigned_to"),
        "title": first_line(_get(record, "task_text")),
        "date": _iso(_get(record, "date")),
        "status": _get(record, "status"),
    }


# ---------- entity descriptors ----------
MANUFACTURER_POLICY = DuplicatePolicy(
    entity="Manufacturer",
    clauses=(
        Clause(
            label="name+product",
            rules=(Fuzzy("name"), Overlap("products_offered", item_key="productType")),
            snapshot=_manufacturer_product_snapshot,
        ),
        Clause(
            label="name",
            rules=(Fuzzy("name", NAME_ONLY_THRESHOLD),),
            snapshot=_manufacturer_name_snapshot,
        ),
    ),
)

PRODUCT_POLICY = DuplicatePolicy(
    entity="Product",
    clauses=(
        Clause(
            label="name+subtype",
            rules=(Fuzzy("name"), Overlap("subtypes")),
            snapshot=_product_subtype_snapshot,
        ),
        Clause(
            label="name",
            rules=(Fuzzy("name", NAME_ONLY_THRESHOLD), EitherEmpty("subtypes")),
            snapshot=_product_name_snapshot,
        ),
    ),
)

ORDER_POLICY = DuplicatePolicy(
    entity="Order",
    clauses=(
        Clause(
            label="all-fields",
            rules=(
                Fuzzy("manufacturer"),
                Fuzzy("product"),
                Fuzzy("product_type"),
                NumericTolerance("quantity"),
                Fuzzy("from_location"),
                Fuzzy("to_location"),
            ),
            snapshot=_order_snapshot,
        ),
    ),
)

# Exact text only; near-duplicate wording passes.
TASK_POLICY = DuplicatePolicy(
    entity="Task",
    clauses=(
        Clause(
            label="exact",
            rules=(
                Exact("task_text", project=first_line),
                Exact("assigned_to"),
                SameDay("date"),
            ),
            snapshot=_task_snapshot,
        ),
    ),
)


def policy_fields(policy: DuplicatePolicy) -> Sequence[str]:
    """Fields participating in a policy, in evaluation order."""
    seen: list[str] = []
    for clause in policy.clauses:
        for rule in clause.rules:
            if rule.field not in seen:
                seen.append(rule.field)
    return seen
