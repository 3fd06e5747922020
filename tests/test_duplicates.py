"""Declarative duplicate policies, evaluated without a database."""
from datetime import datetime

from app.portal.duplicates import (
    MANUFACTURER_POLICY,
    ORDER_POLICY,
    PRODUCT_POLICY,
    TASK_POLICY,
    Clause,
    DuplicatePolicy,
    Fuzzy,
    policy_fields,
)


def _manufacturer(id_, name, *types, location="Pune", contact="9876543210"):
    return {
        "id": id_,
        "name": name,
        "location": location,
        "contact": contact,
        "products_offered": [{"productType": t, "price": 100} for t in types],
    }


def test_manufacturer_name_and_product_overlap():
    peers = [_manufacturer(1, "Crash Barrier", "W-Beam")]
    conflict = MANUFACTURER_POLICY.find_conflict(_manufacturer(None, "crash  barrier", "w-beam"), peers)
    assert conflict is not None
    assert conflict.clause == "name+product"
    assert conflict.existing == {"name": "Crash Barrier", "location": "Pune", "productType": "W-Beam", "price": 100}


def test_manufacturer_name_alone_at_high_similarity():
    peers = [_manufacturer(1, "Highway Safety Systems Private Limited", "W-Beam")]
    candidate = _manufacturer(None, "Highway Safety Systems Private Limitad", "Thrie-Beam")
    conflict = MANUFACTURER_POLICY.find_conflict(candidate, peers)
    assert conflict is not None
    assert conflict.clause == "name"
    assert conflict.existing == {
        "name": "Highway Safety Systems Private Limited",
        "location": "Pune",
        "contact": "9876543210",
    }


def test_manufacturer_mid_band_name_without_overlap_passes():
    peers = [_manufacturer(1, "Delta Road Safety Corp", "W-Beam")]
    assert MANUFACTURER_POLICY.find_conflict(_manufacturer(None, "Delta Road Safety Cabs", "Thrie-Beam"), peers) is None
    # the same name band with an overlapping product is rejected
    assert MANUFACTURER_POLICY.find_conflict(_manufacturer(None, "Delta Road Safety Cabs", "W-Beam"), peers) is not None


def test_manufacturer_first_matching_peer_wins():
    peers = [
        _manufacturer(1, "Crash Barrier", "W-Beam", location="Pune"),
        _manufacturer(2, "Crash Barrier", "W-Beam", location="Delhi"),
    ]
    conflict = MANUFACTURER_POLICY.find_conflict(_manufacturer(None, "Crash Barrier", "W-Beam"), peers)
    assert conflict.record["id"] == 1


def test_product_policy_subtype_overlap_and_empty_subtypes():
    peers = [{"id": 1, "name": "Crash Barrier", "subtypes": ["W-Beam", "Thrie-Beam"], "unit": "m"}]

    overlap = PRODUCT_POLICY.find_conflict({"name": "Crash Barrier", "subtypes": ["Thrie Beam"]}, peers)
    assert overlap.clause == "name+subtype"
    assert overlap.existing == {"name": "Crash Barrier", "subtype": "Thrie-Beam", "unit": "m"}

    # a new subtype under an existing name is a separate catalog row
    assert PRODUCT_POLICY.find_conflict({"name": "crash barrier", "subtypes": ["Solar Blinker"]}, peers) is None

    legacy = [{"id": 2, "name": "Crash Barrier", "subtypes": [], "unit": "m"}]
    name_only = PRODUCT_POLICY.find_conflict({"name": "crash barrier", "subtypes": ["Solar Blinker"]}, legacy)
    assert name_only.clause == "name"
    assert name_only.existing == {"name": "Crash Barrier", "subtypes": [], "unit": "m"}

    assert PRODUCT_POLICY.find_conflict({"name": "Road Stud", "subtypes": ["W-Beam"]}, peers) is None


def _order(**overrides):
    base = {
        "manufacturer": "Highway Safety",
        "product": "Crash Barrier",
        "product_type": "W-Beam",
        "quantity": 100.0,
        "from_location": "Pune",
        "to_location": "Mumbai",
        "total_cost": 42000.0,
        "created_at": datetime(2026, 10, 1, 9, 30),
    }
    base.update(overrides)
    return base


def test_order_policy_is_conjunctive():
    peers = [_order(id=1)]
    conflict = ORDER_POLICY.find_conflict(_order(), peers)
    assert conflict is not None
    assert conflict.existing["toLocation"] == "Mumbai"
    assert conflict.existing["createdAt"] == "2026-10-01T09:30:00"

    assert ORDER_POLICY.find_conflict(_order(to_location="Chennai"), peers) is None
    assert ORDER_POLICY.find_conflict(_order(quantity=100.5), peers) is None


def test_order_quantity_tolerance():
    peers = [_order(id=1)]
    assert ORDER_POLICY.find_conflict(_order(quantity=100.005), peers) is not None
    assert ORDER_POLICY.find_conflict(_order(quantity=100.02), peers) is None


def _task(title, assigned_to="ravi", when=datetime(2026, 10, 20, 9, 0)):
    return {"task_text": f"{title}\nWalk the barrier line", "assigned_to": assigned_to, "date": when, "status": "pending"}


def test_task_policy_exact_title_after_normalization():
    peers = [_task("Inspect Site A")]
    conflict = TASK_POLICY.find_conflict(_task("Inspect Site A "), peers)
    assert conflict is not None
    assert conflict.existing == {"assignedTo": "ravi", "title": "Inspect Site A", "date": "2026-10-20T09:00:00", "status": "pending"}


def test_task_policy_ignores_near_duplicates():
    peers = [_task("Inspect Site A")]
    assert TASK_POLICY.find_conflict(_task("Inspect site-A"), peers) is None


def test_task_policy_compares_calendar_day_only():
    peers = [_task("Inspect Site A")]
    assert TASK_POLICY.find_conflict(_task("Inspect Site A", when=datetime(2026, 10, 20, 17, 45)), peers) is not None
    assert TASK_POLICY.find_conflict(_task("Inspect Site A", when=datetime(2026, 10, 21, 9, 0)), peers) is None
    assert TASK_POLICY.find_conflict(_task("Inspect Site A", assigned_to=" RAVI "), peers) is not None
    assert TASK_POLICY.find_conflict(_task("Inspect Site A", assigned_to="meena"), peers) is None


def test_policy_fields_in_evaluation_order():
    assert list(policy_fields(ORDER_POLICY)) == [
        "manufacturer",
        "product",
        "product_type",
        "quantity",
        "from_location",
        "to_location",
    ]


def test_custom_policy_from_descriptors():
    policy = DuplicatePolicy(
        entity="Dealer",
        clauses=(Clause(label="name", rules=(Fuzzy("name", 0.9),), snapshot=lambda r, _m: {"name": r["name"]}),),
    )
    assert policy.find_conflict({"name": "YNM Traders"}, [{"name": "ynm traders"}]).existing == {"name": "ynm traders"}
    assert policy.find_conflict({"name": "YNM Traders"}, []) is None
