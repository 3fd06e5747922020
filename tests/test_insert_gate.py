"""Insert Gate ordering and failure mapping, with stand-in collaborators."""
import pytest
from sqlalchemy.exc import OperationalError

from app.portal.duplicates import PRODUCT_POLICY
from app.portal.errors import DuplicateConflict, FieldInvalid, PersistenceFailure, ReferentialMissing
from app.portal.insert_gate import InsertGate


class FakeSession:
    def __init__(self):
        self.rolled_back = False
        self.committed = False

    def rollback(self):
        self.rolled_back = True

    def flush(self):
        pass

    def commit(self):
        self.committed = True


def _gate(calls, *, clean=None, check_references=None, peers=(), persist=None):
    def _clean(body):
        calls.append("clean")
        if not body.get("name"):
            raise FieldInvalid("Please provide name")
        return {"name": body["name"], "subtypes": body.get("subtypes", [])}

    def _load(_s):
        calls.append("load_peers")
        return list(peers)

    def _persist(_s, c, _actor):
        calls.append("persist")
        raise OperationalError("INSERT INTO products", {}, Exception("database is locked"))

    return InsertGate(
        entity="Product",
        action="product.create",
        policy=PRODUCT_POLICY,
        clean=clean or _clean,
        load_peers=_load,
        persist=persist or _persist,
        present=lambda obj: {"id": obj.id},
        check_references=check_references,
    )


def test_invalid_field_stops_before_peer_scan():
    calls = []
    with pytest.raises(FieldInvalid):
        _gate(calls).run(FakeSession(), {})
    assert calls == ["clean"]


def test_missing_reference_stops_before_peer_scan():
    calls = []

    def _refs(_s, c):
        calls.append("refs")
        raise ReferentialMissing("Invalid product", value="Bollard")

    with pytest.raises(ReferentialMissing) as exc:
        _gate(calls, check_references=_refs).run(FakeSession(), {"name": "Bollard"})
    assert exc.value.value == "Bollard"
    assert calls == ["clean", "refs"]


def test_duplicate_stops_before_persist():
    calls = []
    peers = [{"id": 7, "name": "Crash Barrier", "subtypes": ["W-Beam"], "unit": "m"}]
    with pytest.raises(DuplicateConflict) as exc:
        _gate(calls, peers=peers).run(FakeSession(), {"name": "Crash Barrier", "subtypes": ["W-Beam"]})
    assert calls == ["clean", "load_peers"]
    assert exc.value.status_code == 409
    assert exc.value.payload() == {
        "success": False,
        "message": "Duplicate entry detected",
        "existing": {"name": "Crash Barrier", "subtype": "W-Beam", "unit": "m"},
    }


def test_persist_failure_rolls_back_and_passes_message_through():
    calls = []
    s = FakeSession()
    with pytest.raises(PersistenceFailure) as exc:
        _gate(calls).run(s, {"name": "Road Stud", "subtypes": ["Solar"]})
    assert calls == ["clean", "load_peers", "persist"]
    assert s.rolled_back and not s.committed
    assert exc.value.status_code == 500
    assert "database is locked" in exc.value.message


def test_reference_lookup_failure_rolls_back_before_peer_scan():
    calls = []
    s = FakeSession()

    def _refs(_s, c):
        calls.append("refs")
        raise OperationalError("SELECT products.subtypes", {}, Exception("no such table: products"))

    with pytest.raises(PersistenceFailure) as exc:
        _gate(calls, check_references=_refs).run(s, {"name": "Bollard"})
    assert calls == ["clean", "refs"]
    assert s.rolled_back and not s.committed
    assert exc.value.status_code == 500
    assert "no such table: products" in exc.value.message
