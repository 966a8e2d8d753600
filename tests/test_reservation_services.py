"""Tests for partsledger/services/reservations.py

Concurrent approvals are simulated by handing the engine a candidate list
that went stale between the read and the conditional update.
"""

from __future__ import annotations

import pytest

from partsledger.models.inventory import InventoryRequestStatus, InventoryReservation, PartItemStatus
from partsledger.services import part_items as ledger
from partsledger.services import reservations as engine
from partsledger.services.errors import InventoryConflictError
from partsledger.services.inventory_requests import inventory_requests


@pytest.fixture()
def stale_candidates(monkeypatch):
    """Make the next find_available call return ``items`` as-is."""

    def _install(items):
        original = ledger.find_available
        calls = {"count": 0}

        def _find_available(db, part_id, warehouse_id, limit, exclude=()):
            calls["count"] += 1
            if calls["count"] == 1:
                return list(items)
            return original(db, part_id, warehouse_id, limit, exclude=exclude)

        monkeypatch.setattr(ledger, "find_available", _find_available)
        return calls

    return _install


class TestConcurrentReservation:
    def test_last_item_goes_to_one_request(
        self, db_session, warehouse, part, make_items, make_request, stale_candidates
    ):
        """Two approvals race for the only item; exactly one holds it."""
        item = make_items(part, warehouse, 1)[0]
        first = make_request(warehouse, [(part, 1)])
        second = make_request(warehouse, [(part, 1)])

        winner = inventory_requests.approve(db_session, str(first.id))
        stale_candidates([item])
        loser = inventory_requests.approve(db_session, str(second.id))

        assert winner.reserved_total == 1
        assert loser.reserved_total == 0
        assert loser.request.status == InventoryRequestStatus.approved
        holders = db_session.query(InventoryReservation).filter_by(part_item_id=item.id).all()
        assert [reservation.request_id for reservation in holders] == [first.id]

    def test_lost_candidate_falls_through_to_next(
        self, db_session, warehouse, part, make_items, make_request, stale_candidates
    ):
        older, newer = make_items(part, warehouse, 2)
        first = make_request(warehouse, [(part, 1)])
        second = make_request(warehouse, [(part, 1)])

        inventory_requests.approve(db_session, str(first.id))
        calls = stale_candidates([older])
        outcome = inventory_requests.approve(db_session, str(second.id))

        assert calls["count"] == 2
        assert [item.id for item in outcome.lines[0].items] == [newer.id]

    def test_never_exceeds_needed_quantity(self, db_session, warehouse, part, make_items, make_request):
        make_items(part, warehouse, 5)
        request = make_request(warehouse, [(part, 2)])
        inventory_requests.approve(db_session, str(request.id))
        assert db_session.query(InventoryReservation).filter_by(request_id=request.id).count() == 2


class TestUnreserve:
    def test_returns_items_to_stock(self, db_session, warehouse, part, make_items, make_request, item_status):
        items = make_items(part, warehouse, 2)
        request = make_request(warehouse, [(part, 2)])
        inventory_requests.approve(db_session, str(request.id))

        outcome = inventory_requests.unreserve(db_session, str(request.id))

        assert outcome.unreserved_count == 2
        assert outcome.request.status == InventoryRequestStatus.approved
        assert all(item_status(item.id) == PartItemStatus.in_stock for item in items)
        assert db_session.query(InventoryReservation).filter_by(request_id=request.id).count() == 0

    def test_is_idempotent(self, db_session, warehouse, part, make_items, make_request):
        make_items(part, warehouse, 1)
        request = make_request(warehouse, [(part, 1)])
        inventory_requests.approve(db_session, str(request.id))
        inventory_requests.unreserve(db_session, str(request.id))

        again = inventory_requests.unreserve(db_session, str(request.id))
        assert again.unreserved_count == 0

    def test_pending_request_conflicts(self, db_session, warehouse, part, make_request):
        request = make_request(warehouse, [(part, 1)])
        with pytest.raises(InventoryConflictError):
            inventory_requests.unreserve(db_session, str(request.id))

    def test_stale_reservation_is_dropped_without_counting(
        self, db_session, warehouse, part, make_items, make_request
    ):
        item = make_items(part, warehouse, 1)[0]
        request = make_request(warehouse, [(part, 1)])
        inventory_requests.approve(db_session, str(request.id))
        # Item left RESERVED through another path.
        ledger.transition(db_session, item.id, PartItemStatus.reserved, PartItemStatus.issued)
        db_session.commit()

        outcome = inventory_requests.unreserve(db_session, str(request.id))
        assert outcome.unreserved_count == 0
        assert db_session.query(InventoryReservation).filter_by(request_id=request.id).count() == 0


class TestReserveTopUp:
    def test_reserve_unreserve_reserve_round_trip(
        self, db_session, warehouse, part, make_items, make_request, item_status
    ):
        items = make_items(part, warehouse, 2)
        request = make_request(warehouse, [(part, 2)])
        inventory_requests.approve(db_session, str(request.id))
        inventory_requests.unreserve(db_session, str(request.id))

        outcome = inventory_requests.reserve(db_session, str(request.id))

        assert outcome.reserved_total == 2
        assert all(item_status(item.id) == PartItemStatus.reserved for item in items)

    def test_top_up_only_covers_outstanding_demand(
        self, db_session, warehouse, part, make_items, make_request
    ):
        make_items(part, warehouse, 1)
        request = make_request(warehouse, [(part, 3)])
        inventory_requests.approve(db_session, str(request.id))
        make_items(part, warehouse, 4)

        outcome = inventory_requests.reserve(db_session, str(request.id))

        assert outcome.reserved_total == 3
        assert outcome.fully_reserved
        assert db_session.query(InventoryReservation).filter_by(request_id=request.id).count() == 3

    def test_reserve_requires_approved(self, db_session, warehouse, part, make_request):
        request = make_request(warehouse, [(part, 1)])
        with pytest.raises(InventoryConflictError):
            inventory_requests.reserve(db_session, str(request.id))


class TestEngineHelpers:
    def test_active_count_and_release(self, db_session, warehouse, part, make_items, make_request, item_status):
        item = make_items(part, warehouse, 1)[0]
        request = make_request(warehouse, [(part, 1)])
        inventory_requests.approve(db_session, str(request.id))
        line = request.lines[0]
        assert engine.active_count(db_session, line) == 1

        reservation = db_session.query(InventoryReservation).filter_by(request_line_id=line.id).one()
        assert engine.release(db_session, reservation) is True
        db_session.commit()

        assert engine.active_count(db_session, line) == 0
        assert item_status(item.id) == PartItemStatus.in_stock
