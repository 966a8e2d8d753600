"""Tests for partsledger/services/inventory_receipts.py"""

from __future__ import annotations

import dataclasses
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from partsledger.models.inventory import PartItem, PartItemStatus
from partsledger.models.receipts import CashExpense, InventoryReceiptStatus
from partsledger.schemas.receipts import InventoryReceiptCreate, InventoryReceiptItemCreate
from partsledger.services import inventory_receipts as receipts_service
from partsledger.services import part_items as ledger
from partsledger.services.errors import (
    InventoryConflictError,
    InventoryDuplicateError,
    InventoryValidationError,
)
from partsledger.services.inventory_receipts import inventory_receipts


def _item(part, internal, manufacturer, unit_cost="25.00"):
    return InventoryReceiptItemCreate(
        part_id=part.id,
        internal_serial=internal,
        manufacturer_serial=manufacturer,
        unit_cost=Decimal(unit_cost) if unit_cost is not None else None,
    )


def _payload(warehouse, items, supplier_name="Acme Parts Ltd"):
    return InventoryReceiptCreate(
        warehouse_id=warehouse.id,
        supplier_name=supplier_name,
        invoice_no="INV-2041",
        invoice_date=date(2026, 3, 14),
        items=items,
    )


class TestCreateDraft:
    def test_strips_serials(self, db_session, warehouse, part):
        receipt = inventory_receipts.create_draft(
            db_session, _payload(warehouse, [_item(part, "  INT-1 ", "MFR-1")]), created_by=str(uuid4())
        )
        assert receipt.status == InventoryReceiptStatus.draft
        assert receipt.items[0].internal_serial == "INT-1"
        assert receipt.created_by is not None

    def test_blank_supplier(self, db_session, warehouse, part):
        with pytest.raises(InventoryValidationError) as exc_info:
            inventory_receipts.create_draft(
                db_session, _payload(warehouse, [_item(part, "INT-1", "MFR-1")], supplier_name="   ")
            )
        assert exc_info.value.code == "supplier_required"

    def test_requires_items(self, db_session, warehouse):
        with pytest.raises(InventoryValidationError) as exc_info:
            inventory_receipts.create_draft(db_session, _payload(warehouse, []))
        assert exc_info.value.code == "no_items"

    def test_blank_serial(self, db_session, warehouse, part):
        with pytest.raises(InventoryValidationError) as exc_info:
            inventory_receipts.create_draft(db_session, _payload(warehouse, [_item(part, "INT-1", "  ")]))
        assert exc_info.value.code == "serial_required"

    def test_serial_repeated_within_receipt(self, db_session, warehouse, part):
        items = [_item(part, "INT-1", "MFR-1"), _item(part, "INT-2", "INT-1")]
        with pytest.raises(InventoryValidationError) as exc_info:
            inventory_receipts.create_draft(db_session, _payload(warehouse, items))
        assert exc_info.value.code == "duplicate_serial"

    def test_negative_cost(self, db_session, warehouse, part):
        with pytest.raises(InventoryValidationError) as exc_info:
            inventory_receipts.create_draft(
                db_session, _payload(warehouse, [_item(part, "INT-1", "MFR-1", unit_cost="-1")])
            )
        assert exc_info.value.code == "invalid_unit_cost"


class TestPostReceipt:
    def test_post_creates_in_stock_items_and_expense(self, db_session, warehouse, part):
        receipt = inventory_receipts.create_draft(
            db_session,
            _payload(warehouse, [_item(part, "INT-1", "MFR-1"), _item(part, "INT-2", "MFR-2", "15.50")]),
        )

        result = inventory_receipts.post(db_session, str(receipt.id))

        assert result.receipt.status == InventoryReceiptStatus.posted
        assert result.receipt.total_amount == Decimal("40.50")
        created = db_session.query(PartItem).filter(PartItem.receipt_id == receipt.id).all()
        assert len(created) == 2
        assert all(item.status == PartItemStatus.in_stock for item in created)
        assert all(item.warehouse_id == warehouse.id for item in created)
        assert {line.part_item_id for line in result.receipt.items} == {item.id for item in created}

        expense = result.cash_expense
        assert expense is not None
        assert expense.amount == Decimal("40.50")
        assert expense.payment_source == "CASH"
        assert expense.expense_type == "INVENTORY_PURCHASE"
        assert expense.vendor_name == "Acme Parts Ltd"
        assert expense.invoice_no == "INV-2041"

    def test_duplicate_serial_creates_nothing(self, db_session, warehouse, part):
        ledger.create(db_session, part.id, warehouse.id, "TAKEN-1", "TAKEN-MFR-1")
        db_session.commit()
        receipt = inventory_receipts.create_draft(
            db_session,
            _payload(warehouse, [_item(part, "FRESH-1", "FRESH-MFR-1"), _item(part, "FRESH-2", "TAKEN-1")]),
        )

        with pytest.raises(InventoryDuplicateError) as exc_info:
            inventory_receipts.post(db_session, str(receipt.id))

        assert exc_info.value.serials == ["TAKEN-1"]
        assert exc_info.value.status_code == 409
        assert db_session.query(PartItem).filter(PartItem.receipt_id == receipt.id).count() == 0
        assert inventory_receipts.get(db_session, str(receipt.id)).status == InventoryReceiptStatus.draft

    def test_zero_total_skips_expense(self, db_session, warehouse, part):
        receipt = inventory_receipts.create_draft(
            db_session, _payload(warehouse, [_item(part, "INT-1", "MFR-1", unit_cost=None)])
        )
        result = inventory_receipts.post(db_session, str(receipt.id))
        assert result.cash_expense is None
        assert db_session.query(CashExpense).filter_by(receipt_id=receipt.id).count() == 0

    def test_expense_disabled_by_settings(self, db_session, warehouse, part, monkeypatch):
        disabled = dataclasses.replace(receipts_service.settings, receipt_cash_expense_enabled=False)
        monkeypatch.setattr(receipts_service, "settings", disabled)
        receipt = inventory_receipts.create_draft(db_session, _payload(warehouse, [_item(part, "INT-1", "MFR-1")]))

        result = inventory_receipts.post(db_session, str(receipt.id))

        assert result.receipt.status == InventoryReceiptStatus.posted
        assert result.cash_expense is None

    def test_post_twice_conflicts(self, db_session, warehouse, part):
        receipt = inventory_receipts.create_draft(db_session, _payload(warehouse, [_item(part, "INT-1", "MFR-1")]))
        inventory_receipts.post(db_session, str(receipt.id))
        with pytest.raises(InventoryConflictError):
            inventory_receipts.post(db_session, str(receipt.id))


class TestCancelAndList:
    def test_cancel_draft(self, db_session, warehouse, part):
        receipt = inventory_receipts.create_draft(db_session, _payload(warehouse, [_item(part, "INT-1", "MFR-1")]))
        cancelled = inventory_receipts.cancel(db_session, str(receipt.id))
        assert cancelled.status == InventoryReceiptStatus.cancelled
        with pytest.raises(InventoryConflictError):
            inventory_receipts.post(db_session, str(receipt.id))

    def test_list_by_status(self, db_session, warehouse, part):
        posted = inventory_receipts.create_draft(db_session, _payload(warehouse, [_item(part, "INT-1", "MFR-1")]))
        inventory_receipts.create_draft(db_session, _payload(warehouse, [_item(part, "INT-2", "MFR-2")]))
        inventory_receipts.post(db_session, str(posted.id))

        result = inventory_receipts.list(db_session, status="posted", warehouse_id=str(warehouse.id))
        assert [receipt.id for receipt in result] == [posted.id]
