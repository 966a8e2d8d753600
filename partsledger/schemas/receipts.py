from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from partsledger.models.receipts import InventoryReceiptStatus


class InventoryReceiptItemCreate(BaseModel):
    part_id: UUID
    internal_serial: str = Field(max_length=120)
    manufacturer_serial: str = Field(max_length=120)
    unit_cost: Decimal | None = None
    notes: str | None = None


class InventoryReceiptItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    part_id: UUID
    internal_serial: str
    manufacturer_serial: str
    unit_cost: Decimal | None = None
    notes: str | None = None
    part_item_id: UUID | None = None


class InventoryReceiptCreate(BaseModel):
    warehouse_id: UUID
    supplier_name: str = Field(min_length=1, max_length=200)
    invoice_no: str | None = Field(default=None, max_length=120)
    invoice_date: date | None = None
    notes: str | None = None
    items: list[InventoryReceiptItemCreate] = Field(default_factory=list)


class CashExpenseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    receipt_id: UUID | None = None
    payment_source: str
    expense_type: str
    amount: Decimal
    vendor_name: str | None = None
    invoice_no: str | None = None
    invoice_date: date | None = None
    invoice_total: Decimal | None = None
    approval_status: str | None = None
    created_at: datetime


class InventoryReceiptRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    warehouse_id: UUID
    supplier_name: str
    invoice_no: str | None = None
    invoice_date: date | None = None
    status: InventoryReceiptStatus
    created_by: UUID | None = None
    total_amount: Decimal | None = None
    notes: str | None = None
    posted_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    items: list[InventoryReceiptItemRead] = Field(default_factory=list)
    cash_expense: CashExpenseRead | None = None


class InventoryReceiptPosted(BaseModel):
    message: str
    receipt: InventoryReceiptRead
    cash_expense: CashExpenseRead | None = None
