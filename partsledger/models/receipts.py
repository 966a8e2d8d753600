import enum
import uuid
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partsledger.db import Base


class InventoryReceiptStatus(enum.Enum):
    draft = "draft"
    posted = "posted"
    cancelled = "cancelled"


class InventoryReceipt(Base):
    __tablename__ = "inventory_receipts"
    __table_args__ = (Index("ix_inventory_receipts_warehouse_status", "warehouse_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("warehouses.id"), nullable=False
    )
    supplier_name: Mapped[str] = mapped_column(String(200), nullable=False)
    invoice_no: Mapped[str | None] = mapped_column(String(120))
    invoice_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[InventoryReceiptStatus] = mapped_column(
        Enum(InventoryReceiptStatus), default=InventoryReceiptStatus.draft
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    notes: Mapped[str | None] = mapped_column(Text)

    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    warehouse = relationship("Warehouse")
    items = relationship("InventoryReceiptItem", back_populates="receipt", cascade="all, delete-orphan")
    cash_expense = relationship("CashExpense", back_populates="receipt", uselist=False)


class InventoryReceiptItem(Base):
    __tablename__ = "inventory_receipt_items"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    receipt_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inventory_receipts.id"), nullable=False
    )
    part_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("parts.id"), nullable=False)
    internal_serial: Mapped[str] = mapped_column(String(120), nullable=False)
    manufacturer_serial: Mapped[str] = mapped_column(String(120), nullable=False)
    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    notes: Mapped[str | None] = mapped_column(Text)
    part_item_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("part_items.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    receipt = relationship("InventoryReceipt", back_populates="items")
    part = relationship("Part")
    part_item = relationship("PartItem", foreign_keys=[part_item_id])


class CashExpense(Base):
    __tablename__ = "cash_expenses"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    receipt_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inventory_receipts.id"), unique=True
    )
    payment_source: Mapped[str] = mapped_column(String(40), nullable=False)
    expense_type: Mapped[str] = mapped_column(String(60), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    vendor_name: Mapped[str | None] = mapped_column(String(200))
    invoice_no: Mapped[str | None] = mapped_column(String(120))
    invoice_date: Mapped[date | None] = mapped_column(Date)
    invoice_total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    approval_status: Mapped[str | None] = mapped_column(String(40))
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    receipt = relationship("InventoryReceipt", back_populates="cash_expense")
