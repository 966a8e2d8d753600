import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partsledger.db import Base


class PartItemStatus(enum.Enum):
    in_stock = "in_stock"
    reserved = "reserved"
    issued = "issued"
    installed = "installed"
    scrapped = "scrapped"


class InventoryRequestStatus(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    issued = "issued"


class PartItem(Base):
    __tablename__ = "part_items"
    __table_args__ = (
        Index("ix_part_items_part_warehouse_status", "part_id", "warehouse_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    part_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("parts.id"), nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("warehouses.id"), nullable=False
    )
    receipt_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("inventory_receipts.id"))
    internal_serial: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    manufacturer_serial: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    status: Mapped[PartItemStatus] = mapped_column(Enum(PartItemStatus), default=PartItemStatus.in_stock)
    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    last_moved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    installed_vehicle_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    installed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    part = relationship("Part")
    warehouse = relationship("Warehouse")


class InventoryRequest(Base):
    __tablename__ = "inventory_requests"
    __table_args__ = (
        Index("ix_inventory_requests_warehouse_status", "warehouse_id", "status"),
        Index("ix_inventory_requests_work_order_id", "work_order_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("warehouses.id"), nullable=False
    )
    # Work orders and people live in other subsystems; stored as opaque ids.
    work_order_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    requested_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    status: Mapped[InventoryRequestStatus] = mapped_column(
        Enum(InventoryRequestStatus), default=InventoryRequestStatus.pending
    )
    notes: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    issued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    warehouse = relationship("Warehouse")
    lines = relationship(
        "InventoryRequestLine",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="InventoryRequestLine.position",
    )
    reservations = relationship(
        "InventoryReservation",
        back_populates="request",
        cascade="all, delete-orphan",
    )


class InventoryRequestLine(Base):
    __tablename__ = "inventory_request_lines"
    __table_args__ = (
        CheckConstraint("needed_qty > 0", name="ck_inventory_request_lines_needed_qty_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inventory_requests.id"), nullable=False
    )
    part_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("parts.id"), nullable=False)
    needed_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    request = relationship("InventoryRequest", back_populates="lines")
    part = relationship("Part")


class InventoryReservation(Base):
    __tablename__ = "inventory_reservations"
    __table_args__ = (
        UniqueConstraint("part_item_id", name="uq_inventory_reservations_part_item"),
        Index("ix_inventory_reservations_request_id", "request_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inventory_requests.id"), nullable=False
    )
    request_line_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inventory_request_lines.id"), nullable=False
    )
    part_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("part_items.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    request = relationship("InventoryRequest", back_populates="reservations")
    request_line = relationship("InventoryRequestLine")
    part_item = relationship("PartItem")
