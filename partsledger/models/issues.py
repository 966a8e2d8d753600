import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partsledger.db import Base


class InventoryIssueStatus(enum.Enum):
    draft = "draft"
    posted = "posted"
    cancelled = "cancelled"


class InventoryIssue(Base):
    __tablename__ = "inventory_issues"
    __table_args__ = (
        Index("ix_inventory_issues_request_id", "request_id"),
        Index("ix_inventory_issues_work_order_id", "work_order_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("warehouses.id"), nullable=False
    )
    work_order_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    request_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("inventory_requests.id"))
    issued_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    status: Mapped[InventoryIssueStatus] = mapped_column(
        Enum(InventoryIssueStatus), default=InventoryIssueStatus.draft
    )
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
    request = relationship("InventoryRequest")
    lines = relationship("InventoryIssueLine", back_populates="issue", cascade="all, delete-orphan")


class InventoryIssueLine(Base):
    __tablename__ = "inventory_issue_lines"
    __table_args__ = (
        UniqueConstraint("issue_id", "part_item_id", name="uq_inventory_issue_lines_issue_item"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    issue_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inventory_issues.id"), nullable=False
    )
    part_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("parts.id"), nullable=False)
    part_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("part_items.id"), nullable=False
    )
    # Serialized units: always one per line.
    qty: Mapped[int] = mapped_column(Integer, default=1)
    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    total_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    issue = relationship("InventoryIssue", back_populates="lines")
    part = relationship("Part")
    part_item = relationship("PartItem")
