"""Create inventory lifecycle tables.

Revision ID: 4f1c2a9d7e30
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision = "4f1c2a9d7e30"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    partitemstatus = sa.Enum("in_stock", "reserved", "issued", "installed", "scrapped", name="partitemstatus")
    requeststatus = sa.Enum("pending", "approved", "rejected", "issued", name="inventoryrequeststatus")
    issuestatus = sa.Enum("draft", "posted", "cancelled", name="inventoryissuestatus")
    receiptstatus = sa.Enum("draft", "posted", "cancelled", name="inventoryreceiptstatus")

    op.create_table(
        "parts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("sku", sa.String(length=80), nullable=True, unique=True),
        sa.Column("brand", sa.String(length=120), nullable=True),
        sa.Column("unit", sa.String(length=40), nullable=True),
        sa.Column("internal_code", sa.String(length=80), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "warehouses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("code", sa.String(length=80), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "inventory_receipts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("warehouse_id", UUID(as_uuid=True), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("supplier_name", sa.String(length=200), nullable=False),
        sa.Column("invoice_no", sa.String(length=120), nullable=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("status", receiptstatus, nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_inventory_receipts_warehouse_status", "inventory_receipts", ["warehouse_id", "status"]
    )
    op.create_table(
        "part_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("part_id", UUID(as_uuid=True), sa.ForeignKey("parts.id"), nullable=False),
        sa.Column("warehouse_id", UUID(as_uuid=True), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("receipt_id", UUID(as_uuid=True), sa.ForeignKey("inventory_receipts.id"), nullable=True),
        sa.Column("internal_serial", sa.String(length=120), nullable=False, unique=True),
        sa.Column("manufacturer_serial", sa.String(length=120), nullable=False, unique=True),
        sa.Column("status", partitemstatus, nullable=True),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_moved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("installed_vehicle_id", UUID(as_uuid=True), nullable=True),
        sa.Column("installed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_part_items_part_warehouse_status", "part_items", ["part_id", "warehouse_id", "status"]
    )
    op.create_table(
        "inventory_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("warehouse_id", UUID(as_uuid=True), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("work_order_id", UUID(as_uuid=True), nullable=True),
        sa.Column("requested_by", UUID(as_uuid=True), nullable=True),
        sa.Column("status", requeststatus, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_inventory_requests_warehouse_status", "inventory_requests", ["warehouse_id", "status"]
    )
    op.create_index("ix_inventory_requests_work_order_id", "inventory_requests", ["work_order_id"])
    op.create_table(
        "inventory_request_lines",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("request_id", UUID(as_uuid=True), sa.ForeignKey("inventory_requests.id"), nullable=False),
        sa.Column("part_id", UUID(as_uuid=True), sa.ForeignKey("parts.id"), nullable=False),
        sa.Column("needed_qty", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("needed_qty > 0", name="ck_inventory_request_lines_needed_qty_positive"),
    )
    op.create_table(
        "inventory_reservations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("request_id", UUID(as_uuid=True), sa.ForeignKey("inventory_requests.id"), nullable=False),
        sa.Column(
            "request_line_id",
            UUID(as_uuid=True),
            sa.ForeignKey("inventory_request_lines.id"),
            nullable=False,
        ),
        sa.Column("part_item_id", UUID(as_uuid=True), sa.ForeignKey("part_items.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("part_item_id", name="uq_inventory_reservations_part_item"),
    )
    op.create_index("ix_inventory_reservations_request_id", "inventory_reservations", ["request_id"])
    op.create_table(
        "inventory_issues",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("warehouse_id", UUID(as_uuid=True), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("work_order_id", UUID(as_uuid=True), nullable=False),
        sa.Column("request_id", UUID(as_uuid=True), sa.ForeignKey("inventory_requests.id"), nullable=True),
        sa.Column("issued_by", UUID(as_uuid=True), nullable=True),
        sa.Column("status", issuestatus, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_inventory_issues_request_id", "inventory_issues", ["request_id"])
    op.create_index("ix_inventory_issues_work_order_id", "inventory_issues", ["work_order_id"])
    op.create_table(
        "inventory_issue_lines",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("issue_id", UUID(as_uuid=True), sa.ForeignKey("inventory_issues.id"), nullable=False),
        sa.Column("part_id", UUID(as_uuid=True), sa.ForeignKey("parts.id"), nullable=False),
        sa.Column("part_item_id", UUID(as_uuid=True), sa.ForeignKey("part_items.id"), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=True),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("issue_id", "part_item_id", name="uq_inventory_issue_lines_issue_item"),
    )
    op.create_table(
        "inventory_receipt_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("receipt_id", UUID(as_uuid=True), sa.ForeignKey("inventory_receipts.id"), nullable=False),
        sa.Column("part_id", UUID(as_uuid=True), sa.ForeignKey("parts.id"), nullable=False),
        sa.Column("internal_serial", sa.String(length=120), nullable=False),
        sa.Column("manufacturer_serial", sa.String(length=120), nullable=False),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("part_item_id", UUID(as_uuid=True), sa.ForeignKey("part_items.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "cash_expenses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "receipt_id",
            UUID(as_uuid=True),
            sa.ForeignKey("inventory_receipts.id"),
            nullable=True,
            unique=True,
        ),
        sa.Column("payment_source", sa.String(length=40), nullable=False),
        sa.Column("expense_type", sa.String(length=60), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("vendor_name", sa.String(length=200), nullable=True),
        sa.Column("invoice_no", sa.String(length=120), nullable=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("invoice_total", sa.Numeric(12, 2), nullable=True),
        sa.Column("approval_status", sa.String(length=40), nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("cash_expenses")
    op.drop_table("inventory_receipt_items")
    op.drop_table("inventory_issue_lines")
    op.drop_index("ix_inventory_issues_work_order_id", table_name="inventory_issues")
    op.drop_index("ix_inventory_issues_request_id", table_name="inventory_issues")
    op.drop_table("inventory_issues")
    op.drop_index("ix_inventory_reservations_request_id", table_name="inventory_reservations")
    op.drop_table("inventory_reservations")
    op.drop_table("inventory_request_lines")
    op.drop_index("ix_inventory_requests_work_order_id", table_name="inventory_requests")
    op.drop_index("ix_inventory_requests_warehouse_status", table_name="inventory_requests")
    op.drop_table("inventory_requests")
    op.drop_index("ix_part_items_part_warehouse_status", table_name="part_items")
    op.drop_table("part_items")
    op.drop_index("ix_inventory_receipts_warehouse_status", table_name="inventory_receipts")
    op.drop_table("inventory_receipts")
    op.drop_table("warehouses")
    op.drop_table("parts")
    for enum_name in ("inventoryreceiptstatus", "inventoryissuestatus", "inventoryrequeststatus", "partitemstatus"):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
