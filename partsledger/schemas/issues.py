from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from partsledger.models.issues import InventoryIssueStatus
from partsledger.schemas.inventory import PartItemRead


class InventoryIssueLineCreate(BaseModel):
    part_id: UUID
    part_item_id: UUID
    qty: int = Field(default=1, ge=1, le=1)
    unit_cost: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class InventoryIssueLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    part_id: UUID
    part_item_id: UUID
    qty: int
    unit_cost: Decimal | None = None
    total_cost: Decimal | None = None
    notes: str | None = None
    part_item: PartItemRead | None = None


class InventoryIssueCreate(BaseModel):
    warehouse_id: UUID
    work_order_id: UUID
    request_id: UUID | None = None
    notes: str | None = None
    lines: list[InventoryIssueLineCreate] = Field(default_factory=list)


class InventoryIssueRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    warehouse_id: UUID
    work_order_id: UUID
    request_id: UUID | None = None
    issued_by: UUID | None = None
    status: InventoryIssueStatus
    notes: str | None = None
    posted_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    lines: list[InventoryIssueLineRead] = Field(default_factory=list)


class InventoryIssuePosted(BaseModel):
    message: str
    issue: InventoryIssueRead
