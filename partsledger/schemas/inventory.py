from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from partsledger.models.inventory import InventoryRequestStatus, PartItemStatus


class PartItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    part_id: UUID
    warehouse_id: UUID
    internal_serial: str
    manufacturer_serial: str
    status: PartItemStatus
    unit_cost: Decimal | None = None
    received_at: datetime | None = None
    last_moved_at: datetime | None = None
    installed_vehicle_id: UUID | None = None
    installed_at: datetime | None = None


class PartItemTransition(BaseModel):
    from_status: PartItemStatus
    to_status: PartItemStatus
    installed_vehicle_id: UUID | None = None


class InventoryRequestLineCreate(BaseModel):
    part_id: UUID
    # Range is a business rule checked by the request service.
    needed_qty: int
    notes: str | None = None


class InventoryRequestLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    part_id: UUID
    needed_qty: int
    notes: str | None = None


class InventoryRequestCreate(BaseModel):
    warehouse_id: UUID
    work_order_id: UUID | None = None
    notes: str | None = None
    lines: list[InventoryRequestLineCreate] = Field(default_factory=list)


class InventoryRequestReject(BaseModel):
    reason: str | None = None


class InventoryReservationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    request_line_id: UUID
    part_item_id: UUID
    part_item: PartItemRead | None = None
    created_at: datetime


class InventoryRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    warehouse_id: UUID
    work_order_id: UUID | None = None
    requested_by: UUID | None = None
    status: InventoryRequestStatus
    notes: str | None = None
    rejection_reason: str | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    issued_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    lines: list[InventoryRequestLineRead] = Field(default_factory=list)
    reservations: list[InventoryReservationRead] = Field(default_factory=list)


class LineReservationReport(BaseModel):
    request_line_id: UUID
    part_id: UUID
    needed_qty: int
    reserved_qty: int
    reserved_items: list[PartItemRead] = Field(default_factory=list)


class InventoryRequestApproval(BaseModel):
    message: str
    request: InventoryRequestRead
    reserved: list[LineReservationReport]
    reserved_total: int
    requested_total: int


class InventoryRequestUnreserve(BaseModel):
    message: str
    request: InventoryRequestRead
    unreserved_count: int
