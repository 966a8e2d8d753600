from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PartBase(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    sku: str | None = Field(default=None, max_length=80)
    brand: str | None = Field(default=None, max_length=120)
    unit: str | None = Field(default=None, max_length=40)
    internal_code: str | None = Field(default=None, max_length=80)
    description: str | None = None
    is_active: bool = True


class PartCreate(PartBase):
    pass


class PartRead(PartBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class WarehouseBase(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    code: str | None = Field(default=None, max_length=80)
    is_active: bool = True


class WarehouseCreate(WarehouseBase):
    pass


class WarehouseRead(WarehouseBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime
