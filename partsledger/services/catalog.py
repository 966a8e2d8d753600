from sqlalchemy import or_
from sqlalchemy.orm import Session

from partsledger.models.catalog import Part, Warehouse
from partsledger.schemas.catalog import PartCreate, WarehouseCreate
from partsledger.services.common import apply_ordering, apply_pagination, coerce_uuid, get_or_404
from partsledger.services.errors import InventoryValidationError
from partsledger.services.response import ListResponseMixin


def ensure_part(db: Session, part_id) -> Part:
    part = db.get(Part, coerce_uuid(part_id, "part_id"))
    if not part or not part.is_active:
        raise InventoryValidationError("unknown_part", f"Unknown part: {part_id}")
    return part


def ensure_warehouse(db: Session, warehouse_id) -> Warehouse:
    warehouse = db.get(Warehouse, coerce_uuid(warehouse_id, "warehouse_id"))
    if not warehouse or not warehouse.is_active:
        raise InventoryValidationError("unknown_warehouse", f"Unknown warehouse: {warehouse_id}")
    return warehouse


class Parts(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: PartCreate) -> Part:
        part = Part(**payload.model_dump())
        db.add(part)
        db.commit()
        db.refresh(part)
        return part

    @staticmethod
    def get(db: Session, part_id: str) -> Part:
        return get_or_404(db, Part, part_id)

    @staticmethod
    def list(
        db: Session,
        is_active: bool | None = None,
        search: str | None = None,
        order_by: str = "name",
        order_dir: str = "asc",
        limit: int = 200,
        offset: int = 0,
    ) -> list[Part]:
        query = db.query(Part)
        if is_active is None:
            query = query.filter(Part.is_active.is_(True))
        else:
            query = query.filter(Part.is_active == is_active)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Part.name.ilike(pattern),
                    Part.sku.ilike(pattern),
                    Part.brand.ilike(pattern),
                    Part.internal_code.ilike(pattern),
                )
            )
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"name": Part.name, "sku": Part.sku, "created_at": Part.created_at},
        )
        return apply_pagination(query, limit, offset).all()


class Warehouses(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: WarehouseCreate) -> Warehouse:
        warehouse = Warehouse(**payload.model_dump())
        db.add(warehouse)
        db.commit()
        db.refresh(warehouse)
        return warehouse

    @staticmethod
    def get(db: Session, warehouse_id: str) -> Warehouse:
        return get_or_404(db, Warehouse, warehouse_id)

    @staticmethod
    def list(
        db: Session,
        is_active: bool | None = None,
        order_by: str = "name",
        order_dir: str = "asc",
        limit: int = 200,
        offset: int = 0,
    ) -> list[Warehouse]:
        query = db.query(Warehouse)
        if is_active is None:
            query = query.filter(Warehouse.is_active.is_(True))
        else:
            query = query.filter(Warehouse.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"name": Warehouse.name, "code": Warehouse.code, "created_at": Warehouse.created_at},
        )
        return apply_pagination(query, limit, offset).all()


parts = Parts()
warehouses = Warehouses()
