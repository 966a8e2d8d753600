from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from partsledger.api.deps import RequestContext, get_db, get_request_context
from partsledger.schemas.catalog import PartCreate, PartRead, WarehouseCreate, WarehouseRead
from partsledger.schemas.common import ListResponse
from partsledger.schemas.inventory import (
    InventoryRequestApproval,
    InventoryRequestCreate,
    InventoryRequestRead,
    InventoryRequestReject,
    InventoryRequestUnreserve,
    LineReservationReport,
    PartItemRead,
    PartItemTransition,
)
from partsledger.services import catalog as catalog_service
from partsledger.services import inventory_requests as requests_service
from partsledger.services import part_items as part_items_service

router = APIRouter(prefix="/inventory", tags=["inventory"])


def _approval_response(outcome: requests_service.ReservationOutcome, message: str) -> InventoryRequestApproval:
    return InventoryRequestApproval(
        message=message,
        request=InventoryRequestRead.model_validate(outcome.request),
        reserved=[
            LineReservationReport(
                request_line_id=line.line.id,
                part_id=line.line.part_id,
                needed_qty=line.needed_qty,
                reserved_qty=line.reserved_qty,
                reserved_items=[PartItemRead.model_validate(item) for item in line.items],
            )
            for line in outcome.lines
        ],
        reserved_total=outcome.reserved_total,
        requested_total=outcome.requested_total,
    )


@router.post("/requests", response_model=InventoryRequestRead, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: InventoryRequestCreate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    return requests_service.inventory_requests.create(db, payload, requested_by=context.actor)


@router.get("/requests", response_model=ListResponse[InventoryRequestRead])
def list_requests(
    status: str | None = None,
    warehouse_id: str | None = None,
    work_order_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return requests_service.inventory_requests.list_response(
        db,
        status=status,
        warehouse_id=warehouse_id,
        work_order_id=work_order_id,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/requests/{request_id}", response_model=InventoryRequestRead)
def get_request(request_id: str, db: Session = Depends(get_db)):
    return requests_service.inventory_requests.get(db, request_id)


@router.post("/requests/{request_id}/approve", response_model=InventoryRequestApproval)
def approve_request(request_id: str, db: Session = Depends(get_db)):
    outcome = requests_service.inventory_requests.approve(db, request_id)
    message = "Request approved" if outcome.fully_reserved else "Request approved with partial reservation"
    return _approval_response(outcome, message)


@router.post("/requests/{request_id}/reserve", response_model=InventoryRequestApproval)
def reserve_request(request_id: str, db: Session = Depends(get_db)):
    outcome = requests_service.inventory_requests.reserve(db, request_id)
    message = "Request fully reserved" if outcome.fully_reserved else "Request partially reserved"
    return _approval_response(outcome, message)


@router.post("/requests/{request_id}/reject", response_model=InventoryRequestRead)
def reject_request(
    request_id: str,
    payload: InventoryRequestReject | None = None,
    db: Session = Depends(get_db),
):
    reason = payload.reason if payload else None
    return requests_service.inventory_requests.reject(db, request_id, reason)


@router.post("/requests/{request_id}/unreserve", response_model=InventoryRequestUnreserve)
def unreserve_request(request_id: str, db: Session = Depends(get_db)):
    outcome = requests_service.inventory_requests.unreserve(db, request_id)
    return InventoryRequestUnreserve(
        message="Reservations released",
        request=InventoryRequestRead.model_validate(outcome.request),
        unreserved_count=outcome.unreserved_count,
    )


@router.get("/part-items", response_model=ListResponse[PartItemRead])
def list_part_items(
    q: str | None = None,
    warehouse_id: str | None = None,
    part_id: str | None = None,
    status: str | None = None,
    order_by: str = Query(default="received_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return part_items_service.part_items.list_response(
        db,
        q=q,
        warehouse_id=warehouse_id,
        part_id=part_id,
        status=status,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/part-items/{item_id}", response_model=PartItemRead)
def get_part_item(item_id: str, db: Session = Depends(get_db)):
    return part_items_service.part_items.get(db, item_id)


@router.post("/part-items/{item_id}/transition", response_model=PartItemRead)
def transition_part_item(item_id: str, payload: PartItemTransition, db: Session = Depends(get_db)):
    return part_items_service.part_items.apply_external_transition(db, item_id, payload)


@router.get("/parts", response_model=ListResponse[PartRead])
def list_parts(
    search: str | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=200, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return catalog_service.parts.list_response(
        db,
        is_active=is_active,
        search=search,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.post("/parts", response_model=PartRead, status_code=status.HTTP_201_CREATED)
def create_part(payload: PartCreate, db: Session = Depends(get_db)):
    return catalog_service.parts.create(db, payload)


@router.get("/warehouses", response_model=ListResponse[WarehouseRead])
def list_warehouses(
    is_active: bool | None = None,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=200, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return catalog_service.warehouses.list_response(
        db,
        is_active=is_active,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.post("/warehouses", response_model=WarehouseRead, status_code=status.HTTP_201_CREATED)
def create_warehouse(payload: WarehouseCreate, db: Session = Depends(get_db)):
    return catalog_service.warehouses.create(db, payload)
