from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from partsledger.api.deps import RequestContext, get_db, get_request_context
from partsledger.schemas.common import ListResponse
from partsledger.schemas.receipts import (
    CashExpenseRead,
    InventoryReceiptCreate,
    InventoryReceiptPosted,
    InventoryReceiptRead,
)
from partsledger.services import inventory_receipts as receipts_service

router = APIRouter(prefix="/inventory/receipts", tags=["inventory-receipts"])


@router.post("", response_model=InventoryReceiptRead, status_code=status.HTTP_201_CREATED)
def create_receipt(
    payload: InventoryReceiptCreate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    return receipts_service.inventory_receipts.create_draft(db, payload, created_by=context.actor)


@router.get("", response_model=ListResponse[InventoryReceiptRead])
def list_receipts(
    status: str | None = None,
    warehouse_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return receipts_service.inventory_receipts.list_response(
        db,
        status=status,
        warehouse_id=warehouse_id,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/{receipt_id}", response_model=InventoryReceiptRead)
def get_receipt(receipt_id: str, db: Session = Depends(get_db)):
    return receipts_service.inventory_receipts.get(db, receipt_id)


@router.post("/{receipt_id}/post", response_model=InventoryReceiptPosted)
def post_receipt(receipt_id: str, db: Session = Depends(get_db)):
    posting = receipts_service.inventory_receipts.post(db, receipt_id)
    return InventoryReceiptPosted(
        message="Receipt posted",
        receipt=InventoryReceiptRead.model_validate(posting.receipt),
        cash_expense=CashExpenseRead.model_validate(posting.cash_expense) if posting.cash_expense else None,
    )


@router.post("/{receipt_id}/cancel", response_model=InventoryReceiptRead)
def cancel_receipt(receipt_id: str, db: Session = Depends(get_db)):
    return receipts_service.inventory_receipts.cancel(db, receipt_id)
