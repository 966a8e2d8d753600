import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from partsledger.config import settings
from partsledger.models.receipts import (
    CashExpense,
    InventoryReceipt,
    InventoryReceiptItem,
    InventoryReceiptStatus,
)
from partsledger.schemas.receipts import InventoryReceiptCreate
from partsledger.services import part_items as ledger
from partsledger.services.catalog import ensure_part, ensure_warehouse
from partsledger.services.common import (
    apply_ordering,
    apply_pagination,
    claim_status,
    coerce_uuid,
    get_or_404,
    validate_enum,
)
from partsledger.services.errors import (
    InventoryConflictError,
    InventoryDuplicateError,
    InventoryValidationError,
)
from partsledger.services.observability import DOCUMENT_TRANSITIONS
from partsledger.services.response import ListResponseMixin
from partsledger.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

_LOAD_OPTIONS = [
    selectinload(InventoryReceipt.items),
    selectinload(InventoryReceipt.cash_expense),
]


@dataclass
class ReceiptPosting:
    receipt: InventoryReceipt
    cash_expense: CashExpense | None


def _ensure_draft(receipt: InventoryReceipt, action: str) -> None:
    if receipt.status != InventoryReceiptStatus.draft:
        raise InventoryConflictError(
            "invalid_status",
            f"Only draft receipts can be {action} (receipt {receipt.id} is {receipt.status.value})",
        )


def _receipt_serials(receipt: InventoryReceipt) -> list[str]:
    serials: list[str] = []
    for item in receipt.items:
        serials.extend([item.internal_serial, item.manufacturer_serial])
    return serials


class InventoryReceipts(ListResponseMixin):
    @staticmethod
    def create_draft(
        db: Session, payload: InventoryReceiptCreate, created_by: str | None = None
    ) -> InventoryReceipt:
        ensure_warehouse(db, payload.warehouse_id)
        supplier_name = payload.supplier_name.strip()
        if not supplier_name:
            raise InventoryValidationError("supplier_required", "Supplier name is required")
        if not payload.items:
            raise InventoryValidationError("no_items", "A receipt needs at least one item")

        seen: set[str] = set()
        cleaned = []
        for index, item in enumerate(payload.items):
            label = f"Item {index + 1}"
            internal_serial = item.internal_serial.strip()
            manufacturer_serial = item.manufacturer_serial.strip()
            if not internal_serial or not manufacturer_serial:
                raise InventoryValidationError(
                    "serial_required", f"{label}: internal and manufacturer serials are both required"
                )
            for serial in (internal_serial, manufacturer_serial):
                if serial in seen:
                    raise InventoryValidationError(
                        "duplicate_serial", f"{label}: serial {serial} is repeated within the receipt"
                    )
                seen.add(serial)
            if item.unit_cost is not None and item.unit_cost < 0:
                raise InventoryValidationError("invalid_unit_cost", f"{label}: unit_cost cannot be negative")
            ensure_part(db, item.part_id)
            cleaned.append((item, internal_serial, manufacturer_serial))

        receipt = InventoryReceipt(
            warehouse_id=payload.warehouse_id,
            supplier_name=supplier_name,
            invoice_no=payload.invoice_no,
            invoice_date=payload.invoice_date,
            notes=payload.notes,
            created_by=coerce_uuid(created_by, "created_by") if created_by else None,
            status=InventoryReceiptStatus.draft,
        )
        db.add(receipt)
        db.flush()
        for item, internal_serial, manufacturer_serial in cleaned:
            db.add(
                InventoryReceiptItem(
                    receipt_id=receipt.id,
                    part_id=item.part_id,
                    internal_serial=internal_serial,
                    manufacturer_serial=manufacturer_serial,
                    unit_cost=item.unit_cost,
                    notes=item.notes,
                )
            )
        db.commit()
        DOCUMENT_TRANSITIONS.labels(document="receipt", status=receipt.status.value).inc()
        logger.info("inventory_receipt_drafted receipt_id=%s items=%d", receipt.id, len(cleaned))
        return get_or_404(db, InventoryReceipt, receipt.id, options=_LOAD_OPTIONS)

    @staticmethod
    def get(db: Session, receipt_id: str) -> InventoryReceipt:
        return get_or_404(db, InventoryReceipt, receipt_id, options=_LOAD_OPTIONS)

    @staticmethod
    def list(
        db: Session,
        status: str | None = None,
        warehouse_id: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[InventoryReceipt]:
        query = db.query(InventoryReceipt).options(*_LOAD_OPTIONS)
        if status:
            query = query.filter(InventoryReceipt.status == validate_enum(status, InventoryReceiptStatus, "status"))
        if warehouse_id:
            query = query.filter(InventoryReceipt.warehouse_id == coerce_uuid(warehouse_id, "warehouse_id"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": InventoryReceipt.created_at, "posted_at": InventoryReceipt.posted_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def post(db: Session, receipt_id: str) -> ReceiptPosting:
        """Post a DRAFT receipt: create one IN_STOCK part item per receipt item.

        Any serial already present in the ledger aborts the post before a
        single item is created.
        """
        receipt = get_or_404(db, InventoryReceipt, receipt_id, options=_LOAD_OPTIONS)
        _ensure_draft(receipt, "posted")
        duplicates = ledger.existing_serials(db, _receipt_serials(receipt))
        if duplicates:
            listed = ", ".join(sorted(duplicates))
            raise InventoryDuplicateError(
                "duplicate_serial", f"Serial(s) already in inventory: {listed}", serials=sorted(duplicates)
            )

        expense = None
        with tracer.start_as_current_span("inventory.receipt.post") as span:
            span.set_attribute("inventory.receipt_id", str(receipt.id))
            try:
                claim_status(db, receipt, InventoryReceiptStatus.posted, "posted", posted_at=datetime.now(UTC))
                total = Decimal("0")
                for item in receipt.items:
                    part_item = ledger.create(
                        db,
                        item.part_id,
                        receipt.warehouse_id,
                        item.internal_serial,
                        item.manufacturer_serial,
                        unit_cost=item.unit_cost,
                        receipt_id=receipt.id,
                    )
                    item.part_item_id = part_item.id
                    total += item.unit_cost or Decimal("0")
                receipt.total_amount = total
                if settings.receipt_cash_expense_enabled and total > 0:
                    expense = CashExpense(
                        receipt_id=receipt.id,
                        payment_source=settings.cash_expense_payment_source,
                        expense_type=settings.cash_expense_type,
                        amount=total,
                        vendor_name=receipt.supplier_name,
                        invoice_no=receipt.invoice_no,
                        invoice_date=receipt.invoice_date,
                        invoice_total=total,
                        approval_status=settings.cash_expense_approval_status,
                        created_by=receipt.created_by,
                    )
                    db.add(expense)
                db.commit()
            except IntegrityError as exc:
                # A concurrent post claimed one of the serials after the pre-check.
                db.rollback()
                logger.warning("inventory_receipt_post_conflict receipt_id=%s", receipt_id)
                raise InventoryDuplicateError(
                    "duplicate_serial", "Serial(s) were claimed concurrently; receipt not posted"
                ) from exc
            except Exception:
                db.rollback()
                raise
        DOCUMENT_TRANSITIONS.labels(document="receipt", status=InventoryReceiptStatus.posted.value).inc()
        receipt = get_or_404(db, InventoryReceipt, receipt_id, options=_LOAD_OPTIONS)
        logger.info(
            "inventory_receipt_posted receipt_id=%s items=%d total=%s expense=%s",
            receipt.id,
            len(receipt.items),
            receipt.total_amount,
            expense.id if expense is not None else None,
        )
        return ReceiptPosting(receipt=receipt, cash_expense=receipt.cash_expense)

    @staticmethod
    def cancel(db: Session, receipt_id: str) -> InventoryReceipt:
        receipt = get_or_404(db, InventoryReceipt, receipt_id, options=_LOAD_OPTIONS)
        _ensure_draft(receipt, "cancelled")
        try:
            claim_status(db, receipt, InventoryReceiptStatus.cancelled, "cancelled", cancelled_at=datetime.now(UTC))
            db.commit()
        except Exception:
            db.rollback()
            raise
        DOCUMENT_TRANSITIONS.labels(document="receipt", status=InventoryReceiptStatus.cancelled.value).inc()
        logger.info("inventory_receipt_cancelled receipt_id=%s", receipt_id)
        return get_or_404(db, InventoryReceipt, receipt_id, options=_LOAD_OPTIONS)


inventory_receipts = InventoryReceipts()
