import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.orm import Session, selectinload

from partsledger.models.inventory import (
    InventoryRequest,
    InventoryRequestLine,
    InventoryRequestStatus,
    InventoryReservation,
)
from partsledger.schemas.inventory import InventoryRequestCreate
from partsledger.services import reservations as engine
from partsledger.services.catalog import ensure_part, ensure_warehouse
from partsledger.services.common import (
    apply_ordering,
    apply_pagination,
    claim_status,
    coerce_uuid,
    get_or_404,
    validate_enum,
)
from partsledger.services.errors import InventoryConflictError, InventoryValidationError
from partsledger.services.observability import DOCUMENT_TRANSITIONS
from partsledger.services.response import ListResponseMixin
from partsledger.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

_LOAD_OPTIONS = [
    selectinload(InventoryRequest.lines),
    selectinload(InventoryRequest.reservations).selectinload(InventoryReservation.part_item),
]

# Serialized units; one request line never asks for more than this.
MAX_NEEDED_QTY = 10_000


@dataclass
class ReservationOutcome:
    request: InventoryRequest
    lines: list[engine.LineReservation]

    @property
    def reserved_total(self) -> int:
        return sum(line.reserved_qty for line in self.lines)

    @property
    def requested_total(self) -> int:
        return sum(line.needed_qty for line in self.lines)

    @property
    def fully_reserved(self) -> bool:
        return all(line.reserved_qty >= line.needed_qty for line in self.lines)


@dataclass
class UnreserveOutcome:
    request: InventoryRequest
    unreserved_count: int


def _ensure_pending(request: InventoryRequest, action: str) -> None:
    if request.status != InventoryRequestStatus.pending:
        raise InventoryConflictError(
            "invalid_status",
            f"Only pending requests can be {action} (request {request.id} is {request.status.value})",
        )


class InventoryRequests(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: InventoryRequestCreate, requested_by: str | None = None) -> InventoryRequest:
        ensure_warehouse(db, payload.warehouse_id)
        if not payload.lines:
            raise InventoryValidationError("no_lines", "An inventory request needs at least one line")
        for index, line in enumerate(payload.lines):
            if line.needed_qty <= 0:
                raise InventoryValidationError(
                    "invalid_quantity",
                    f"Line {index + 1}: needed_qty must be positive (got {line.needed_qty})",
                )
            if line.needed_qty > MAX_NEEDED_QTY:
                raise InventoryValidationError(
                    "invalid_quantity",
                    f"Line {index + 1}: needed_qty cannot exceed {MAX_NEEDED_QTY} (got {line.needed_qty})",
                )
            ensure_part(db, line.part_id)

        request = InventoryRequest(
            warehouse_id=payload.warehouse_id,
            work_order_id=payload.work_order_id,
            requested_by=coerce_uuid(requested_by, "requested_by") if requested_by else None,
            notes=payload.notes,
            status=InventoryRequestStatus.pending,
        )
        db.add(request)
        db.flush()
        for index, line in enumerate(payload.lines):
            db.add(
                InventoryRequestLine(
                    request_id=request.id,
                    part_id=line.part_id,
                    needed_qty=line.needed_qty,
                    notes=line.notes,
                    position=index,
                )
            )
        db.commit()
        db.refresh(request)
        DOCUMENT_TRANSITIONS.labels(document="request", status=request.status.value).inc()
        logger.info("inventory_request_created request_id=%s lines=%d", request.id, len(payload.lines))
        return request

    @staticmethod
    def get(db: Session, request_id: str) -> InventoryRequest:
        return get_or_404(db, InventoryRequest, request_id, options=_LOAD_OPTIONS)

    @staticmethod
    def list(
        db: Session,
        status: str | None = None,
        warehouse_id: str | None = None,
        work_order_id: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[InventoryRequest]:
        query = db.query(InventoryRequest).options(*_LOAD_OPTIONS)
        if status:
            query = query.filter(InventoryRequest.status == validate_enum(status, InventoryRequestStatus, "status"))
        if warehouse_id:
            query = query.filter(InventoryRequest.warehouse_id == coerce_uuid(warehouse_id, "warehouse_id"))
        if work_order_id:
            query = query.filter(InventoryRequest.work_order_id == coerce_uuid(work_order_id, "work_order_id"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": InventoryRequest.created_at, "updated_at": InventoryRequest.updated_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def approve(db: Session, request_id: str) -> ReservationOutcome:
        """Approve a pending request and reserve stock for each line.

        Short stock does not block approval: the request becomes APPROVED
        and the outcome reports reserved vs. requested per line. The status
        claim is the first write, so of two concurrent approvals only one
        reaches the reservation engine.
        """
        request = get_or_404(db, InventoryRequest, request_id, options=_LOAD_OPTIONS)
        _ensure_pending(request, "approved")
        with tracer.start_as_current_span("inventory.request.approve") as span:
            span.set_attribute("inventory.request_id", str(request.id))
            try:
                claim_status(
                    db,
                    request,
                    InventoryRequestStatus.approved,
                    "approved",
                    approved_at=datetime.now(UTC),
                )
                lines = engine.reserve_request(db, request)
                db.commit()
            except Exception:
                db.rollback()
                raise
        db.refresh(request)
        outcome = ReservationOutcome(request=request, lines=lines)
        DOCUMENT_TRANSITIONS.labels(document="request", status=request.status.value).inc()
        logger.info(
            "inventory_request_approved request_id=%s reserved=%d requested=%d",
            request.id,
            outcome.reserved_total,
            outcome.requested_total,
        )
        return outcome

    @staticmethod
    def reserve(db: Session, request_id: str) -> ReservationOutcome:
        """Top up reservations of an approved request to its outstanding demand."""
        try:
            request = get_or_404(db, InventoryRequest, request_id, options=_LOAD_OPTIONS, for_update=True)
            if request.status != InventoryRequestStatus.approved:
                raise InventoryConflictError(
                    "invalid_status",
                    f"Only approved requests can be reserved (request is {request.status.value})",
                )
            engine.reserve_request(db, request, top_up=True)
            db.commit()
        except Exception:
            db.rollback()
            raise
        request = get_or_404(db, InventoryRequest, request.id, options=_LOAD_OPTIONS)
        lines = []
        for line in request.lines:
            held = [r for r in request.reservations if r.request_line_id == line.id]
            lines.append(engine.LineReservation(line=line, needed_qty=line.needed_qty, reservations=held))
        outcome = ReservationOutcome(request=request, lines=lines)
        logger.info(
            "inventory_request_reserved request_id=%s reserved=%d requested=%d",
            request.id,
            outcome.reserved_total,
            outcome.requested_total,
        )
        return outcome

    @staticmethod
    def reject(db: Session, request_id: str, reason: str | None = None) -> InventoryRequest:
        request = get_or_404(db, InventoryRequest, request_id, options=_LOAD_OPTIONS)
        _ensure_pending(request, "rejected")
        changes = {"rejected_at": datetime.now(UTC)}
        if reason:
            changes["rejection_reason"] = reason
        try:
            claim_status(db, request, InventoryRequestStatus.rejected, "rejected", **changes)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(request)
        DOCUMENT_TRANSITIONS.labels(document="request", status=request.status.value).inc()
        logger.info("inventory_request_rejected request_id=%s", request.id)
        return request

    @staticmethod
    def unreserve(db: Session, request_id: str) -> UnreserveOutcome:
        try:
            request = get_or_404(db, InventoryRequest, request_id, options=_LOAD_OPTIONS, for_update=True)
            count = engine.unreserve(db, request)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(request)
        logger.info("inventory_request_unreserved request_id=%s count=%d", request.id, count)
        return UnreserveOutcome(request=request, unreserved_count=count)


inventory_requests = InventoryRequests()
