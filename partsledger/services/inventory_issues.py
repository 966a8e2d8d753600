import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session, selectinload

from partsledger.models.inventory import (
    InventoryRequest,
    InventoryRequestStatus,
    InventoryReservation,
    PartItem,
    PartItemStatus,
)
from partsledger.models.issues import InventoryIssue, InventoryIssueLine, InventoryIssueStatus
from partsledger.schemas.issues import InventoryIssueCreate
from partsledger.services import part_items as ledger
from partsledger.services import reservations as engine
from partsledger.services.catalog import ensure_warehouse
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
    InventoryValidationError,
    RaceLostError,
)
from partsledger.services.observability import DOCUMENT_TRANSITIONS
from partsledger.services.response import ListResponseMixin
from partsledger.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

_LOAD_OPTIONS = [selectinload(InventoryIssue.lines).selectinload(InventoryIssueLine.part_item)]


def _find_reservation(db: Session, request_id, part_item_id) -> InventoryReservation | None:
    return (
        db.query(InventoryReservation)
        .filter(InventoryReservation.request_id == request_id)
        .filter(InventoryReservation.part_item_id == part_item_id)
        .first()
    )


def _ensure_draft(issue: InventoryIssue, action: str) -> None:
    if issue.status != InventoryIssueStatus.draft:
        raise InventoryConflictError(
            "invalid_status",
            f"Only draft issues can be {action} (issue {issue.id} is {issue.status.value})",
        )


class InventoryIssues(ListResponseMixin):
    @staticmethod
    def create_draft(db: Session, payload: InventoryIssueCreate, issued_by: str | None = None) -> InventoryIssue:
        """Create a DRAFT issue.

        With ``request_id`` every item must be held by a reservation of that
        request; without it every item must be in stock (ad-hoc issue).
        """
        ensure_warehouse(db, payload.warehouse_id)
        if not payload.lines:
            raise InventoryValidationError("no_lines", "An inventory issue needs at least one line")

        request = None
        if payload.request_id:
            request = get_or_404(db, InventoryRequest, payload.request_id)
            if request.status != InventoryRequestStatus.approved:
                raise InventoryConflictError(
                    "invalid_status",
                    f"Issues can only be drafted from approved requests (request is {request.status.value})",
                )
            if request.warehouse_id != payload.warehouse_id:
                raise InventoryValidationError(
                    "warehouse_mismatch", "Issue warehouse does not match the request warehouse"
                )

        seen: set = set()
        resolved: list[tuple] = []
        for index, line in enumerate(payload.lines):
            label = f"Line {index + 1}"
            if line.part_item_id in seen:
                raise InventoryValidationError(
                    "duplicate_item", f"{label}: part item {line.part_item_id} appears more than once"
                )
            seen.add(line.part_item_id)
            item = db.get(PartItem, line.part_item_id)
            if not item:
                raise InventoryValidationError("unknown_part_item", f"{label}: unknown part item {line.part_item_id}")
            if item.part_id != line.part_id:
                raise InventoryValidationError(
                    "part_mismatch", f"{label}: part item {item.id} is not an instance of part {line.part_id}"
                )
            if item.warehouse_id != payload.warehouse_id:
                raise InventoryValidationError(
                    "warehouse_mismatch", f"{label}: part item {item.id} is stored in another warehouse"
                )
            if request is not None:
                if item.status != PartItemStatus.reserved or not _find_reservation(db, request.id, item.id):
                    raise InventoryConflictError(
                        "not_reserved", f"{label}: part item {item.id} is not reserved for request {request.id}"
                    )
            elif item.status != PartItemStatus.in_stock:
                raise InventoryConflictError(
                    "not_in_stock", f"{label}: part item {item.id} is {item.status.value}, expected in_stock"
                )
            resolved.append((line, item))

        issue = InventoryIssue(
            warehouse_id=payload.warehouse_id,
            work_order_id=payload.work_order_id,
            request_id=request.id if request is not None else None,
            issued_by=coerce_uuid(issued_by, "issued_by") if issued_by else None,
            notes=payload.notes,
            status=InventoryIssueStatus.draft,
        )
        db.add(issue)
        db.flush()
        for line, item in resolved:
            unit_cost = line.unit_cost if line.unit_cost is not None else item.unit_cost
            db.add(
                InventoryIssueLine(
                    issue_id=issue.id,
                    part_id=item.part_id,
                    part_item_id=item.id,
                    qty=1,
                    unit_cost=unit_cost,
                    total_cost=unit_cost,
                    notes=line.notes,
                )
            )
        db.commit()
        DOCUMENT_TRANSITIONS.labels(document="issue", status=issue.status.value).inc()
        logger.info("inventory_issue_drafted issue_id=%s lines=%d", issue.id, len(resolved))
        return get_or_404(db, InventoryIssue, issue.id, options=_LOAD_OPTIONS)

    @staticmethod
    def get(db: Session, issue_id: str) -> InventoryIssue:
        return get_or_404(db, InventoryIssue, issue_id, options=_LOAD_OPTIONS)

    @staticmethod
    def list(
        db: Session,
        status: str | None = None,
        warehouse_id: str | None = None,
        request_id: str | None = None,
        work_order_id: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[InventoryIssue]:
        query = db.query(InventoryIssue).options(*_LOAD_OPTIONS)
        if status:
            query = query.filter(InventoryIssue.status == validate_enum(status, InventoryIssueStatus, "status"))
        if warehouse_id:
            query = query.filter(InventoryIssue.warehouse_id == coerce_uuid(warehouse_id, "warehouse_id"))
        if request_id:
            query = query.filter(InventoryIssue.request_id == coerce_uuid(request_id, "request_id"))
        if work_order_id:
            query = query.filter(InventoryIssue.work_order_id == coerce_uuid(work_order_id, "work_order_id"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": InventoryIssue.created_at, "posted_at": InventoryIssue.posted_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def post(db: Session, issue_id: str) -> InventoryIssue:
        """Post a DRAFT issue, moving every line's item to ISSUED.

        All lines commit together. If any item is no longer in the expected
        state nothing changes and the issue stays DRAFT.
        """
        issue = get_or_404(db, InventoryIssue, issue_id, options=_LOAD_OPTIONS)
        _ensure_draft(issue, "posted")
        expected = PartItemStatus.reserved if issue.request_id else PartItemStatus.in_stock
        with tracer.start_as_current_span("inventory.issue.post") as span:
            span.set_attribute("inventory.issue_id", str(issue.id))
            try:
                now = datetime.now(UTC)
                claim_status(db, issue, InventoryIssueStatus.posted, "posted", posted_at=now)
                for line in issue.lines:
                    if issue.request_id:
                        reservation = _find_reservation(db, issue.request_id, line.part_item_id)
                        if reservation is None:
                            raise InventoryConflictError(
                                "reservation_missing",
                                f"Part item {line.part_item_id} is no longer reserved for request {issue.request_id}",
                            )
                        ledger.transition(db, line.part_item_id, expected, PartItemStatus.issued)
                        db.delete(reservation)
                    else:
                        ledger.transition(db, line.part_item_id, expected, PartItemStatus.issued)
                db.flush()
                if issue.request_id:
                    _close_request_if_consumed(db, issue.request_id, now)
                db.commit()
            except RaceLostError as exc:
                db.rollback()
                logger.warning("inventory_issue_post_failed issue_id=%s reason=%s", issue_id, exc.detail)
                raise InventoryConflictError("item_unavailable", exc.detail) from exc
            except Exception:
                db.rollback()
                raise
        DOCUMENT_TRANSITIONS.labels(document="issue", status=InventoryIssueStatus.posted.value).inc()
        logger.info("inventory_issue_posted issue_id=%s", issue_id)
        return get_or_404(db, InventoryIssue, issue_id, options=_LOAD_OPTIONS)

    @staticmethod
    def cancel(db: Session, issue_id: str) -> InventoryIssue:
        """Cancel a DRAFT issue, releasing any reservation holds on its items."""
        issue = get_or_404(db, InventoryIssue, issue_id, options=_LOAD_OPTIONS)
        _ensure_draft(issue, "cancelled")
        released = 0
        try:
            claim_status(db, issue, InventoryIssueStatus.cancelled, "cancelled", cancelled_at=datetime.now(UTC))
            if issue.request_id:
                for line in issue.lines:
                    reservation = _find_reservation(db, issue.request_id, line.part_item_id)
                    if reservation is not None and engine.release(db, reservation):
                        released += 1
            db.commit()
        except Exception:
            db.rollback()
            raise
        DOCUMENT_TRANSITIONS.labels(document="issue", status=InventoryIssueStatus.cancelled.value).inc()
        logger.info("inventory_issue_cancelled issue_id=%s released=%d", issue_id, released)
        return get_or_404(db, InventoryIssue, issue_id, options=_LOAD_OPTIONS)


def _close_request_if_consumed(db: Session, request_id, when: datetime) -> None:
    request = db.get(InventoryRequest, request_id)
    if request is None or request.status != InventoryRequestStatus.approved:
        return
    remaining = db.query(InventoryReservation).filter(InventoryReservation.request_id == request_id).count()
    if remaining == 0:
        request.status = InventoryRequestStatus.issued
        request.issued_at = when
        DOCUMENT_TRANSITIONS.labels(document="request", status=request.status.value).inc()


inventory_issues = InventoryIssues()
