"""Reservation engine.

Binds request-line demand to concrete in-stock part items. Each candidate is
claimed with a conditional status update; a candidate lost to a concurrent
caller is skipped and the next one in FIFO order is tried, so a line is
fulfilled with as many items as could actually be secured.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from partsledger.models.inventory import (
    InventoryRequest,
    InventoryRequestLine,
    InventoryRequestStatus,
    InventoryReservation,
    PartItem,
    PartItemStatus,
)
from partsledger.services import part_items as ledger
from partsledger.services.errors import InventoryConflictError, RaceLostError
from partsledger.services.observability import RESERVATION_ATTEMPTS

logger = logging.getLogger(__name__)


@dataclass
class LineReservation:
    line: InventoryRequestLine
    needed_qty: int
    reservations: list[InventoryReservation] = field(default_factory=list)

    @property
    def reserved_qty(self) -> int:
        return len(self.reservations)

    @property
    def items(self) -> list[PartItem]:
        return [reservation.part_item for reservation in self.reservations]


def active_count(db: Session, line: InventoryRequestLine) -> int:
    return db.query(InventoryReservation).filter(InventoryReservation.request_line_id == line.id).count()


def reserve_for_line(
    db: Session,
    request: InventoryRequest,
    line: InventoryRequestLine,
    quantity: int | None = None,
) -> list[InventoryReservation]:
    """Reserve up to ``quantity`` items (default: the line's needed qty).

    Returns the reservations actually secured, possibly fewer than asked.
    Does not commit.
    """
    wanted = line.needed_qty if quantity is None else quantity
    secured: list[InventoryReservation] = []
    tried: set = set()
    while len(secured) < wanted:
        candidates = ledger.find_available(
            db,
            line.part_id,
            request.warehouse_id,
            limit=wanted - len(secured),
            exclude=tried,
        )
        if not candidates:
            break
        for candidate in candidates:
            tried.add(candidate.id)
            try:
                item = ledger.transition(db, candidate.id, PartItemStatus.in_stock, PartItemStatus.reserved)
            except RaceLostError:
                RESERVATION_ATTEMPTS.labels(outcome="race_lost").inc()
                continue
            RESERVATION_ATTEMPTS.labels(outcome="reserved").inc()
            reservation = InventoryReservation(
                request_id=request.id,
                request_line_id=line.id,
                part_item_id=item.id,
            )
            reservation.part_item = item
            db.add(reservation)
            secured.append(reservation)
    db.flush()
    if len(secured) < wanted:
        logger.info(
            "reservation_short request_id=%s line_id=%s part_id=%s wanted=%d reserved=%d",
            request.id,
            line.id,
            line.part_id,
            wanted,
            len(secured),
        )
    return secured


def reserve_request(db: Session, request: InventoryRequest, top_up: bool = False) -> list[LineReservation]:
    """Run the engine over every line of a request.

    With ``top_up`` only the outstanding demand of each line (needed minus
    already reserved) is requested. Does not commit.
    """
    report: list[LineReservation] = []
    for line in request.lines:
        outstanding = line.needed_qty
        if top_up:
            outstanding = max(line.needed_qty - active_count(db, line), 0)
        reservations = reserve_for_line(db, request, line, outstanding) if outstanding else []
        report.append(LineReservation(line=line, needed_qty=line.needed_qty, reservations=reservations))
    return report


def release(db: Session, reservation: InventoryReservation) -> bool:
    """Return a reserved item to stock and drop its reservation.

    Returns False when the item was no longer reserved; the stale
    reservation row is dropped either way. Does not commit.
    """
    released = True
    try:
        ledger.transition(db, reservation.part_item_id, PartItemStatus.reserved, PartItemStatus.in_stock)
    except RaceLostError as exc:
        logger.warning(
            "reservation_release_stale reservation_id=%s item_id=%s actual=%s",
            reservation.id,
            reservation.part_item_id,
            getattr(exc.actual, "value", exc.actual),
        )
        released = False
    db.delete(reservation)
    return released


def unreserve(db: Session, request: InventoryRequest) -> int:
    """Release every active reservation of an approved request.

    The request keeps its APPROVED status. Does not commit.
    """
    if request.status != InventoryRequestStatus.approved:
        raise InventoryConflictError(
            "invalid_status",
            f"Only approved requests can be unreserved (request is {request.status.value})",
        )
    reservations = (
        db.query(InventoryReservation).filter(InventoryReservation.request_id == request.id).all()
    )
    count = 0
    for reservation in reservations:
        if release(db, reservation):
            count += 1
    db.flush()
    return count
