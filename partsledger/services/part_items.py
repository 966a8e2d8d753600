"""Part item ledger.

Every change to ``PartItem.status`` goes through :func:`transition`, a
conditional UPDATE that only matches when the row still holds the expected
status. Concurrent callers racing for the same item therefore cannot both
win: the loser sees zero affected rows and gets :class:`RaceLostError`.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from partsledger.models.inventory import PartItem, PartItemStatus
from partsledger.schemas.inventory import PartItemTransition
from partsledger.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    get_or_404,
    validate_enum,
)
from partsledger.services.errors import InventoryConflictError, InventoryNotFoundError, RaceLostError
from partsledger.services.observability import PART_ITEM_TRANSITIONS
from partsledger.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

# Transitions owned by the maintenance subsystem.
_EXTERNAL_TRANSITIONS = {
    (PartItemStatus.issued, PartItemStatus.installed),
    (PartItemStatus.issued, PartItemStatus.scrapped),
}


def _as_statuses(value) -> tuple[PartItemStatus, ...]:
    if isinstance(value, PartItemStatus):
        return (value,)
    return tuple(value)


def find_available(
    db: Session,
    part_id,
    warehouse_id,
    limit: int,
    exclude: Iterable = (),
) -> list[PartItem]:
    """Return up to ``limit`` in-stock items, oldest received first."""
    if limit <= 0:
        return []
    query = (
        db.query(PartItem)
        .filter(PartItem.part_id == coerce_uuid(part_id, "part_id"))
        .filter(PartItem.warehouse_id == coerce_uuid(warehouse_id, "warehouse_id"))
        .filter(PartItem.status == PartItemStatus.in_stock)
    )
    excluded = list(exclude)
    if excluded:
        query = query.filter(PartItem.id.notin_(excluded))
    return (
        query.order_by(PartItem.received_at.asc(), PartItem.created_at.asc(), PartItem.id.asc())
        .limit(limit)
        .populate_existing()
        .all()
    )


def transition(db: Session, item_id, from_status, to_status: PartItemStatus, **changes) -> PartItem:
    """Move an item to ``to_status`` if it currently holds ``from_status``.

    ``from_status`` may be a single status or a collection of acceptable
    statuses. Extra column values in ``changes`` are written in the same
    statement. Does not commit.
    """
    item_uuid = coerce_uuid(item_id, "part_item_id")
    expected = _as_statuses(from_status)
    now = datetime.now(UTC)
    # Pending inserts must be visible to the conditional UPDATE.
    db.flush()
    result = db.execute(
        update(PartItem)
        .where(PartItem.id == item_uuid, PartItem.status.in_(expected))
        .values(status=to_status, last_moved_at=now, updated_at=now, **changes)
        .execution_options(synchronize_session=False)
    )
    item = db.get(PartItem, item_uuid, populate_existing=True)
    if item is None:
        raise InventoryNotFoundError("part_item_not_found", f"Part item {item_uuid} not found")
    if result.rowcount != 1:
        expected_label = "/".join(status.value for status in expected)
        logger.info(
            "part_item_transition_lost item_id=%s expected=%s actual=%s",
            item_uuid,
            expected_label,
            item.status.value,
        )
        raise RaceLostError(item_uuid, expected_label, item.status)
    PART_ITEM_TRANSITIONS.labels(
        from_status="/".join(status.value for status in expected),
        to_status=to_status.value,
    ).inc()
    return item


def create(
    db: Session,
    part_id,
    warehouse_id,
    internal_serial: str,
    manufacturer_serial: str,
    unit_cost: Decimal | None = None,
    receipt_id=None,
) -> PartItem:
    now = datetime.now(UTC)
    item = PartItem(
        part_id=coerce_uuid(part_id, "part_id"),
        warehouse_id=coerce_uuid(warehouse_id, "warehouse_id"),
        internal_serial=internal_serial,
        manufacturer_serial=manufacturer_serial,
        unit_cost=unit_cost,
        receipt_id=receipt_id,
        status=PartItemStatus.in_stock,
        received_at=now,
        last_moved_at=now,
    )
    db.add(item)
    db.flush()
    return item


def existing_serials(db: Session, serials: Iterable[str]) -> set[str]:
    """Return the serials already used by any part item, in either column."""
    wanted = {serial for serial in serials if serial}
    if not wanted:
        return set()
    rows = (
        db.query(PartItem.internal_serial, PartItem.manufacturer_serial)
        .filter(
            or_(
                PartItem.internal_serial.in_(wanted),
                PartItem.manufacturer_serial.in_(wanted),
            )
        )
        .all()
    )
    found: set[str] = set()
    for internal_serial, manufacturer_serial in rows:
        found.update({internal_serial, manufacturer_serial} & wanted)
    return found


class PartItems(ListResponseMixin):
    @staticmethod
    def get(db: Session, item_id: str) -> PartItem:
        return get_or_404(db, PartItem, item_id)

    @staticmethod
    def list(
        db: Session,
        q: str | None = None,
        warehouse_id: str | None = None,
        part_id: str | None = None,
        status: str | None = None,
        order_by: str = "received_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[PartItem]:
        query = db.query(PartItem)
        if q and q.strip():
            pattern = f"%{q.strip()}%"
            query = query.filter(
                or_(
                    PartItem.internal_serial.ilike(pattern),
                    PartItem.manufacturer_serial.ilike(pattern),
                )
            )
        if warehouse_id:
            query = query.filter(PartItem.warehouse_id == coerce_uuid(warehouse_id, "warehouse_id"))
        if part_id:
            query = query.filter(PartItem.part_id == coerce_uuid(part_id, "part_id"))
        if status:
            query = query.filter(PartItem.status == validate_enum(status, PartItemStatus, "status"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "received_at": PartItem.received_at,
                "last_moved_at": PartItem.last_moved_at,
                "internal_serial": PartItem.internal_serial,
                "created_at": PartItem.created_at,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def apply_external_transition(db: Session, item_id: str, payload: PartItemTransition) -> PartItem:
        """Record a maintenance-side move (installed or scrapped)."""
        item = get_or_404(db, PartItem, item_id)
        if (payload.from_status, payload.to_status) not in _EXTERNAL_TRANSITIONS:
            raise InventoryConflictError(
                "transition_not_allowed",
                f"Cannot move part item from {payload.from_status.value} to {payload.to_status.value}",
            )
        changes = {}
        if payload.to_status == PartItemStatus.installed:
            changes["installed_at"] = datetime.now(UTC)
            if payload.installed_vehicle_id:
                changes["installed_vehicle_id"] = payload.installed_vehicle_id
        try:
            item = transition(db, item.id, payload.from_status, payload.to_status, **changes)
        except RaceLostError as exc:
            db.rollback()
            raise InventoryConflictError("status_changed", exc.detail) from exc
        db.commit()
        db.refresh(item)
        logger.info(
            "part_item_moved item_id=%s to=%s",
            item.id,
            item.status.value,
        )
        return item


part_items = PartItems()
