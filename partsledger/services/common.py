import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import update
from sqlalchemy.orm import Query, Session

from partsledger.services.errors import (
    InventoryConflictError,
    InventoryNotFoundError,
    InventoryValidationError,
)


def coerce_uuid(value, label: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise InventoryValidationError("invalid_uuid", f"Invalid {label}: {value}") from exc


def validate_enum(value, enum_cls: type[enum.Enum], label: str):
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        raise InventoryValidationError(f"invalid_{label}", f"Invalid {label}: {value}") from exc


def apply_ordering(query: Query, order_by: str, order_dir: str, allowed_columns: dict) -> Query:
    if order_by not in allowed_columns:
        allowed = ", ".join(sorted(allowed_columns))
        raise InventoryValidationError("invalid_order_by", f"Invalid order_by. Allowed: {allowed}")
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query: Query, limit: int, offset: int) -> Query:
    return query.limit(limit).offset(offset)


def get_or_404(db: Session, model, entity_id, detail: str | None = None, options=None, for_update: bool = False):
    entity_uuid = coerce_uuid(entity_id)
    if options or for_update:
        query = db.query(model)
        if options:
            query = query.options(*options)
        if for_update:
            query = query.with_for_update().populate_existing()
        entity = query.filter(model.id == entity_uuid).first()
    else:
        entity = db.get(model, entity_uuid)
    if not entity:
        name = getattr(model, "__tablename__", "entity").rstrip("s").replace("_", " ")
        raise InventoryNotFoundError("not_found", detail or f"{name.capitalize()} not found")
    return entity


def claim_status(db: Session, entity, new_status: enum.Enum, action: str, **changes) -> None:
    """Move a document to ``new_status`` only if it still holds the status it was loaded with.

    The conditional UPDATE is the authority: a concurrent caller that already
    moved the document makes it match no row. Does not commit.
    """
    model = type(entity)
    expected = entity.status
    now = datetime.now(UTC)
    result = db.execute(
        update(model)
        .where(model.id == entity.id, model.status == expected)
        .values(status=new_status, updated_at=now, **changes)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        name = model.__tablename__.rstrip("s").replace("_", " ")
        raise InventoryConflictError(
            "invalid_status",
            f"{name.capitalize()} {entity.id} is no longer {expected.value} and cannot be {action}",
        )
