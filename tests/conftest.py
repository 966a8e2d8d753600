import sqlite3
import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Register UUID adapter for SQLite - store as string
sqlite3.register_adapter(uuid.UUID, lambda u: str(u))

# Monkey-patch SQLAlchemy's UUID type for SQLite compatibility
# This must happen before any models are imported
from sqlalchemy.sql import sqltypes  # noqa: E402

_original_uuid_bind_processor = sqltypes.Uuid.bind_processor
_original_uuid_result_processor = sqltypes.Uuid.result_processor


def _sqlite_uuid_bind_processor(self, dialect):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return str(value)
                return str(uuid.UUID(value)) if value else None
            return None
        return process
    return _original_uuid_bind_processor(self, dialect)


def _sqlite_uuid_result_processor(self, dialect, coltype):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return value
                return uuid.UUID(value) if value else None
            return None
        return process
    return _original_uuid_result_processor(self, dialect, coltype)


sqltypes.Uuid.bind_processor = _sqlite_uuid_bind_processor
sqltypes.Uuid.result_processor = _sqlite_uuid_result_processor

import partsledger.models  # noqa: F401,E402
from partsledger.db import Base, get_db  # noqa: E402
from partsledger.models.catalog import Part, Warehouse  # noqa: E402
from partsledger.models.inventory import PartItem  # noqa: E402
from partsledger.schemas.inventory import InventoryRequestCreate, InventoryRequestLineCreate  # noqa: E402
from partsledger.services import part_items as ledger  # noqa: E402
from partsledger.services.inventory_requests import inventory_requests  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; take it over.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, autoflush=False, join_transaction_mode="create_savepoint")
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def client(db_session):
    from partsledger.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def warehouse(db_session):
    warehouse = Warehouse(name="Main Depot", code=f"WH-{uuid.uuid4().hex[:6]}")
    db_session.add(warehouse)
    db_session.commit()
    db_session.refresh(warehouse)
    return warehouse


@pytest.fixture()
def other_warehouse(db_session):
    warehouse = Warehouse(name="North Yard", code=f"WH-{uuid.uuid4().hex[:6]}")
    db_session.add(warehouse)
    db_session.commit()
    db_session.refresh(warehouse)
    return warehouse


@pytest.fixture()
def part(db_session):
    part = Part(name="Front brake pad set", sku=f"BRK-{uuid.uuid4().hex[:6]}", brand="Bosch", unit="Set")
    db_session.add(part)
    db_session.commit()
    db_session.refresh(part)
    return part


@pytest.fixture()
def other_part(db_session):
    part = Part(name="Oil filter", sku=f"OIL-{uuid.uuid4().hex[:6]}", brand="Mann", unit="Each")
    db_session.add(part)
    db_session.commit()
    db_session.refresh(part)
    return part


@pytest.fixture()
def make_items(db_session):
    """Create in-stock part items with strictly increasing received_at."""

    def _make(part, warehouse, count, unit_cost=Decimal("10.00")):
        base = datetime.now(UTC) - timedelta(days=30)
        items = []
        for index in range(count):
            suffix = uuid.uuid4().hex[:8]
            item = ledger.create(
                db_session,
                part.id,
                warehouse.id,
                internal_serial=f"INT-{suffix}",
                manufacturer_serial=f"MFR-{suffix}",
                unit_cost=unit_cost,
            )
            item.received_at = base + timedelta(minutes=index)
            items.append(item)
        db_session.commit()
        for item in items:
            db_session.refresh(item)
        return items

    return _make


@pytest.fixture()
def make_request(db_session):
    def _make(warehouse, lines, work_order_id=None, requested_by=None):
        payload = InventoryRequestCreate(
            warehouse_id=warehouse.id,
            work_order_id=work_order_id,
            lines=[InventoryRequestLineCreate(part_id=part.id, needed_qty=qty) for part, qty in lines],
        )
        return inventory_requests.create(db_session, payload, requested_by=requested_by)

    return _make


@pytest.fixture()
def item_status(db_session):
    def _status(item_id):
        return db_session.get(PartItem, item_id, populate_existing=True).status

    return _status
