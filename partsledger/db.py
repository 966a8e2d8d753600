from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from partsledger.config import settings


class Base(DeclarativeBase):
    pass


_engine = None


def get_engine():
    global _engine
    if _engine is None:
        kwargs = {"pool_pre_ping": True}
        if not settings.database_url.startswith("sqlite"):
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_recycle=settings.db_pool_recycle,
            )
        _engine = create_engine(settings.database_url, **kwargs)
    return _engine


SessionLocal = sessionmaker(autoflush=False, autocommit=False)


def get_db():
    """Database session dependency for FastAPI.

    Yields a session bound to the shared engine and closes it after the
    request. Tests override this dependency with a transaction-scoped session.
    """
    db = SessionLocal(bind=get_engine())
    try:
        yield db
    finally:
        db.close()
