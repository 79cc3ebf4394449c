from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from hrms.core.config import settings

# SQLite for local runs and tests, PostgreSQL/MySQL through DATABASE_URL
DATABASE_URL = settings.database_url

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL, connect_args={"check_same_thread": False}
    )
else:
    # Row locks taken at submission need a server-side database
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Session Provider: one session per request.
    The leave services commit and roll back themselves.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope():
    """Session for scripts and startup jobs; rolls back whatever is left uncommitted on error."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create the leave tables. Called from the lifespan and the batch scripts."""
    from hrms.models import (  # noqa: F401
        employee, leave_configuration, leave_balance, leave_application, audit_log
    )
    Base.metadata.create_all(bind=engine)
