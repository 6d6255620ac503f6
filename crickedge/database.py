"""
Database engine, session management and transaction scoping.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlmodel import Session, SQLModel, create_engine

from crickedge.config import DATABASE_URL

# Use check_same_thread only for SQLite
connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def create_db_and_tables(bind=None):
    """Create all tables defined in SQLModel metadata."""
    # Register every table on the metadata before creating it
    import crickedge.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Yield a database session."""
    with Session(engine) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    Run a block of work as one transaction.

    Commits when the block exits normally and rolls back on any exception,
    so partial effects of a failed mutation are never persisted.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
