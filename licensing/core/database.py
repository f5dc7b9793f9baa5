# licensing/core/database.py

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, Tuple, Type
from uuid import uuid4

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..extensions import db


def generate_uuid():
    return str(uuid4())


def utcnow():
    return datetime.utcnow()


@contextmanager
def session_manager() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.
    Commits on success, rolls back everything on error.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def insert_if_absent(
    session: Session, model: Type[db.Model], lookup: Dict[str, Any], **values
) -> Tuple[Any, bool]:
    """
    Check-then-insert a row keyed by a unique constraint.

    Returns ``(instance, created)``. The insert runs in a savepoint so that a
    duplicate rejected by the unique constraint (a concurrent request won the
    race) rolls back only this insert and resolves to the existing row.
    """
    existing = session.query(model).filter_by(**lookup).first()
    if existing is not None:
        return existing, False

    instance = model(**lookup, **values)
    try:
        with session.begin_nested():
            session.add(instance)
    except IntegrityError:
        existing = session.query(model).filter_by(**lookup).first()
        if existing is None:
            raise
        return existing, False

    return instance, True


def enable_sqlite_savepoints(engine):
    """
    Let pysqlite honour SAVEPOINT inside the session transaction.
    Only needed for SQLite (tests and local runs).
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


class BaseModel(db.Model):
    __abstract__ = True

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
