# tests/unit/core/test_database.py
import pytest
from sqlalchemy.exc import IntegrityError

from licensing.core.database import insert_if_absent, session_manager
from licensing.extensions import db
from licensing.models import Plan


def test_insert_if_absent_creates_missing_row(app):
    session = db.session()
    plan, created = insert_if_absent(session, Plan, {"code": "starter"}, name="Starter")
    assert created
    assert plan.id is not None

    again, created = insert_if_absent(session, Plan, {"code": "starter"}, name="Other")
    assert not created
    assert again.id == plan.id
    assert again.name == "Starter"


def test_insert_if_absent_absorbs_duplicate_from_concurrent_insert(app, monkeypatch):
    """A row inserted between the lookup and the insert resolves to that row"""
    db.session.add(Plan(code="starter", name="Starter"))
    db.session.commit()

    session = db.session()
    real_query = session.query
    calls = []

    class StaleLookup:
        def filter_by(self, **kwargs):
            return self

        def first(self):
            return None

    def query(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return StaleLookup()
        return real_query(*args, **kwargs)

    monkeypatch.setattr(session, "query", query)

    plan, created = insert_if_absent(session, Plan, {"code": "starter"}, name="Duplicate")
    monkeypatch.undo()

    assert not created
    assert plan.name == "Starter"
    assert db.session.query(Plan).count() == 1


def test_insert_if_absent_reraises_unrelated_integrity_error(app):
    db.session.add(Plan(code="starter", name="Starter"))
    db.session.commit()

    # Lookup never matches, so the unique violation on code is not a benign duplicate
    with pytest.raises(IntegrityError):
        insert_if_absent(db.session(), Plan, {"code": "starter", "name": "Other"})


def test_session_manager_rolls_back_on_error(app):
    with pytest.raises(RuntimeError):
        with session_manager() as session:
            session.add(Plan(code="pro", name="Pro"))
            session.flush()
            raise RuntimeError("boom")

    assert db.session.query(Plan).filter_by(code="pro").first() is None


def test_session_manager_commits(app):
    with session_manager() as session:
        session.add(Plan(code="pro", name="Pro"))

    db.session.rollback()
    assert db.session.query(Plan).filter_by(code="pro").first() is not None
