"""
Pytest fixtures for rowguard backend tests.

Provides an app on a temporary SQLite file, a clean session per test, a
second independent session (a second "in-memory copy" of every row), and a
test client.
"""

import pytest
from sqlalchemy.orm import Session

from rowguard import create_app
from rowguard.extensions import db
from rowguard.models import Record, Tally


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("rowguard") / "test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def second_session(db_session):
    """An independent session on the same database."""
    session = Session(bind=db.engine)
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def record(db_session):
    """A committed record at version 1."""
    row = Record(name="alpha", value=100)
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture(scope='function')
def tally(db_session):
    """A committed tally at version 1."""
    row = Tally(name="visits", count=0)
    db_session.add(row)
    db_session.commit()
    return row
