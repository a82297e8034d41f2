"""
tests/conftest.py – shared fixtures.

``db`` is a real SQLAlchemy session on a private in-memory SQLite database with
every table created, so service tests exercise the actual queries.  ``client``
is a FastAPI ``TestClient`` whose ``get_db`` dependency yields that same session.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tmdash.database import Base, get_db


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from tmdash.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def add_event(db):
    from datetime import datetime
    from tmdash.models.event import Event

    def _add(
        tm_event_id="EV1",
        event_name="Taylor Swift | The Eras Tour",
        venue="MetLife Stadium",
        event_date=datetime(2026, 8, 2, 20, 0),
        event_date_raw="Sun · Aug 02, 2026 · 8:00 PM",
    ):
        event = Event(
            tm_event_id=tm_event_id,
            event_name=event_name,
            venue=venue,
            event_date=event_date,
            event_date_raw=event_date_raw,
        )
        db.add(event)
        db.commit()
        return event

    return _add


@pytest.fixture
def add_account(db):
    from tmdash.models.account import Account

    def _add(email="buyer@example.com"):
        account = Account(email=email)
        db.add(account)
        db.commit()
        return account

    return _add


@pytest.fixture
def add_card(db):
    from tmdash.models.card import Card

    def _add(card_number="4111111111117119", account_id=None, card_type="VISA"):
        card = Card(card_number=card_number, account_id=account_id, card_type=card_type)
        db.add(card)
        db.commit()
        return card

    return _add
