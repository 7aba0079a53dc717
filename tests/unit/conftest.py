"""Shared fixtures for storage tests.

Each test gets its own file-backed SQLite database so that concurrent tests
can open one connection per thread.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from doctrack.storage import Base
from doctrack.storage.batch_issuer import BatchIssuer
from doctrack.storage.category_store import CategoryStore
from doctrack.storage.database import create_db_engine
from doctrack.storage.invitation_store import InvitationStore
from doctrack.storage.office_store import OfficeStore
from doctrack.storage.session_store import SessionStore
from doctrack.storage.subscription_store import SubscriptionStore
from doctrack.storage.user_registrar import UserRegistrar


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def engine(tmp_path):
    """Create a file-backed SQLite engine with all tables."""
    engine = create_db_engine(
        f'sqlite:///{tmp_path / "doctrack.sqlite3"}',
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_maker(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 30, 0, 125000))


@pytest.fixture
def session_store(session_maker, clock):
    return SessionStore(session_maker=session_maker, clock=clock)


@pytest.fixture
def invitation_store(session_maker, clock):
    return InvitationStore(session_maker=session_maker, clock=clock)


@pytest.fixture
def registrar(session_maker):
    return UserRegistrar(session_maker=session_maker)


@pytest.fixture
def office_store(session_maker):
    return OfficeStore(session_maker=session_maker)


@pytest.fixture
def category_store(session_maker):
    return CategoryStore(session_maker=session_maker)


@pytest.fixture
def batch_issuer(session_maker, clock):
    return BatchIssuer(session_maker=session_maker, clock=clock)


@pytest.fixture
def subscription_store(session_maker):
    return SubscriptionStore(session_maker=session_maker)


@pytest.fixture
def office(office_store):
    """Create an office to invite users into."""
    return office_store.create_office('Records Section')


@pytest.fixture
def generator(registrar):
    """Register the staff member that requests barcode batches."""
    user_id = 'generator-0001'
    registrar.insert_invited_user(user_id, 'Batch Generator', 'generator@up.edu.ph')
    return user_id
