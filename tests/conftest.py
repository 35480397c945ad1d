import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import Settings
from database import enable_sqlite_foreign_keys, init_db
from notification_service import NotificationWorker
from tests.factories import FIXED_NOW


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(_env_file=None, TIMEZONE="UTC", CURRENCY_SYMBOL="₱")


@pytest.fixture
def worker(session_factory, settings):
    return NotificationWorker(session_factory, settings, clock=lambda: FIXED_NOW)
