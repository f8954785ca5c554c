"""
Pytest configuration and fixtures

Unit tests run against InMemoryRecordStore. SQL store tests get a fresh
in-memory SQLite database per test, so nothing persists between tests.
"""
import pytest
import sys
import os
from datetime import datetime, date

# Tests never talk to PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_CREATE_TABLES", "false")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from core.database import Base, build_engine
from core.store import get_record_store
from services.metric_engine.models import Measurement, MetricDefinition, MetricInputType
from services.record_store import InMemoryRecordStore, Player, SqlRecordStore

BMI_FORMULA = "[Weight] / (([Height]/100) * ([Height]/100))"


@pytest.fixture
def store():
    """Empty in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
def db_session():
    """
    Session on a throwaway in-memory SQLite database.

    The engine is disposed after the test; every test starts empty.
    """
    import models  # noqa: F401  (registers the tables on Base)

    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = Session(bind=engine)
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def sql_store(db_session):
    return SqlRecordStore(db_session)


@pytest.fixture
def client(store):
    """TestClient whose record store is the in-memory fixture store."""
    from main import app

    app.dependency_overrides[get_record_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def bmi_metrics(store):
    """Weight, Height (manual) and BMI (calculated) in the fixture store."""
    weight = store.add_metric(MetricDefinition(id="weight", name="Weight", unit="kg", show_in_radar=True))
    height = store.add_metric(MetricDefinition(
        id="height", name="Height", unit="cm", exclude_from_leaderboard=True,
    ))
    bmi = store.add_metric(MetricDefinition(
        id="bmi", name="BMI", unit="kg/m2",
        input_type=MetricInputType.CALCULATED, formula=BMI_FORMULA, show_in_radar=True,
    ))
    return weight, height, bmi


@pytest.fixture
def player(store):
    return store.add_player(Player(id="p1", name="Ayşe Yılmaz", position="Forward", birth_date=date(2000, 5, 17)))


def add_measurement(store, player_id, metric_id, value, when):
    """Store one measurement; `when` may be a date or datetime."""
    if not isinstance(when, datetime):
        when = datetime(when.year, when.month, when.day, 9, 0)
    return store.add_measurements(player_id, [
        Measurement(id="", metric_id=metric_id, value=value, date=when),
    ])[0]
