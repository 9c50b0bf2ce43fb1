import os
import sys
from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from db import Database, appointments, set_database

# A Monday
TODAY = date(2026, 10, 19)


@pytest.fixture
def database():
    """In-memory SQLite database installed as the process-wide default"""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    db = Database(engine=engine)
    db.create_schema()
    set_database(db)
    yield db
    set_database(None)
    engine.dispose()


@pytest.fixture
def add_appointment(database):
    def _add(start_time, reason="General consultation", doctor_name="Dr. Ali Rahman"):
        database.execute_update(appointments.insert().values(
            start_time=start_time,
            end_time=start_time,
            appointment_date=start_time.date(),
            reason=reason,
            doctor_name=doctor_name
        ))
        return database.last_insert_id
    return _add


def at(day, hour=9, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute)
