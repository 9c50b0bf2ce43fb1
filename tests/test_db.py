import pytest
from sqlalchemy import func, select, text

from db import DatabaseError, appointments, get_database, patients

from conftest import TODAY, at


def count_rows(database, table):
    return database.fetch_one(select(func.count().label('count')).select_from(table))['count']


def test_fetch_one_returns_none_when_empty(database):
    assert database.fetch_one(select(patients.c.id)) is None


def test_insert_records_last_insert_id(database):
    first = database.execute_update(patients.insert().values(name="Lim Mei Ling"))
    first_id = database.last_insert_id
    database.execute_update(patients.insert().values(name="Kavitha Raman"))

    assert first == 1
    assert database.last_insert_id == first_id + 1
    rows = database.fetch_all(select(patients.c.name).order_by(patients.c.id))
    assert rows == [{'name': 'Lim Mei Ling'}, {'name': 'Kavitha Raman'}]


def test_execute_update_returns_affected_rows(database, add_appointment):
    add_appointment(at(TODAY), reason="Follow-up")
    add_appointment(at(TODAY, 10), reason="Follow-up")
    add_appointment(at(TODAY, 11), reason="Vaccination")

    deleted = database.execute_update(appointments.delete().where(appointments.c.reason == "Follow-up"))

    assert deleted == 2
    assert count_rows(database, appointments) == 1


def test_transaction_rolls_back_on_error(database):
    with pytest.raises(RuntimeError):
        with database.transaction():
            database.execute_update(patients.insert().values(name="Nurul Aisyah"))
            raise RuntimeError("abort")

    assert count_rows(database, patients) == 0


def test_transaction_commits_every_statement(database):
    with database.transaction():
        database.execute_update(patients.insert().values(name="Ahmad bin Ismail"))
        with database.transaction():
            database.execute_update(patients.insert().values(name="Lim Mei Ling"))

    assert count_rows(database, patients) == 2


def test_query_errors_are_wrapped_with_generic_message(database):
    with pytest.raises(DatabaseError) as excinfo:
        database.fetch_all(text("SELECT * FROM missing_table"))

    assert str(excinfo.value) == "Database operation failed. Please try again later."
    assert "missing_table" not in str(excinfo.value)


def test_get_database_returns_installed_default(database):
    assert get_database() is database
