import random
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from appointment_analytics import local_today
from db import appointments, patients
from modules.properties import PROPERTY_CHECKS, VisualAnalyticsProperties, validate_chart_config
from modules.properties.visual_analytics import (
    ERROR_SCENARIOS,
    TEST_REASON,
    FailingDatabase,
    calculate_expected_counts,
)
from visualizations import build_chart_config

from conftest import at


def count_rows(database, table, *criteria):
    query = select(func.count().label('count')).select_from(table)
    for criterion in criteria:
        query = query.where(criterion)
    return database.fetch_one(query)['count']


@pytest.fixture
def suite(database):
    return VisualAnalyticsProperties(database=database, iterations=5, rng=random.Random(7))


@pytest.mark.parametrize("name", [name for name in PROPERTY_CHECKS if name != 'data_consistency'])
def test_stateless_properties_hold(suite, name, capsys):
    title, check = PROPERTY_CHECKS[name]

    assert check(suite) is True
    assert "passed all 5 iterations" in capsys.readouterr().out


def test_data_consistency_holds_and_cleans_up(suite, database, add_appointment):
    add_appointment(at(local_today(), 10))
    add_appointment(at(local_today() + timedelta(days=2), 15))

    assert suite.check_data_consistency() is True

    assert count_rows(database, appointments, appointments.c.reason == TEST_REASON) == 0
    assert count_rows(database, appointments) == 2
    assert count_rows(database, patients) == 0


def test_data_consistency_reuses_existing_patients(suite, database):
    database.execute_update(patients.insert().values(name="Lim Mei Ling"))

    assert suite.check_data_consistency() is True
    assert count_rows(database, patients) == 1


def test_data_consistency_fails_when_counts_are_wrong(suite, monkeypatch, capsys):
    from appointment_analytics import AppointmentAnalyticsService

    def always_fallback(today=None, database=None):
        data = AppointmentAnalyticsService.get_fallback_analytics_data(today)
        data['counts'][0] = 99
        data['json_counts'] = "[99,0,0,0,0,0,0]"
        return data

    monkeypatch.setattr(AppointmentAnalyticsService, 'get_analytics_data', staticmethod(always_fallback))

    assert suite.check_data_consistency() is False
    assert "FAILED on iteration 0:" in capsys.readouterr().out


@pytest.mark.parametrize("scenario", ERROR_SCENARIOS, ids=[s['name'] for s in ERROR_SCENARIOS])
def test_failing_database_triggers_fallback(scenario):
    from appointment_analytics import AppointmentAnalyticsService

    data = AppointmentAnalyticsService.get_analytics_data(database=FailingDatabase(scenario))

    assert data['is_fallback'] is True


def test_validate_chart_config_reports_problems():
    config = build_chart_config(["Mon"], [1])
    config['type'] = 'line'
    del config['data']['datasets'][0]['borderRadius']

    errors = validate_chart_config(config)

    assert "Expected chart type 'bar', got: line" in errors
    assert "Missing required dataset property: borderRadius" in errors
    assert validate_chart_config({}) == [
        "Missing required key: type", "Missing required key: data", "Missing required key: options"
    ]


def test_expected_counts_ignore_dates_outside_range():
    today = local_today()
    date_range = [(today + timedelta(days=n)).isoformat() for n in range(7)]

    counts = calculate_expected_counts(date_range, [at(today), at(today), at(today - timedelta(days=1))])

    assert counts == [2, 0, 0, 0, 0, 0, 0]


def test_date_coverage_fails_when_missing_days_are_not_zero(monkeypatch, capsys):
    from appointment_analytics import AppointmentAnalyticsService

    def counts_without_zero_fill(today=None, database=None):
        date_range = AppointmentAnalyticsService.generate_next_7_days_range(today)
        return {
            'labels': AppointmentAnalyticsService.generate_date_labels(date_range),
            'counts': [1] * len(date_range),
            'date_range': date_range
        }

    monkeypatch.setattr(AppointmentAnalyticsService, 'get_next_7_days_appointment_counts',
                        staticmethod(counts_without_zero_fill))
    suite = VisualAnalyticsProperties(iterations=3, rng=random.Random(5))

    assert suite.check_complete_date_coverage() is False
    assert "FAILED on iteration" in capsys.readouterr().out
