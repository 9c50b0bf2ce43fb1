import json
import random
from datetime import datetime, time, timedelta

import pandas as pd
from sqlalchemy import delete, select

from appointment_analytics import AppointmentAnalyticsService, local_today
from config import ANALYTICS_DAYS, CHART_THEME, PROPERTY_ITERATIONS
from db import DatabaseError, appointments, get_database, patients
from visualizations import build_chart_config, calculate_bar_proportions

TEST_REASON = "Test appointment for analytics"
TEST_PATIENT_PREFIX = "Test Patient"
DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
FALLBACK_KEYS = ["labels", "counts", "date_range", "json_labels", "json_counts"]

ERROR_SCENARIOS = [
    {
        'name': 'database_connection_failure',
        'type': 'connection',
        'description': 'Simulate database connection failure'
    },
    {
        'name': 'query_timeout',
        'type': 'timeout',
        'description': 'Simulate database query timeout'
    },
    {
        'name': 'invalid_data_format',
        'type': 'data',
        'description': 'Simulate invalid data format from database'
    },
    {
        'name': 'permission_denied',
        'type': 'permission',
        'description': 'Simulate database permission error'
    }
]


class FailingDatabase:
    """Stands in for the database and fails the way an error scenario describes"""

    def __init__(self, scenario):
        self.scenario = scenario

    def fetch_all(self, statement, params=None):
        kind = self.scenario['type']
        if kind == 'data':
            return [{'start_time': "not-a-date"}, {'start_time': None}]
        if kind == 'timeout':
            raise TimeoutError("Query exceeded the time limit")
        raise DatabaseError(f"{self.scenario['description']} ({kind})")


class StaticDatabase:
    """Serves a fixed set of appointment rows to the analytics queries"""

    def __init__(self, rows):
        self.rows = rows

    def fetch_all(self, statement, params=None):
        return [dict(row) for row in self.rows]


def validate_chart_config(config):
    """Check a Chart.js config has what the weekly workload chart needs; returns a list of errors"""
    errors = [f"Missing required key: {key}" for key in ('type', 'data', 'options') if key not in config]
    if errors:
        return errors

    if config['type'] != 'bar':
        errors.append(f"Expected chart type 'bar', got: {config['type']}")

    datasets = config['data'].get('datasets')
    if 'labels' not in config['data'] or datasets is None:
        errors.append("Invalid data structure - missing labels or datasets")
        return errors
    if not datasets or 'data' not in datasets[0]:
        errors.append("Invalid dataset structure - missing data array")
        return errors

    dataset = datasets[0]
    for key in ('backgroundColor', 'borderColor', 'borderRadius'):
        if key not in dataset:
            errors.append(f"Missing required dataset property: {key}")
    if dataset.get('backgroundColor', CHART_THEME['BAR_COLOR']) != CHART_THEME['BAR_COLOR']:
        errors.append(f"Unexpected bar colour: {dataset['backgroundColor']}")

    y_axis = config['options'].get('scales', {}).get('y', {})
    if not y_axis.get('beginAtZero'):
        errors.append("Y axis must begin at zero")
    return errors


def calculate_expected_counts(date_range, start_times):
    counts = [0] * len(date_range)
    for start_time in start_times:
        day = pd.Timestamp(start_time).strftime("%Y-%m-%d")
        if day in date_range:
            counts[date_range.index(day)] += 1
    return counts


class VisualAnalyticsProperties:
    """
    Property-based checks for the weekly workload analytics

    Each check runs a number of randomised iterations and returns True only if
    every iteration holds. The first failing iteration is reported on stdout.
    """

    def __init__(self, database=None, iterations=PROPERTY_ITERATIONS, rng=None):
        self.database = database
        self.iterations = iterations
        self.rng = rng or random.Random()

    def _fail(self, iteration, *lines):
        print(f"FAILED on iteration {iteration}:")
        for line in lines:
            print(line)
        return False

    def _passed(self, number, suffix=""):
        print(f"Property {number} passed all {self.iterations} iterations{suffix}")
        return True

    # Property 1: Complete Date Coverage
    def check_complete_date_coverage(self):
        for i in range(self.iterations):
            today = local_today()
            test_appointments = self.generate_random_appointments(today)
            appointment_dates = {a['start_time'].strftime("%Y-%m-%d") for a in test_appointments}

            rows = [{'start_time': a['start_time']} for a in test_appointments]
            data = AppointmentAnalyticsService.get_next_7_days_appointment_counts(today, StaticDatabase(rows))
            date_range, labels, counts = data['date_range'], data['labels'], data['counts']

            if len(date_range) != ANALYTICS_DAYS:
                return self._fail(i, f"Expected {ANALYTICS_DAYS} data points, got: {len(date_range)}")

            expected_range = [(today + timedelta(days=n)).isoformat() for n in range(ANALYTICS_DAYS)]
            if date_range != expected_range:
                return self._fail(i, "Date range not consecutive or not starting from today",
                                  f"Date range: {json.dumps(date_range)}")

            if len(labels) != len(counts) or len(counts) != len(date_range):
                return self._fail(i, "Labels and counts arrays have different lengths",
                                  f"Labels length: {len(labels)}", f"Counts length: {len(counts)}")

            missing_days = [day for day in date_range if day not in appointment_dates]
            if any(counts[date_range.index(day)] != 0 for day in missing_days):
                return self._fail(i, "Missing days not filled with zero counts",
                                  f"Expected missing days: {json.dumps(missing_days)}",
                                  f"Actual counts: {json.dumps(counts)}")

            expected = calculate_expected_counts(date_range, [row['start_time'] for row in rows])
            if counts != expected:
                return self._fail(i, "Counts do not match the appointments on each day",
                                  f"Expected counts: {json.dumps(expected)}",
                                  f"Actual counts: {json.dumps(counts)}")

        return self._passed(1)

    # Property 2: Data Consistency
    def check_data_consistency(self):
        database = self.database or get_database()
        database.create_schema()

        for i in range(self.iterations):
            today = local_today()
            test_appointments = self.generate_random_appointments(today)
            patient_ids = self.get_or_create_test_patients(database)
            if not patient_ids:
                return self._fail(i, "Could not create test patients")

            for appointment in test_appointments:
                appointment['patient_id'] = self.rng.choice(patient_ids)

            try:
                self.setup_test_appointments(database, test_appointments)

                date_range = AppointmentAnalyticsService.generate_next_7_days_range(today)
                stored = database.fetch_all(select(appointments.c.start_time))
                expected = calculate_expected_counts(date_range, [row['start_time'] for row in stored])

                analytics = AppointmentAnalyticsService.get_analytics_data(today, database)
                actual = json.loads(analytics['json_counts'])

                if len(actual) != ANALYTICS_DAYS:
                    return self._fail(i, "Not all dates in range are represented",
                                      f"Missing dates: {json.dumps(date_range[len(actual):])}")

                if actual != expected:
                    mismatches = [
                        {'date': day, 'expected': e, 'actual': a}
                        for day, e, a in zip(date_range, expected, actual) if e != a
                    ]
                    return self._fail(i, "Analytics counts don't match database counts",
                                      f"Expected counts: {json.dumps(expected)}",
                                      f"Actual counts: {json.dumps(actual)}",
                                      f"Mismatches: {json.dumps(mismatches)}")
            finally:
                self.cleanup_test_data(database)

        return self._passed(2)

    # Property 3: Date Label Accuracy
    def check_date_label_accuracy(self):
        for i in range(self.iterations):
            test_dates = self.generate_random_date_range()
            labels = AppointmentAnalyticsService.generate_date_labels(test_dates)

            if len(labels) != len(test_dates):
                return self._fail(i, f"Expected {len(test_dates)} labels, got {len(labels)}")

            inaccurate = []
            for day, label in zip(test_dates, labels):
                expected = pd.Timestamp(day).day_name()[:3]
                if label != expected:
                    inaccurate.append({'date': day, 'expected': expected, 'actual': label})
            if inaccurate:
                return self._fail(i, f"Inaccurate labels: {json.dumps(inaccurate)}")

            invalid = [label for label in labels if len(label) != 3 or label not in DAY_NAMES]
            if invalid:
                return self._fail(i, f"Invalid day labels: {json.dumps(invalid)}")

        return self._passed(3)

    # Property 4: Chart Rendering Integrity
    def check_chart_rendering_integrity(self):
        for i in range(self.iterations):
            labels, data = self.generate_random_labels_and_counts()
            config = build_chart_config(labels, data)

            errors = validate_chart_config(config)
            if errors:
                return self._fail(i, "Invalid Chart.js configuration", f"Config errors: {json.dumps(errors)}")

            bars = config['data']['datasets'][0]['data']
            if len(bars) != len(data) or len(config['data']['labels']) != len(bars):
                return self._fail(i, f"Expected bars: {len(data)}", f"Actual bars: {len(bars)}")

            proportions = calculate_bar_proportions(bars)
            max_value = max(data)
            for value, proportion in zip(data, proportions):
                expected = value / max_value if max_value > 0 else 0
                if abs(proportion - expected) > 0.001:
                    return self._fail(i, "Bar heights not proportional to data values",
                                      f"Data values: {json.dumps(data)}",
                                      f"Height proportions: {json.dumps(proportions)}")

            zero_issues = [
                f"Zero value at index {n} was modified: {bars[n]}"
                for n, value in enumerate(data) if value == 0 and bars[n] != 0
            ]
            zero_issues += [f"Negative value found: {value}" for value in bars if value < 0]
            if zero_issues:
                return self._fail(i, "Chart does not handle zero values correctly",
                                  f"Zero value issues: {json.dumps(zero_issues)}")

        return self._passed(4)

    # Property 5: Error Handling Graceful Degradation
    def check_error_handling_graceful_degradation(self):
        for i in range(self.iterations):
            for scenario in ERROR_SCENARIOS:
                result = AppointmentAnalyticsService.get_analytics_data(database=FailingDatabase(scenario))
                name = scenario['name']

                missing = [key for key in FALLBACK_KEYS if key not in result]
                if missing:
                    return self._fail(i, f"scenario: {name}", f"Invalid structure returned: {json.dumps(missing)}")

                if len(result['labels']) != len(result['counts']):
                    return self._fail(i, f"scenario: {name}", "Array length inconsistency in fallback data")

                if len(result['labels']) != ANALYTICS_DAYS or any(count != 0 for count in result['counts']):
                    return self._fail(i, f"scenario: {name}",
                                      f"Fallback should be {ANALYTICS_DAYS} zero counts, got {json.dumps(result['counts'])}")

                if result.get('is_fallback') is not True:
                    return self._fail(i, f"scenario: {name}", "Missing error indication flag")

                try:
                    decoded_labels = json.loads(result['json_labels'])
                    decoded_counts = json.loads(result['json_counts'])
                except ValueError as e:
                    return self._fail(i, f"scenario: {name}", f"Invalid JSON in fallback data: {e}")
                if decoded_labels != result['labels'] or decoded_counts != result['counts']:
                    return self._fail(i, f"scenario: {name}", "Fallback JSON does not match fallback arrays")

        return self._passed(5, " across multiple error scenarios")

    # Property 6: JSON Data Format Consistency
    def check_json_data_format_consistency(self):
        for i in range(self.iterations):
            labels, counts = self.generate_random_labels_and_counts()
            formatted = AppointmentAnalyticsService.format_data_for_chart(labels, counts)

            missing = [key for key in ('json_labels', 'json_counts') if key not in formatted]
            if missing:
                return self._fail(i, f"Missing arrays: {json.dumps(missing)}")

            try:
                decoded_labels = json.loads(formatted['json_labels'])
                decoded_counts = json.loads(formatted['json_counts'])
            except ValueError as e:
                return self._fail(i, f"Invalid JSON: {e}")

            if len(decoded_labels) != len(decoded_counts):
                return self._fail(i, f"Labels length: {len(decoded_labels)}", f"Counts length: {len(decoded_counts)}")

            if decoded_labels != labels or decoded_counts != counts:
                return self._fail(i, f"Original labels: {json.dumps(labels)}",
                                  f"Decoded labels: {json.dumps(decoded_labels)}",
                                  f"Original counts: {json.dumps(counts)}",
                                  f"Decoded counts: {json.dumps(decoded_counts)}")

        return self._passed(6)

    def generate_random_appointments(self, today):
        """0 to 20 appointments between 8 AM and 5 PM over the next 7 days"""
        result = []
        for n in range(self.rng.randint(0, 20)):
            day = today + timedelta(days=self.rng.randint(0, ANALYTICS_DAYS - 1))
            start = datetime.combine(day, time.min) + timedelta(seconds=self.rng.randint(8 * 3600, 17 * 3600))
            result.append({
                'start_time': start,
                'patient_id': None,
                'doctor_name': f"Dr. Test {n % 5 + 1}"
            })
        return result

    def generate_random_date_range(self):
        start = local_today() + timedelta(days=self.rng.randint(-30, 30))
        return [(start + timedelta(days=n)).isoformat() for n in range(self.rng.randint(1, 14))]

    def generate_random_labels_and_counts(self):
        length = self.rng.randint(1, 14)
        labels = [self.rng.choice(DAY_NAMES) for _ in range(length)]
        counts = [self.rng.randint(0, 50) for _ in range(length)]
        return labels, counts

    def get_or_create_test_patients(self, database):
        existing = database.fetch_all(select(patients.c.id).limit(5))
        if existing:
            return [row['id'] for row in existing]

        created = []
        with database.transaction():
            for n in range(1, 4):
                database.execute_update(patients.insert().values(
                    name=f"{TEST_PATIENT_PREFIX} {n}",
                    ic_number="%06d-%02d-%04d" % (
                        self.rng.randint(800000, 999999), self.rng.randint(10, 99), self.rng.randint(1000, 9999)
                    ),
                    diagnosis="Test diagnosis for analytics",
                    phone=f"012{self.rng.randint(1000000, 9999999)}"
                ))
                created.append(database.last_insert_id)
        return created

    def setup_test_appointments(self, database, test_appointments):
        self.cleanup_test_appointments(database)
        if not test_appointments:
            return

        with database.transaction():
            for appointment in test_appointments:
                start = appointment['start_time']
                database.execute_update(appointments.insert().values(
                    patient_id=appointment['patient_id'],
                    doctor_name=appointment['doctor_name'],
                    reason=TEST_REASON,
                    start_time=start,
                    end_time=start + timedelta(hours=1),
                    appointment_date=start.date()
                ))

    def cleanup_test_appointments(self, database):
        database.execute_update(delete(appointments).where(appointments.c.reason == TEST_REASON))

    def cleanup_test_data(self, database):
        self.cleanup_test_appointments(database)
        database.execute_update(delete(patients).where(patients.c.name.like(f"{TEST_PATIENT_PREFIX} %")))


PROPERTY_CHECKS = {
    'complete_date_coverage': ("Property 1: Complete Date Coverage",
                               VisualAnalyticsProperties.check_complete_date_coverage),
    'data_consistency': ("Property 2: Data Consistency",
                         VisualAnalyticsProperties.check_data_consistency),
    'date_label_accuracy': ("Property 3: Date Label Accuracy",
                            VisualAnalyticsProperties.check_date_label_accuracy),
    'chart_rendering_integrity': ("Property 4: Chart Rendering Integrity",
                                  VisualAnalyticsProperties.check_chart_rendering_integrity),
    'error_handling_graceful_degradation': ("Property 5: Error Handling Graceful Degradation",
                                            VisualAnalyticsProperties.check_error_handling_graceful_degradation),
    'json_data_format_consistency': ("Property 6: JSON Data Format Consistency",
                                     VisualAnalyticsProperties.check_json_data_format_consistency),
}
