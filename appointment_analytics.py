"""
Appointment Analytics Service for the weekly workload chart.

Counts appointments for the next seven days, turns them into chart-ready
labels and counts, and answers the AJAX requests made by the dashboard.
"""
import json
import logging
from datetime import date, datetime, time, timedelta

import pandas as pd
from sqlalchemy import select

from config import ANALYTICS_DAYS, LOCAL_TZ
from db import DatabaseError, appointments, get_database
from visualizations import build_chart_config

logger = logging.getLogger(__name__)

DAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
DEFAULT_ACTION = "weekly_counts"


class AnalyticsError(Exception):
    """Raised when analytics data cannot be produced"""


def local_today():
    return datetime.now(LOCAL_TZ).date()


def to_json_array(values):
    """Compact JSON array, the format Chart.js receives in the page"""
    return json.dumps(list(values), separators=(",", ":"))


class AppointmentAnalyticsService:

    @staticmethod
    def get_next_7_days_appointment_counts(today=None, database=None):
        """
        Get appointment counts for the next 7 days

        Every day in the range is present; days with no appointments get 0.

        Args:
            today: First day of the range, defaults to today in the clinic timezone
            database: Database to query, defaults to the process-wide one

        Returns:
            Dictionary with 'labels', 'counts' and 'date_range'
        """
        try:
            date_range = AppointmentAnalyticsService.generate_next_7_days_range(today)
            database = database or get_database()

            window_start = datetime.combine(date.fromisoformat(date_range[0]), time.min)
            window_end = window_start + timedelta(days=ANALYTICS_DAYS)
            query = (
                select(appointments.c.start_time)
                .where(appointments.c.start_time >= window_start)
                .where(appointments.c.start_time < window_end)
            )
            rows = database.fetch_all(query)

            df = pd.DataFrame(rows, columns=["start_time"])
            if df.empty:
                counts_by_date = {}
            else:
                df["app_date"] = pd.to_datetime(df["start_time"]).dt.strftime("%Y-%m-%d")
                counts_by_date = df.groupby("app_date").size().to_dict()

            counts = [int(counts_by_date.get(day, 0)) for day in date_range]
            labels = AppointmentAnalyticsService.generate_date_labels(date_range)

            return {
                'labels': labels,
                'counts': counts,
                'date_range': date_range
            }

        except DatabaseError as e:
            logger.error("Database error in appointment analytics: %s", e)
            raise AnalyticsError("Database connection failed while retrieving analytics data") from e
        except Exception as e:
            logger.error("Appointment analytics query failed: %s", e)
            raise AnalyticsError("Unable to retrieve appointment analytics data") from e

    @staticmethod
    def generate_next_7_days_range(today=None):
        """Dates (YYYY-MM-DD) of the next 7 days, starting with today"""
        start = today or local_today()
        return [(start + timedelta(days=offset)).isoformat() for offset in range(ANALYTICS_DAYS)]

    @staticmethod
    def generate_date_labels(dates):
        """
        Convert dates to abbreviated day names (Mon, Tue, ...)

        A value that cannot be parsed as a date is used as its own label.
        """
        labels = []
        for value in dates:
            try:
                if not isinstance(value, (str, date)):
                    raise TypeError(f"Not a date: {value!r}")
                day = pd.Timestamp(value)
                if pd.isna(day):
                    raise ValueError(f"Not a date: {value!r}")
                labels.append(DAY_ABBREVIATIONS[day.weekday()])
            except (TypeError, ValueError):
                labels.append(value)
        return labels

    @staticmethod
    def format_data_for_chart(labels, counts):
        if len(labels) != len(counts):
            raise AnalyticsError("Labels and counts arrays must have equal length")

        return {
            'json_labels': to_json_array(labels),
            'json_counts': to_json_array(counts)
        }

    @staticmethod
    def get_analytics_data(today=None, database=None):
        """Complete analytics data for the chart, or fallback data if anything fails"""
        try:
            data = AppointmentAnalyticsService.get_next_7_days_appointment_counts(today, database)
            chart_data = AppointmentAnalyticsService.format_data_for_chart(data['labels'], data['counts'])
        except AnalyticsError as e:
            logger.warning("Analytics data processing failed, serving fallback: %s", e)
            return AppointmentAnalyticsService.get_fallback_analytics_data(today)

        return {**data, **chart_data, 'is_fallback': False}

    @staticmethod
    def get_fallback_analytics_data(today=None):
        """
        Zero-count analytics used when the database cannot be read

        Keeps the same structure as the live data so the dashboard layout
        does not break, with 'is_fallback' set.
        """
        date_range = AppointmentAnalyticsService.generate_next_7_days_range(today)
        labels = AppointmentAnalyticsService.generate_date_labels(date_range)
        counts = [0] * len(date_range)

        chart_data = AppointmentAnalyticsService.format_data_for_chart(labels, counts)

        return {
            'labels': labels,
            'counts': counts,
            'date_range': date_range,
            'json_labels': chart_data['json_labels'],
            'json_counts': chart_data['json_counts'],
            'is_fallback': True
        }

    @staticmethod
    def get_chart_config(today=None, database=None):
        data = AppointmentAnalyticsService.get_analytics_data(today, database)
        config = build_chart_config(data['labels'], data['counts'])
        config['is_fallback'] = data['is_fallback']
        return config

    @staticmethod
    def handle_ajax_request(action=DEFAULT_ACTION, database=None):
        """
        Handle one dashboard AJAX request

        Args:
            action: Name of the requested data, one of AJAX_ACTIONS
            database: Database to read from

        Returns:
            Tuple of (HTTP status code, JSON-serialisable body)
        """
        handler = AJAX_ACTIONS.get(action)
        if handler is None:
            logger.warning("Rejected unknown analytics action: %s", action)
            return 400, {'success': False, 'error': f"Unknown action '{action}'"}

        logger.debug("Handling analytics action %s", action)
        return 200, {'success': True, 'action': action, 'data': handler(database=database)}


AJAX_ACTIONS = {
    'weekly_counts': AppointmentAnalyticsService.get_analytics_data,
    'chart_config': AppointmentAnalyticsService.get_chart_config,
    'fallback': lambda database=None: AppointmentAnalyticsService.get_fallback_analytics_data(),
}
