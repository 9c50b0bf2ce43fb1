import streamlit as st
import requests

from config import APP_TAGLINE, DATA_SERVICE_URL, REQUEST_TIMEOUT, configure_logging
from appointment_analytics import AppointmentAnalyticsService, DEFAULT_ACTION
from visualizations import format_appointment_count, render_weekly_workload


def fetch_analytics_data(base_url=DATA_SERVICE_URL):
    """
    Load the weekly workload data for the dashboard

    Uses the data service when DATA_SERVICE_URL is configured, otherwise the
    analytics service directly. Any failure gives fallback data.
    """
    if not base_url:
        return AppointmentAnalyticsService.get_analytics_data()

    try:
        response = requests.get(
            f"{base_url.rstrip('/')}/data",
            params={'action': DEFAULT_ACTION},
            timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("Malformed response from the data service")
        if not body.get('success'):
            raise ValueError(body.get('error', 'Unknown error'))
        data = body.get('data')
        if not isinstance(data, dict) or 'counts' not in data or 'labels' not in data:
            raise ValueError("Malformed analytics data from the data service")
        return data
    except (requests.RequestException, ValueError) as e:
        st.error(f"Could not load appointment data from the data service: {str(e)}")
        return AppointmentAnalyticsService.get_fallback_analytics_data()


def render_dashboard():
    """Render the clinic dashboard"""
    st.title("🏥 Clinic Dashboard")
    st.caption(APP_TAGLINE)

    if st.button("🔄 Refresh"):
        st.session_state.analytics_data = None

    if st.session_state.get('analytics_data') is None:
        with st.spinner("📊 Loading appointment data..."):
            st.session_state.analytics_data = fetch_analytics_data()

    analytics_data = st.session_state.analytics_data
    st.subheader("Weekly Workload")
    st.write(f"Today: {format_appointment_count(analytics_data['counts'][0])}")
    render_weekly_workload(analytics_data)


if __name__ == "__main__":
    configure_logging()
    st.set_page_config(
        page_title="Clinic Dashboard",
        page_icon="🏥",
        layout="wide",
        initial_sidebar_state="expanded"
    )
    render_dashboard()
