import streamlit as st
import plotly.express as px
import pandas as pd
from config import CHART_THEME


def format_appointment_count(count):
    """Format a count the way the chart tooltip does ("1 appointment", "3 appointments")"""
    return f"{count} appointment" + ("" if count == 1 else "s")


def build_chart_config(labels, data):
    """
    Build the Chart.js bar chart configuration for the weekly workload

    Args:
        labels: Day labels, one per bar
        data: Appointment counts, one per bar

    Returns:
        Dictionary ready to be serialised into the page for Chart.js
    """
    if len(labels) != len(data):
        raise ValueError("Chart labels and data must have equal length")

    return {
        'type': 'bar',
        'data': {
            'labels': list(labels),
            'datasets': [{
                'label': 'Appointments',
                'data': list(data),
                'backgroundColor': CHART_THEME['BAR_COLOR'],
                'borderColor': CHART_THEME['BAR_BORDER_COLOR'],
                'borderWidth': CHART_THEME['BORDER_WIDTH'],
                'borderRadius': CHART_THEME['BORDER_RADIUS'],
                'borderSkipped': False
            }]
        },
        'options': {
            'responsive': True,
            'maintainAspectRatio': False,
            'plugins': {
                'legend': {'display': False},
                'tooltip': {
                    'callbacks': {
                        'label': 'function(context) { return context.parsed.y + " appointment" + (context.parsed.y !== 1 ? "s" : ""); }'
                    }
                }
            },
            'scales': {
                'y': {
                    'beginAtZero': True,
                    'ticks': {'stepSize': 1}
                }
            }
        }
    }


def calculate_bar_proportions(data):
    """Height of each bar relative to the tallest one"""
    if not data:
        return []
    max_value = max(data)
    if max_value <= 0:
        return [0] * len(data)
    return [value / max_value for value in data]


def create_weekly_workload_chart(analytics_data):
    """Plotly bar chart of appointments per day for the dashboard"""
    df = pd.DataFrame({
        "Day": analytics_data['labels'],
        "Date": analytics_data['date_range'],
        "Appointments": analytics_data['counts']
    })

    is_fallback = analytics_data.get('is_fallback', False)
    title = "Appointments - Next 7 Days"
    if is_fallback:
        title += " (data unavailable)"

    fig = px.bar(
        df,
        x="Day",
        y="Appointments",
        title=title,
        hover_data=["Date"],
        text="Appointments"
    )
    fig.update_traces(
        marker_color=CHART_THEME['FALLBACK_COLOR'] if is_fallback else CHART_THEME['BAR_COLOR'],
        marker_line_color=CHART_THEME['BAR_BORDER_COLOR'],
        marker_line_width=CHART_THEME['BORDER_WIDTH']
    )
    fig.update_layout(
        plot_bgcolor=CHART_THEME['BACKGROUND_COLOR'],
        font_color=CHART_THEME['TEXT_COLOR'],
        showlegend=False,
        yaxis=dict(rangemode="tozero", dtick=1)
    )
    return fig


def render_weekly_workload(analytics_data):
    """Render the weekly workload section in Streamlit"""
    if analytics_data.get('is_fallback'):
        st.warning("⚠️ Appointment data could not be loaded. Showing an empty week.")

    counts = analytics_data['counts']
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Appointments (7 days)", sum(counts))
    with col2:
        busiest = max(range(len(counts)), key=lambda i: counts[i]) if counts else None
        st.metric("Busiest Day", analytics_data['labels'][busiest] if busiest is not None and counts[busiest] else "-")
    with col3:
        st.metric("Free Days", sum(1 for count in counts if count == 0))

    fig = create_weekly_workload_chart(analytics_data)
    st.plotly_chart(fig, use_container_width=True)
