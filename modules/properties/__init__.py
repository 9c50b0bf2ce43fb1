# This file makes the properties directory a Python package
from modules.properties.visual_analytics import (
    PROPERTY_CHECKS,
    VisualAnalyticsProperties,
    validate_chart_config,
)

__all__ = [
    'PROPERTY_CHECKS',
    'VisualAnalyticsProperties',
    'validate_chart_config'
]
