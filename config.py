import os
import logging
from dotenv import load_dotenv
import pytz

load_dotenv()

# Database Configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///clinic.db")

# Application Settings
DEBUG = os.getenv("DEBUG", "False").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()
LOCAL_TZ = pytz.timezone(os.getenv("TZ", "Asia/Kuala_Lumpur"))
APP_TAGLINE = "Weekly appointment workload for the clinic"

# Data Service
DATA_SERVICE_HOST = os.getenv("DATA_SERVICE_HOST", "0.0.0.0")
DATA_SERVICE_PORT = int(os.getenv("DATA_SERVICE_PORT", "8000"))
DATA_SERVICE_URL = os.getenv("DATA_SERVICE_URL")
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "10"))

# Analytics
ANALYTICS_DAYS = 7
PROPERTY_ITERATIONS = int(os.getenv("PROPERTY_ITERATIONS", "100"))

# Chart Theme (shared by the Chart.js config and the plotly dashboard chart)
CHART_THEME = {
    'BAR_COLOR': '#3b82f6',
    'BAR_BORDER_COLOR': '#2563eb',
    'BORDER_WIDTH': 1,
    'BORDER_RADIUS': 4,
    'TEXT_COLOR': '#1a1a1a',
    'FALLBACK_COLOR': '#9ca3af',
    'BACKGROUND_COLOR': '#ffffff'
}

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_logging_configured = False


def configure_logging(level=None):
    """Configure root logging once for scripts and the data service"""
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
    _logging_configured = True
