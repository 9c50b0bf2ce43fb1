"""
Data Service for Dashboard Charts
Serves the appointment analytics to the dashboard over HTTP
"""
import argparse
import logging
import socket

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from appointment_analytics import DEFAULT_ACTION, AppointmentAnalyticsService
from config import DATA_SERVICE_HOST, DATA_SERVICE_PORT, configure_logging

logger = logging.getLogger(__name__)

DISPATCHER_NAME = "data"
PORT_ATTEMPTS = 10

app = FastAPI(title="Clinic Appointment Analytics")


@app.get("/data")
def data(action: str = DEFAULT_ACTION):
    status_code, body = AppointmentAnalyticsService.handle_ajax_request(action)
    return JSONResponse(status_code=status_code, content=body)


def run_data_service():
    """Start the data service on the first free port"""
    import uvicorn

    for port in range(DATA_SERVICE_PORT, DATA_SERVICE_PORT + PORT_ATTEMPTS):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((DATA_SERVICE_HOST, port))
        except OSError:
            logger.debug("Port %s is busy", port)
            continue
        finally:
            sock.close()
        # Port is available, use it
        logger.info("Starting data service on %s:%s", DATA_SERVICE_HOST, port)
        uvicorn.run(app, host=DATA_SERVICE_HOST, port=port, log_level="warning")
        return
    logger.error("No free port between %s and %s", DATA_SERVICE_PORT, DATA_SERVICE_PORT + PORT_ATTEMPTS - 1)


ENTRY_POINTS = {
    DISPATCHER_NAME: run_data_service,
}


def dispatch(mode, entry_points=None):
    """
    Run the entry point for mode

    Only the dispatcher's own name starts anything; any other mode is a no-op
    so the module can be imported and reused freely.

    Returns:
        True if a handler was invoked
    """
    entry_points = ENTRY_POINTS if entry_points is None else entry_points
    if mode != DISPATCHER_NAME or mode not in entry_points:
        logger.debug("Nothing to run for mode %r", mode)
        return False
    entry_points[mode]()
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description="Clinic appointment analytics data service")
    parser.add_argument("mode", nargs="?", default=DISPATCHER_NAME, help="entry point to run")
    args = parser.parse_args(argv)

    configure_logging()
    dispatch(args.mode)


if __name__ == "__main__":
    main()
