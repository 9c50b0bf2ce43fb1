"""
Database access for the clinic appointment analytics.

Wraps a SQLAlchemy engine and exposes the small set of query helpers the
analytics service, the seeder and the property suite need.
"""
import logging
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
)
from sqlalchemy.exc import SQLAlchemyError

from config import DATABASE_URL

logger = logging.getLogger(__name__)

metadata = MetaData()

patients = Table(
    "patients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("ic_number", String(20)),
    Column("diagnosis", Text),
    Column("phone", String(20)),
    Column("created_at", DateTime, default=datetime.now),
)

appointments = Table(
    "appointments",
    metadata,
    Column("appointment_id", Integer, primary_key=True, autoincrement=True),
    Column("patient_id", Integer, ForeignKey("patients.id")),
    Column("doctor_name", String(100)),
    Column("reason", Text),
    Column("start_time", DateTime, nullable=False),
    Column("end_time", DateTime),
    Column("appointment_date", Date),
)


class DatabaseError(Exception):
    """Raised when a query fails; the message is safe to show to users"""


class Database:
    GENERIC_ERROR = "Database operation failed. Please try again later."

    def __init__(self, engine=None, url=None):
        self.engine = engine if engine is not None else create_engine(url or DATABASE_URL)
        self.last_insert_id = None
        self._connection = None

    def create_schema(self):
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error("Schema creation failed: %s", e)
            raise DatabaseError(self.GENERIC_ERROR) from e

    @contextmanager
    def transaction(self):
        """Run every statement inside the block on one connection, committing at the end"""
        if self._connection is not None:
            # Nested blocks join the outer transaction
            yield self._connection
            return
        try:
            with self.engine.begin() as conn:
                self._connection = conn
                try:
                    yield conn
                finally:
                    self._connection = None
        except SQLAlchemyError as e:
            logger.error("Transaction failed and was rolled back: %s", e)
            raise DatabaseError(self.GENERIC_ERROR) from e

    def _run(self, statement, params, consume):
        try:
            if self._connection is not None:
                return consume(self._connection.execute(statement, params or {}))
            with self.engine.begin() as conn:
                return consume(conn.execute(statement, params or {}))
        except SQLAlchemyError as e:
            logger.error("Query execution failed: %s", e)
            raise DatabaseError(self.GENERIC_ERROR) from e

    def fetch_all(self, statement, params=None):
        """Execute a SELECT and return every row as a dict"""
        return self._run(statement, params, lambda result: [dict(row) for row in result.mappings()])

    def fetch_one(self, statement, params=None):
        rows = self.fetch_all(statement, params)
        return rows[0] if rows else None

    def execute_update(self, statement, params=None):
        """Execute an INSERT, UPDATE or DELETE and return the affected row count"""
        return self._run(statement, params, self._consume_update)

    def _consume_update(self, result):
        if result.is_insert and result.inserted_primary_key:
            self.last_insert_id = result.inserted_primary_key[0]
        return result.rowcount


_default_database = None


def get_database():
    """Return the process-wide database, creating it from DATABASE_URL on first use"""
    global _default_database
    if _default_database is None:
        _default_database = Database()
    return _default_database


def set_database(database):
    global _default_database
    _default_database = database
