import duckdb
import logging
from typing import Optional

from .connection import ConnectionHandler, transaction
from . import schema
from ..exceptions import DatabaseConnectionError, SchemaInitializationError
from .. import config as flashdeck_config

logger = logging.getLogger(__name__)

_TABLES_IN_DROP_ORDER = ("session_records", "cards", "decks")


class SchemaManager:
    """Creates and, on request, recreates the flashdeck tables."""

    def __init__(
        self, handler: ConnectionHandler, testing_mode: Optional[bool] = None
    ):
        self._handler = handler
        self._testing_mode = testing_mode

    @property
    def testing_mode(self) -> bool:
        if self._testing_mode is not None:
            return self._testing_mode
        return flashdeck_config.settings.testing_mode

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Create the schema inside one transaction. Forced recreation drops every
        table first and refuses to run against a store that holds data.
        """
        if self._skip_for_read_only(force_recreate_tables):
            return

        location = self._handler.db_path_resolved
        try:
            with transaction(self._handler.get_connection(), "schema setup") as cursor:
                if force_recreate_tables:
                    self._recreate_tables(cursor)
                cursor.execute(schema.DB_SCHEMA_SQL)
        except duckdb.Error as e:
            logger.error(f"Could not create the flashdeck schema at {location}: {e}")
            raise SchemaInitializationError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e
        logger.info(f"Schema ready at {location}")

    def _skip_for_read_only(self, force_recreate_tables: bool) -> bool:
        """True when the store is read-only and the schema must be left alone."""
        if not self._handler.read_only:
            return False
        if force_recreate_tables:
            raise DatabaseConnectionError(
                "A read-only store cannot have its tables recreated."
            )
        # A read-only in-memory store is empty, so it still needs tables.
        if self._handler.is_memory:
            return False
        logger.warning(
            f"Store at {self._handler.db_path_resolved} is read-only; "
            "leaving the schema as it is."
        )
        return True

    def _ensure_no_data_loss(self, cursor: duckdb.DuckDBPyConnection) -> None:
        """Refuses to drop tables that still hold cards or session records."""
        if self._handler.is_memory or self.testing_mode:
            return

        existing = {
            row[0]
            for row in cursor.execute(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_name IN ('session_records', 'cards');"
            ).fetchall()
        }
        counts = {}
        for table in sorted(existing):
            row = cursor.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
            counts[table] = row[0] if row else 0

        if any(counts.values()):
            detail = ", ".join(f"{table}: {n}" for table, n in counts.items())
            message = f"Refusing to drop tables that still hold data ({detail})."
            logger.error(message)
            raise ValueError(message)

    def _recreate_tables(self, cursor: duckdb.DuckDBPyConnection) -> None:
        self._ensure_no_data_loss(cursor)
        logger.warning(
            f"Dropping every flashdeck table at {self._handler.db_path_resolved}; "
            "existing decks and history are lost."
        )
        for table in _TABLES_IN_DROP_ORDER:
            cursor.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
        cursor.execute("DROP SEQUENCE IF EXISTS session_record_seq;")
