import duckdb
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


@contextmanager
def transaction(
    conn: duckdb.DuckDBPyConnection, context: str
) -> Iterator[duckdb.DuckDBPyConnection]:
    """
    Run a block inside one transaction on a fresh cursor of ``conn``.

    Commits when the block finishes; rolls back and re-raises on any error.
    """
    cursor = conn.cursor()
    try:
        cursor.begin()
        yield cursor
        cursor.commit()
    except Exception:
        try:
            cursor.rollback()
            logger.info(f"Transaction rolled back after {context} error.")
        except duckdb.Error as rb_err:
            logger.error(f"Failed to roll back {context} transaction: {rb_err}")
        raise
    finally:
        cursor.close()


class ConnectionHandler:
    """Owns a single DuckDB connection for the flashdeck store."""

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Parameters:
            db_path (Union[str, Path]): DuckDB file path, or ":memory:" for a transient database.
            read_only (bool): Open the database read-only.
        """
        if isinstance(db_path, str) and db_path.lower() == MEMORY_DB:
            self.db_path_resolved = Path(MEMORY_DB)
        else:
            self.db_path_resolved = Path(db_path).expanduser().resolve()

        self.read_only: bool = read_only
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        # True when the connection created the database (schema still missing).
        self.is_new_db: bool = False

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == MEMORY_DB

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, connecting lazily on first use.

        Raises:
            DatabaseConnectionError: If DuckDB cannot open the database.
        """
        if self._connection is not None:
            return self._connection

        try:
            if self.is_memory:
                self.is_new_db = True
            else:
                self.is_new_db = not self.db_path_resolved.exists()
                if not self.read_only:
                    self.db_path_resolved.parent.mkdir(
                        parents=True, exist_ok=True
                    )

            self._connection = duckdb.connect(
                database=str(self.db_path_resolved),
                read_only=self.read_only,
            )
            logger.info(f"Connected to flashdeck store at {self.db_path_resolved}")
        except duckdb.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to database: {e}", original_exception=e
            ) from e
        return self._connection

    def close_connection(self) -> None:
        """Close the connection if open; a later get_connection reconnects."""
        if not self._connection:
            return
        try:
            self._connection.close()
            logger.info(f"Closed flashdeck store at {self.db_path_resolved}")
        except duckdb.Error as e:
            logger.error(f"Error closing the database connection: {e}")
        finally:
            self._connection = None

    def __enter__(self) -> duckdb.DuckDBPyConnection:
        return self.get_connection()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()
