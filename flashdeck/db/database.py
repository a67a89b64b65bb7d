"""
DuckDB database interactions for flashdeck.
Implements the FlashcardDatabase facade over decks, cards and session records.
"""

import duckdb
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..exceptions import (
    CardOperationError,
    DatabaseConnectionError,
    DeckNotFoundError,
    MarshallingError,
    SessionRecordOperationError,
)
from ..models import Card, Deck, SessionRecord
from . import db_utils
from .connection import ConnectionHandler, transaction
from .schema_manager import SchemaManager

# --- Logging Setup ---
logger = logging.getLogger(__name__)

# --- Helper Functions ---


def _rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


class FlashcardDatabase:
    """
    Acts as a Facade for the database subsystem: decks and their ordered cards
    on one side, the append-only session_records log on the other.

    Intended for use as a context manager.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        read_only: bool = False,
        testing_mode: Optional[bool] = None,
    ):
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler, testing_mode=testing_mode)
        # Serializes worker-thread access; a DuckDB connection is not thread-safe.
        self.lock = threading.RLock()
        logger.info(
            f"FlashcardDatabase initialized for DB at: {self._handler.db_path_resolved}"
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    @property
    def read_only(self) -> bool:
        return self._handler.read_only

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self._handler.get_connection()

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "FlashcardDatabase":
        """Open the connection, creating the schema for a brand-new writable store."""
        self.get_connection()
        if self._handler.is_new_db and not self._handler.read_only:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    def _require_writable(self, action: str) -> None:
        if self.read_only:
            raise DatabaseConnectionError(f"Cannot {action} in read-only mode.")

    # --- Deck & Card Operations ---

    _UPSERT_DECK_SQL = """
        INSERT INTO decks (deck_id, title, created_at)
        VALUES (?, ?, ?)
        ON CONFLICT (deck_id) DO UPDATE SET title = EXCLUDED.title;
    """

    _INSERT_CARD_SQL = """
        INSERT INTO cards (card_id, deck_id, position, front, back,
                           front_media_key, back_media_key)
        VALUES (?, ?, ?, ?, ?, ?, ?);
    """

    def upsert_deck(self, deck: Deck, cards: Sequence[Card]) -> int:
        """
        Insert or replace a deck together with its full, ordered card list.

        The deck's previous cards are removed so positions always match the
        order of ``cards``.

        Returns:
            int: Number of cards written.

        Raises:
            CardOperationError: If marshalling or the database write fails.
        """
        self._require_writable("save a deck")
        try:
            card_params = db_utils.cards_to_db_params_list(deck.deck_id, cards)
        except MarshallingError as e:
            raise CardOperationError(
                "Failed to prepare card data for database operation.",
                original_exception=e,
            ) from e

        conn = self.get_connection()
        try:
            with transaction(conn, "deck upsert") as cursor:
                cursor.execute(
                    self._UPSERT_DECK_SQL,
                    (deck.deck_id, deck.title, deck.created_at),
                )
                cursor.execute("DELETE FROM cards WHERE deck_id = ?;", (deck.deck_id,))
                if card_params:
                    cursor.executemany(self._INSERT_CARD_SQL, card_params)
        except duckdb.Error as e:
            logger.error(f"Error saving deck {deck.deck_id}: {e}")
            raise CardOperationError(
                f"Failed to save deck: {e}", original_exception=e
            ) from e

        logger.info(f"Saved deck '{deck.title}' ({deck.deck_id}) with {len(card_params)} cards.")
        return len(card_params)

    def get_deck(self, deck_id: str) -> Optional[Deck]:
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                "SELECT deck_id, title, created_at FROM decks WHERE deck_id = ?;",
                (deck_id,),
            )
            rows = _rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error fetching deck {deck_id}: {e}")
            raise CardOperationError(
                f"Failed to fetch deck: {e}", original_exception=e
            ) from e
        if not rows:
            return None
        try:
            return db_utils.db_row_to_deck(rows[0])
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse deck {deck_id} from database.",
                original_exception=e,
            ) from e

    def get_deck_summaries(self) -> List[Dict[str, Any]]:
        """
        Return every deck with its card count, ordered by title.

        Returns:
            List[Dict[str, Any]]: Rows with keys deck_id, title, card_count.
        """
        conn = self.get_connection()
        sql = """
            SELECT d.deck_id, d.title, COUNT(c.card_id) AS card_count
            FROM decks d
            LEFT JOIN cards c ON c.deck_id = d.deck_id
            GROUP BY d.deck_id, d.title
            ORDER BY d.title;
        """
        try:
            return _rows_to_dicts(conn.execute(sql))
        except duckdb.Error as e:
            logger.error(f"Could not fetch deck summaries due to a database error: {e}")
            raise CardOperationError(
                "Could not fetch decks.", original_exception=e
            ) from e

    def get_cards_for_deck(self, deck_id: str) -> List[Card]:
        """
        Fetch a deck's cards in review order.

        Raises:
            DeckNotFoundError: If no deck with ``deck_id`` exists.
            CardOperationError: If the query or row conversion fails.
        """
        if self.get_deck(deck_id) is None:
            raise DeckNotFoundError(f"Deck '{deck_id}' not found.")

        conn = self.get_connection()
        sql = "SELECT * FROM cards WHERE deck_id = ? ORDER BY position;"
        try:
            rows = _rows_to_dicts(conn.execute(sql, (deck_id,)))
        except duckdb.Error as e:
            logger.error(f"Error fetching cards for deck {deck_id}: {e}")
            raise CardOperationError(
                f"Failed to fetch cards: {e}", original_exception=e
            ) from e
        try:
            cards = [db_utils.db_row_to_card(row) for row in rows]
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse cards for deck {deck_id}.",
                original_exception=e,
            ) from e
        logger.debug(f"Fetched {len(cards)} cards for deck {deck_id}")
        return cards

    # --- Session Record Operations ---

    _INSERT_SESSION_RECORD_SQL = """
        INSERT INTO session_records (user_id, deck_id, score, duration_seconds,
                                     is_focused, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        RETURNING record_id;
    """

    def add_session_record(self, record: SessionRecord) -> SessionRecord:
        """
        Append a session record.

        Returns:
            SessionRecord: A copy of ``record`` carrying the generated record_id.

        Raises:
            DatabaseConnectionError: If the database is read-only.
            SessionRecordOperationError: If the insert fails.
        """
        self._require_writable("add a session record")
        conn = self.get_connection()
        params = db_utils.session_record_to_db_params_tuple(record)
        try:
            with transaction(conn, "session record insert") as cursor:
                cursor.execute(self._INSERT_SESSION_RECORD_SQL, params)
                result = cursor.fetchone()
                if not result:
                    raise SessionRecordOperationError(
                        "Failed to retrieve record_id after insertion."
                    )
        except duckdb.Error as e:
            logger.error(f"Error adding session record for deck {record.deck_id}: {e}")
            raise SessionRecordOperationError(
                f"Failed to add session record: {e}", original_exception=e
            ) from e

        return record.model_copy(update={"record_id": result[0]})

    def _record_filters(
        self, user_id: Optional[str], deck_id: Optional[str]
    ) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            clauses.append("r.user_id = ?")
            params.append(user_id)
        if deck_id is not None:
            clauses.append("r.deck_id = ?")
            params.append(deck_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def get_session_records(
        self,
        user_id: Optional[str] = None,
        deck_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[SessionRecord]:
        """
        Return session records newest first.

        Parameters:
            limit (int): Maximum rows; <= 0 means no limit.

        Raises:
            SessionRecordOperationError: If the query or row conversion fails.
        """
        rows = self._fetch_history_rows(user_id, deck_id, limit)
        try:
            return [db_utils.db_row_to_session_record(row) for row in rows]
        except MarshallingError as e:
            raise SessionRecordOperationError(
                "Failed to parse session records from database.",
                original_exception=e,
            ) from e

    def get_session_history(
        self, user_id: Optional[str] = None, limit: int = 50
    ) -> List[Dict[str, Any]]:
        """Session record rows joined with their deck title, newest first."""
        return self._fetch_history_rows(user_id, None, limit)

    def _fetch_history_rows(
        self, user_id: Optional[str], deck_id: Optional[str], limit: int
    ) -> List[Dict[str, Any]]:
        where, params = self._record_filters(user_id, deck_id)
        sql = (
            "SELECT r.*, d.title AS deck_title FROM session_records r "
            "LEFT JOIN decks d ON d.deck_id = r.deck_id"
            f"{where} ORDER BY r.created_at DESC, r.record_id DESC"
        )
        if limit > 0:
            sql += " LIMIT ?"
            params.append(limit)
        conn = self.get_connection()
        try:
            return _rows_to_dicts(conn.execute(sql + ";", params))
        except duckdb.Error as e:
            logger.error(f"Error fetching session records for user {user_id}: {e}")
            raise SessionRecordOperationError(
                f"Failed to get session records: {e}", original_exception=e
            ) from e

    def get_deck_stats(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Aggregate session records per deck.

        Returns:
            List[Dict[str, Any]]: Rows with deck_id, title, sessions,
            average_score (rounded to one decimal) and best_score, ordered by title.
        """
        where, params = self._record_filters(user_id, None)
        sql = f"""
            SELECT r.deck_id,
                   COALESCE(d.title, r.deck_id) AS title,
                   COUNT(*) AS sessions,
                   ROUND(AVG(r.score), 1) AS average_score,
                   MAX(r.score) AS best_score
            FROM session_records r
            LEFT JOIN decks d ON d.deck_id = r.deck_id
            {where}
            GROUP BY r.deck_id, d.title
            ORDER BY title;
        """
        conn = self.get_connection()
        try:
            return _rows_to_dicts(conn.execute(sql, params))
        except duckdb.Error as e:
            logger.error(f"Error aggregating session records: {e}")
            raise SessionRecordOperationError(
                f"Failed to get deck stats: {e}", original_exception=e
            ) from e
