"""
Defines the database schema for flashdeck using a SQL string constant.
This keeps the schema definition separate from the database connection and
operation logic.
"""

DB_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS decks (
        deck_id VARCHAR PRIMARY KEY,
        title VARCHAR NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL
    );

    CREATE TABLE IF NOT EXISTS cards (
        card_id VARCHAR NOT NULL,
        deck_id VARCHAR NOT NULL,
        position INTEGER NOT NULL,
        front VARCHAR NOT NULL,
        back VARCHAR NOT NULL,
        front_media_key VARCHAR,
        back_media_key VARCHAR
    );

    CREATE SEQUENCE IF NOT EXISTS session_record_seq;

    CREATE TABLE IF NOT EXISTS session_records (
        record_id INTEGER PRIMARY KEY DEFAULT nextval('session_record_seq'),
        user_id VARCHAR NOT NULL,
        deck_id VARCHAR NOT NULL,
        score INTEGER NOT NULL CHECK (score >= 0 AND score <= 100),
        duration_seconds INTEGER NOT NULL CHECK (duration_seconds >= 0),
        is_focused BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_cards_deck_id ON cards (deck_id);
    CREATE INDEX IF NOT EXISTS idx_session_records_user_id ON session_records (user_id);
    CREATE INDEX IF NOT EXISTS idx_session_records_deck_id ON session_records (deck_id);
    CREATE INDEX IF NOT EXISTS idx_session_records_created_at ON session_records (created_at);
"""
