"""
Persistence gateway for completed-session records.

The gateway is a plain durable append. De-duplication is the caller's job
(see SessionRecorder), not the gateway's.
"""

import asyncio
import logging
from typing import Protocol

from .db.database import FlashcardDatabase
from .models import SessionRecord

logger = logging.getLogger(__name__)


class SessionRecordGateway(Protocol):
    async def submit_session_record(
        self, record: SessionRecord
    ) -> SessionRecord:
        """Append ``record``; return it with its assigned id. Raise on failure."""
        ...


class DatabaseSessionGateway:
    """Appends session records to a FlashcardDatabase off the event loop."""

    def __init__(self, db_manager: FlashcardDatabase):
        self.db_manager = db_manager

    def _append(self, record: SessionRecord) -> SessionRecord:
        with self.db_manager.lock:
            return self.db_manager.add_session_record(record)

    async def submit_session_record(
        self, record: SessionRecord
    ) -> SessionRecord:
        saved = await asyncio.to_thread(self._append, record)
        logger.debug(
            f"Appended session record {saved.record_id} for deck {saved.deck_id}"
        )
        return saved
