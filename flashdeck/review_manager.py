"""
This module defines the ReviewSessionManager class, which runs review
passes over one deck for one user. It loads the deck, forwards reveal and
answer actions to the SessionController, hands each completed pass to the
SessionRecorder exactly once, and exposes focus and restore.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

from .card_loader import CardSetLoader
from .exceptions import LoadError, SubmitError
from .focus_manager import FocusManager
from .models import Session, SessionRecord
from .session_controller import SessionController
from .session_recorder import (
    SessionRecorder,
    compute_duration_seconds,
    compute_score,
)

# Initialize logger
logger = logging.getLogger(__name__)


class ReviewSessionManager:
    """
    Manages review passes for a single deck.

    This class is responsible for:
    - Loading the deck and starting a fresh pass (empty on load failure).
    - Forwarding reveal/answer to the controller.
    - Scheduling one record write per completed pass, in the background.
    - Deriving focus passes and restoring the full deck.
    - Cancelling deck loading, but never a record write, on discard.
    """

    def __init__(
        self,
        loader: CardSetLoader,
        recorder: SessionRecorder,
        user_id: str,
        deck_id: str,
        controller: Optional[SessionController] = None,
        focus_manager: Optional[FocusManager] = None,
    ):
        self.loader = loader
        self.recorder = recorder
        self.user_id = user_id
        self.deck_id = deck_id
        self.controller = controller or SessionController()
        self.focus_manager = focus_manager or FocusManager()
        self.controller.subscribe(self._on_complete)

        self.records: List[SessionRecord] = []
        self.load_error: Optional[LoadError] = None
        self._submit_errors: Dict[UUID, SubmitError] = {}
        self._completed_at: Optional[datetime] = None
        self._load_task: Optional[asyncio.Task] = None
        self._pending_writes: Set[asyncio.Task] = set()

    @property
    def session(self) -> Session:
        return self.controller.session

    @property
    def last_submit_error(self) -> Optional[SubmitError]:
        """The latest save failure of the current pass, if any."""
        if not self.controller.has_session:
            return None
        return self._submit_errors.get(self.session.session_uuid)

    def _is_current(self, session: Session) -> bool:
        return (
            self.controller.has_session
            and self.controller.session.session_uuid == session.session_uuid
        )

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    async def open_deck(self) -> Session:
        """
        Load the deck and start a fresh pass over it.

        A load failure is kept in ``load_error`` and yields an empty session
        (the empty-deck state) instead of raising.
        """
        self.discard()
        self.load_error = None
        self._load_task = asyncio.create_task(
            self.loader.load_cards(self.deck_id)
        )
        try:
            cards = await self._load_task
        except LoadError as e:
            logger.warning(f"Deck {self.deck_id} could not be loaded: {e}")
            self.load_error = e
            cards = []
        finally:
            self._load_task = None
        return self._begin(self.controller.start(cards))

    def _begin(self, session: Session) -> Session:
        self._completed_at = None
        self._submit_errors.clear()
        return session

    def reveal(self) -> bool:
        return self.controller.toggle_reveal()

    def answer(self, is_known: bool, at_index: Optional[int] = None) -> bool:
        """Record a judgment; see SessionController.answer."""
        return self.controller.answer(is_known, at_index=at_index)

    def _on_complete(self, session: Session) -> None:
        self._completed_at = self.recorder.now()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"No running event loop; session {session.session_uuid} "
                "will be saved on retry_submit()."
            )
            return
        task = loop.create_task(self._submit(session))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _submit(self, session: Session) -> Optional[SessionRecord]:
        try:
            record = await self.recorder.submit(
                session, user_id=self.user_id, deck_id=self.deck_id
            )
        except SubmitError as e:
            if self._is_current(session):
                self._submit_errors[session.session_uuid] = e
            return None
        self._submit_errors.pop(session.session_uuid, None)
        if record is not None:
            self.records.append(record)
        return record

    async def retry_submit(self) -> Optional[SessionRecord]:
        """Try again to save the current pass after a failed write."""
        return await self._submit(self.session)

    async def drain(self) -> None:
        """Wait for every record write still in flight."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    def focus(self) -> Optional[Session]:
        """
        Replace the current pass with a focus on its missed cards.

        Returns:
            Optional[Session]: The focused pass, or None (current pass kept)
            when every card was known.
        """
        focused = self.focus_manager.derive_focus(self.session)
        if focused is None:
            return None
        return self._begin(self.controller.attach(focused))

    def restore(self) -> Session:
        """Leave a focus and replay the full deck from the start."""
        restored = self.focus_manager.restore(self.session)
        return self._begin(self.controller.attach(restored))

    def discard(self) -> None:
        """
        Drop the current pass. Outstanding deck loading is cancelled;
        record writes already in flight are left to finish.
        """
        if self._load_task is not None and not self._load_task.done():
            logger.debug(f"Cancelling card load for deck {self.deck_id}")
            self._load_task.cancel()
        self.controller.discard()
        self._submit_errors.clear()

    def get_results(self) -> Dict[str, Any]:
        """
        Summarize the current pass for display.

        The score is computed from the in-memory session, so it is available
        whether or not the record was saved.

        Returns:
            dict: Keys "score", "known", "total", "duration_seconds",
            "is_focused", "state" (RecordState value) and "notice" (a save
            error message or None).
        """
        session = self.session
        now = self._completed_at or self.recorder.now()
        return {
            "score": compute_score(session),
            "known": session.known_count,
            "total": len(session.cards),
            "duration_seconds": compute_duration_seconds(session, now),
            "is_focused": session.is_focused,
            "state": self.recorder.status(session).value,
            "notice": (
                str(self.last_submit_error) if self.last_submit_error else None
            ),
        }
