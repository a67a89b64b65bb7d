"""
This module defines the SessionController class, the single owner and
mutator of an active review Session.

It moves the cursor forward one judgment at a time, toggles the reveal
state, and emits a one-shot completion event when the last card of a pass
has been judged.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .exceptions import SessionValidationError
from .models import Card, Session

logger = logging.getLogger(__name__)

CompletionListener = Callable[[Session], None]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_complete(session: Session) -> bool:
    """True once every card in ``session`` has a judgment."""
    return session.index == len(session.cards)


class SessionController:
    """
    Drives one Session through its Active -> Complete transition.

    This class is responsible for:
    - Creating fresh sessions and adopting derived (focus/restore) ones.
    - Recording forward-only, write-once judgments.
    - Dropping duplicate answers fired for an index that has already moved.
    - Notifying subscribers exactly once when a session completes.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or _utcnow
        self._session: Optional[Session] = None
        self._completion_emitted = False
        self._listeners: List[CompletionListener] = []

    @property
    def session(self) -> Session:
        if self._session is None:
            raise SessionValidationError("No session has been started.")
        return self._session

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def subscribe(self, listener: CompletionListener) -> None:
        """
        Register a callback invoked with the session on its Active -> Complete
        transition. Each session instance is announced at most once.
        """
        self._listeners.append(listener)

    def start(
        self,
        cards: Sequence[Card],
        parent_session: Optional[Session] = None,
    ) -> Session:
        """
        Begin a new pass over ``cards`` and make it the current session.

        Parameters:
            cards (Sequence[Card]): Cards in review order; copied into an immutable tuple.
            parent_session (Optional[Session]): Set only for focused replays.

        Returns:
            Session: The new, active session.
        """
        session = Session(
            cards=tuple(cards),
            started_at=self._clock(),
            parent_session=parent_session,
        )
        return self.attach(session)

    def attach(self, session: Session) -> Session:
        """Make an externally built session (e.g. a focus) the current one."""
        self._session = session
        self._completion_emitted = False
        logger.info(
            f"Session {session.session_uuid} started with {len(session.cards)} cards"
            + (" (focused)" if session.is_focused else "")
        )
        return session

    def discard(self) -> None:
        """Forget the current session without touching its state."""
        if self._session is not None:
            logger.debug(f"Discarded session {self._session.session_uuid}")
        self._session = None
        self._completion_emitted = False

    def toggle_reveal(self) -> bool:
        """
        Flip the reveal state of the current card.

        Returns:
            bool: The new value of ``revealed``.

        Raises:
            SessionValidationError: If the session is already complete.
        """
        session = self.session
        if is_complete(session):
            raise SessionValidationError(
                f"Cannot reveal: session {session.session_uuid} is complete."
            )
        session.revealed = not session.revealed
        return session.revealed

    def answer(self, is_known: bool, at_index: Optional[int] = None) -> bool:
        """
        Record a judgment for the card under the cursor and advance.

        Parameters:
            is_known (bool): Whether the user recalled the card.
            at_index (Optional[int]): The index the caller was showing when the
                answer was given. If the cursor has already moved past it, the
                call is a duplicate and is dropped.

        Returns:
            bool: True if the judgment was applied, False if it was a dropped duplicate.

        Raises:
            SessionValidationError: If the session is complete.
        """
        session = self.session
        if at_index is not None and at_index != session.index:
            logger.debug(
                f"Dropped duplicate answer for index {at_index} "
                f"(cursor at {session.index}) in session {session.session_uuid}"
            )
            return False

        if is_complete(session):
            raise SessionValidationError(
                f"Cannot answer: session {session.session_uuid} already has "
                f"{len(session.judgments)} of {len(session.cards)} judgments."
            )

        session.judgments.append(bool(is_known))
        session.revealed = False
        logger.debug(
            f"Card {session.index}/{len(session.cards)} judged "
            f"{'known' if is_known else 'learning'} in session {session.session_uuid}"
        )

        if is_complete(session):
            self._emit_completion(session)
        return True

    def _emit_completion(self, session: Session) -> None:
        if self._completion_emitted:
            return
        self._completion_emitted = True
        logger.info(
            f"Session {session.session_uuid} complete: "
            f"{session.known_count}/{len(session.cards)} known"
        )
        for listener in list(self._listeners):
            listener(session)
