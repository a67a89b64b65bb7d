"""
Focus derivation for flashdeck.

A focus is a narrowed replay of the cards judged "still learning" in a
finished pass. Restoring from a focus replays the original full deck.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .exceptions import SessionValidationError
from .models import Card, Session
from .session_controller import is_complete

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FocusManager:
    """
    Builds focus and restore sessions without mutating the source session.

    Only one level of original is remembered: focusing an already focused
    session keeps pointing at the first full-deck session, so restore
    always returns to the whole deck.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _utcnow

    @staticmethod
    def missed_cards(session: Session) -> List[Card]:
        """Cards judged False, in their original relative order."""
        return [
            card
            for card, known in zip(session.cards, session.judgments)
            if not known
        ]

    def derive_focus(self, session: Session) -> Optional[Session]:
        """
        Create a replay session over the cards missed in ``session``.

        Parameters:
            session (Session): A complete session.

        Returns:
            Optional[Session]: The focused session, or None when nothing was missed.

        Raises:
            SessionValidationError: If ``session`` is not complete.
        """
        if not is_complete(session):
            raise SessionValidationError(
                f"Cannot focus session {session.session_uuid}: "
                f"{session.index} of {len(session.cards)} cards judged."
            )

        missed = self.missed_cards(session)
        if not missed:
            logger.info(
                f"No missed cards in session {session.session_uuid}; nothing to focus."
            )
            return None

        anchor = session.parent_session or session
        focused = Session(
            cards=tuple(missed),
            started_at=self._clock(),
            parent_session=anchor,
        )
        logger.info(
            f"Derived focus {focused.session_uuid} with {len(missed)} cards "
            f"from session {session.session_uuid}"
        )
        return focused

    def restore(self, session: Session) -> Session:
        """
        Create a fresh replay of the full deck a focus was derived from.

        Raises:
            SessionValidationError: If ``session`` is not a focused session.
        """
        anchor = session.parent_session
        if anchor is None:
            raise SessionValidationError(
                f"Session {session.session_uuid} has no original to restore."
            )
        restored = Session(cards=anchor.cards, started_at=self._clock())
        logger.info(
            f"Restored {len(restored.cards)} cards from session {anchor.session_uuid}"
        )
        return restored
