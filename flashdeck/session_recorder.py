"""
Completion recording for flashdeck.

The SessionRecorder turns a complete Session into exactly one persisted
SessionRecord, however many times completion is signalled for it:

1. Score and duration are computed from the in-memory session.
2. A short de-duplication window keyed by user, deck and start second
   drops repeats of a pass that was already written.
3. The session's ``submitted`` flag is test-and-set before the write, so
   overlapping triggers cannot both proceed.
4. A failed or timed-out write clears ``submitted`` again, leaving the
   session retryable; a successful one leaves it set for good.
5. A write that times out keeps running in the background. The next
   attempt for the same session waits for that write instead of issuing
   a second one, so a late commit is never duplicated.
"""

import asyncio
import logging
import math
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional, Set, Tuple
from uuid import UUID

from .constants import (
    DEDUP_RETENTION_SECONDS,
    DEDUP_WINDOW_SECONDS,
    MAX_SCORE,
    SUBMIT_TIMEOUT_SECONDS,
)
from .exceptions import SubmitError
from .gateway import SessionRecordGateway
from .models import Session, SessionRecord
from .session_controller import is_complete

logger = logging.getLogger(__name__)

DedupKey = Tuple[str, str, int, bool]


class RecordState(str, Enum):
    """Where a session stands on its way to a persisted record."""

    ACTIVE = "active"
    COMPLETE = "complete"
    SUBMITTED = "submitted"
    SUBMIT_FAILED = "submit_failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_score(session: Session) -> int:
    """
    Percentage of cards judged known, rounded half up.

    Returns:
        int: 0-100; 0 for a session without cards.
    """
    total = max(1, len(session.cards))
    # Integer form of floor(100 * known / total + 0.5)
    return (2 * MAX_SCORE * session.known_count + total) // (2 * total)


def compute_duration_seconds(session: Session, now: datetime) -> int:
    """Whole seconds since the session started, never negative."""
    elapsed = (now - session.started_at).total_seconds()
    return max(0, _round_half_up(elapsed))


def should_submit(session: Session) -> bool:
    """The write trigger: a complete, non-empty, not yet submitted pass."""
    return (
        len(session.cards) > 0
        and is_complete(session)
        and len(session.judgments) == len(session.cards)
        and not session.submitted
    )


class SessionRecorder:
    """
    Persists at most one SessionRecord per completed Session.

    Safe to call repeatedly and concurrently for the same session; every
    call after the first successful (or in-flight) one is a silent no-op.
    """

    def __init__(
        self,
        gateway: SessionRecordGateway,
        timeout_seconds: float = SUBMIT_TIMEOUT_SECONDS,
        dedup_window_seconds: int = DEDUP_WINDOW_SECONDS,
        dedup_retention_seconds: int = DEDUP_RETENTION_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.gateway = gateway
        self.timeout_seconds = timeout_seconds
        self.dedup_window = timedelta(seconds=dedup_window_seconds)
        self.dedup_retention = timedelta(seconds=dedup_retention_seconds)
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        self._recent_writes: Dict[DedupKey, datetime] = {}
        self._in_flight: Set[UUID] = set()
        self._failed: Set[UUID] = set()
        # Writes that outlived their caller (timeout or cancellation).
        self._orphaned_writes: Dict[UUID, "asyncio.Future[SessionRecord]"] = {}

    def now(self) -> datetime:
        return self._clock()

    def status(self, session: Session) -> RecordState:
        """Report the recording state of ``session``."""
        if not is_complete(session):
            return RecordState.ACTIVE
        with self._lock:
            if session.session_uuid in self._in_flight:
                return RecordState.COMPLETE
            if session.submitted:
                return RecordState.SUBMITTED
            if session.session_uuid in self._failed:
                return RecordState.SUBMIT_FAILED
        return RecordState.COMPLETE

    @staticmethod
    def _dedup_key(
        session: Session, user_id: str, deck_id: str
    ) -> DedupKey:
        started_second = math.floor(session.started_at.timestamp())
        return (user_id, deck_id, started_second, session.is_focused)

    def _prune(self, now: datetime) -> None:
        expired = [
            key
            for key, written_at in self._recent_writes.items()
            if now - written_at > self.dedup_retention
        ]
        for key in expired:
            del self._recent_writes[key]

    def _claim(
        self, session: Session, key: DedupKey, now: datetime
    ) -> bool:
        """
        Atomically decide whether this trigger owns the write.

        Returns True after setting ``submitted``; False if the session is not
        eligible or a write for the same pass happened within the window.
        """
        with self._lock:
            if not should_submit(session):
                return False
            self._prune(now)
            last_write = self._recent_writes.get(key)
            if last_write is not None and now - last_write < self.dedup_window:
                logger.info(
                    f"Skipping duplicate completion for session {session.session_uuid}"
                )
                return False
            session.submitted = True
            self._in_flight.add(session.session_uuid)
            self._failed.discard(session.session_uuid)
            return True

    def _release_after_failure(self, session: Session) -> None:
        with self._lock:
            session.submitted = False
            self._in_flight.discard(session.session_uuid)
            self._failed.add(session.session_uuid)

    def build_record(
        self, session: Session, user_id: str, deck_id: str, now: datetime
    ) -> SessionRecord:
        return SessionRecord(
            user_id=user_id,
            deck_id=deck_id,
            score=compute_score(session),
            duration_seconds=compute_duration_seconds(session, now),
            is_focused=session.is_focused,
            created_at=now,
        )

    async def submit(
        self, session: Session, user_id: str, deck_id: str
    ) -> Optional[SessionRecord]:
        """
        Persist the completion record for ``session`` if this call owns it.

        Parameters:
            session (Session): The session whose completion was signalled.
            user_id (str): Owner of the record.
            deck_id (str): Deck the pass was played from.

        Returns:
            Optional[SessionRecord]: The saved record, or None when the call was
            skipped (not complete, already submitted, in flight, or deduplicated).

        Raises:
            SubmitError: If the write failed or timed out. ``submitted`` is
                cleared so a later call can retry.
        """
        now = self._clock()
        key = self._dedup_key(session, user_id, deck_id)
        if not self._claim(session, key, now):
            return None

        record = self.build_record(session, user_id, deck_id, now)
        try:
            saved = await self._write(session, record, key)
        except asyncio.CancelledError:
            self._release_after_failure(session)
            raise
        except asyncio.TimeoutError as e:
            self._release_after_failure(session)
            logger.warning(
                f"Saving session {session.session_uuid} timed out after "
                f"{self.timeout_seconds}s"
            )
            raise SubmitError(
                "Timed out while saving the session result.",
                original_exception=e,
            ) from e
        except Exception as e:
            self._release_after_failure(session)
            logger.warning(
                f"Failed to save session {session.session_uuid}: {e}"
            )
            raise SubmitError(
                f"Could not save the session result: {e}",
                original_exception=e,
            ) from e

        with self._lock:
            self._recent_writes[key] = now
            self._in_flight.discard(session.session_uuid)
        logger.info(
            f"Recorded session {session.session_uuid}: score {saved.score}, "
            f"{saved.duration_seconds}s, focused={saved.is_focused}"
        )
        return saved

    def _take_orphaned_write(
        self, session: Session
    ) -> Optional["asyncio.Future[SessionRecord]"]:
        """Pop a still-useful background write for ``session``, if any."""
        with self._lock:
            pending = self._orphaned_writes.pop(session.session_uuid, None)
        if pending is None:
            return None
        if pending.done() and (pending.cancelled() or pending.exception() is not None):
            # It failed on its own; nothing was stored, so write afresh.
            return None
        return pending

    async def _write(
        self, session: Session, record: SessionRecord, key: DedupKey
    ) -> SessionRecord:
        """
        Run the gateway write bounded by the timeout.

        The write itself is shielded: when the wait gives up, the write is
        parked for the session and adopted by the next attempt.
        """
        pending = self._take_orphaned_write(session)
        if pending is None:
            pending = asyncio.ensure_future(self.gateway.submit_session_record(record))
            pending.add_done_callback(_log_background_failure)
        else:
            logger.info(
                f"Waiting for the earlier write of session {session.session_uuid} "
                "instead of writing again"
            )

        try:
            return await asyncio.wait_for(
                asyncio.shield(pending), timeout=self.timeout_seconds
            )
        except BaseException:
            if not pending.done():
                self._park(session, key, pending)
            raise

    def _park(
        self, session: Session, key: DedupKey, pending: "asyncio.Future[SessionRecord]"
    ) -> None:
        with self._lock:
            self._orphaned_writes[session.session_uuid] = pending

        def _settle(fut: "asyncio.Future[SessionRecord]") -> None:
            with self._lock:
                if self._orphaned_writes.get(session.session_uuid) is not fut:
                    return  # adopted by a retry
                del self._orphaned_writes[session.session_uuid]
                if fut.cancelled() or fut.exception() is not None:
                    return
                session.submitted = True
                self._failed.discard(session.session_uuid)
                self._recent_writes[key] = self._clock()
            logger.info(
                f"Late write for session {session.session_uuid} committed; "
                "marked as submitted"
            )

        pending.add_done_callback(_settle)


def _log_background_failure(fut: "asyncio.Future[SessionRecord]") -> None:
    # Marks the exception retrieved when nobody awaits the write any more.
    if not fut.cancelled() and fut.exception() is not None:
        logger.debug(f"Background record write failed: {fut.exception()}")
