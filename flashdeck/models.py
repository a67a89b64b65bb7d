"""
Core data models for the review-session engine.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, List, Literal, Optional, Tuple, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingMedia(BaseModel):
    """A local image picked for upload that is not in the media store yet."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["pending"] = "pending"
    local_path: Path


class StoredMedia(BaseModel):
    """An opaque reference to an image in the media store."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["stored"] = "stored"
    key: str = Field(..., min_length=1)


class ResolvedMedia(BaseModel):
    """A stored image together with a short-lived display URL."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["resolved"] = "resolved"
    key: str = Field(..., min_length=1)
    url: str
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or _utcnow()) >= self.expires_at


Media = Annotated[
    Union[PendingMedia, StoredMedia, ResolvedMedia],
    Field(discriminator="kind"),
]


class Card(BaseModel):
    """
    One front/back flashcard.

    Immutable once loaded; media is optional on either side.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    card_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        min_length=1,
        description="Stable card identifier.",
    )
    front: str = Field(..., description="Prompt text.")
    back: str = Field(..., description="Answer text.")
    front_media: Optional[Media] = Field(
        default=None, description="Image shown with the prompt."
    )
    back_media: Optional[Media] = Field(
        default=None, description="Image shown with the answer."
    )


class Deck(BaseModel):
    """A named, ordered collection of cards."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    deck_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), min_length=1
    )
    title: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=_utcnow)


class Session(BaseModel):
    """
    One pass through an ordered card sequence.

    The cursor is not stored: ``index`` is always ``len(judgments)``, so the
    two can never disagree. Only SessionController mutates a Session, and
    only SessionRecorder touches ``submitted``.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    session_uuid: UUID = Field(default_factory=uuid.uuid4)
    cards: Tuple[Card, ...] = Field(
        default_factory=tuple,
        description="Cards in review order, fixed at creation.",
    )
    judgments: List[bool] = Field(
        default_factory=list,
        description="Recall verdicts; judgments[i] belongs to cards[i].",
    )
    revealed: bool = False
    started_at: datetime = Field(default_factory=_utcnow)
    parent_session: Optional[Session] = Field(
        default=None,
        description="Full-deck session this focus was derived from.",
    )
    submitted: bool = False

    @property
    def index(self) -> int:
        return len(self.judgments)

    @property
    def is_complete(self) -> bool:
        return self.index == len(self.cards)

    @property
    def is_focused(self) -> bool:
        return self.parent_session is not None

    @property
    def current_card(self) -> Optional[Card]:
        """The card under the cursor, or None once the pass is complete."""
        if self.is_complete:
            return None
        return self.cards[self.index]

    @property
    def known_count(self) -> int:
        return sum(1 for known in self.judgments if known)


class SessionRecord(BaseModel):
    """
    Persisted summary of one completed Session. Never mutated once written.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    record_id: Optional[int] = Field(
        default=None,
        description="Auto-incrementing PK from session_records (None if new).",
    )
    user_id: str = Field(..., min_length=1)
    deck_id: str = Field(..., min_length=1)
    score: int = Field(..., ge=0, le=100, description="Percent known.")
    duration_seconds: int = Field(..., ge=0)
    is_focused: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
