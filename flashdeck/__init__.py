"""Flashdeck - flashcard decks played in passes, with focus replays and study history."""

from .models import Card, Deck, Session, SessionRecord, PendingMedia, StoredMedia, ResolvedMedia
from .session_controller import SessionController
from .focus_manager import FocusManager
from .session_recorder import SessionRecorder, RecordState
from .review_manager import ReviewSessionManager
from .db import FlashcardDatabase

__all__ = [
    "Card",
    "Deck",
    "Session",
    "SessionRecord",
    "PendingMedia",
    "StoredMedia",
    "ResolvedMedia",
    "SessionController",
    "FocusManager",
    "SessionRecorder",
    "RecordState",
    "ReviewSessionManager",
    "FlashcardDatabase",
]
