"""Database package for flashdeck.

This package provides the DuckDB-backed store for decks, cards and
session records. Only FlashcardDatabase is exported as the public API.
"""

from .database import FlashcardDatabase

__all__ = ["FlashcardDatabase"]
