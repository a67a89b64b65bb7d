"""
Tests for CardSetLoader: ordering, media resolution and failure handling.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from flashdeck.card_loader import CardSetLoader
from flashdeck.db.database import FlashcardDatabase
from flashdeck.exceptions import CardOperationError, LoadError, MediaResolutionError
from flashdeck.models import Card, ResolvedMedia, StoredMedia


def _resolved(key: str) -> ResolvedMedia:
    return ResolvedMedia(
        key=key,
        url=f"file:///store/{key}",
        expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_load_without_resolver_keeps_stored_media(seeded_db):
    cards = await CardSetLoader(seeded_db).load_cards("spanish")
    assert [c.card_id for c in cards] == ["hola", "adios", "gracias"]
    assert cards[1].front_media == StoredMedia(key="wave.png")


@pytest.mark.asyncio
async def test_load_resolves_media(seeded_db):
    resolver = MagicMock()
    resolver.resolve = AsyncMock(side_effect=_resolved)

    cards = await CardSetLoader(seeded_db, resolver).load_cards("spanish")

    assert cards[1].front_media == _resolved("wave.png")
    assert cards[0].front_media is None
    resolver.resolve.assert_awaited_once_with("wave.png")


@pytest.mark.asyncio
async def test_media_failure_is_not_fatal(seeded_db, caplog):
    resolver = MagicMock()
    resolver.resolve = AsyncMock(side_effect=MediaResolutionError("expired"))

    cards = await CardSetLoader(seeded_db, resolver).load_cards("spanish")

    assert len(cards) == 3
    assert cards[1].front_media is None
    assert cards[1].front == "adios"
    assert "wave.png" in caplog.text


@pytest.mark.asyncio
async def test_unexpected_resolver_error_is_not_fatal(seeded_db):
    resolver = MagicMock()
    resolver.resolve = AsyncMock(side_effect=RuntimeError("boom"))
    cards = await CardSetLoader(seeded_db, resolver).load_cards("spanish")
    assert cards[1].front_media is None


@pytest.mark.asyncio
async def test_unknown_deck_raises_load_error(initialized_db_manager):
    with pytest.raises(LoadError) as exc_info:
        await CardSetLoader(initialized_db_manager).load_cards("missing")
    assert "missing" in str(exc_info.value)


@pytest.mark.asyncio
async def test_database_failure_raises_load_error():
    db = MagicMock(spec=FlashcardDatabase)
    db.lock = MagicMock()
    db.get_cards_for_deck.side_effect = CardOperationError("disk on fire")

    with pytest.raises(LoadError) as exc_info:
        await CardSetLoader(db).load_cards("d1")
    assert isinstance(exc_info.value.original_exception, CardOperationError)


@pytest.mark.asyncio
async def test_loaded_cards_are_immutable(seeded_db):
    cards = await CardSetLoader(seeded_db).load_cards("spanish")
    assert all(isinstance(c, Card) for c in cards)
    with pytest.raises(Exception):
        cards[0].front = "changed"
