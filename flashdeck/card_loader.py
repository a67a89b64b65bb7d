"""
Card set loading for flashdeck.

Fetches a deck's cards in review order and resolves their stored images to
short-lived display references. A card whose image cannot be resolved is
still returned, just without that image.
"""

import asyncio
import logging
from typing import List, Optional

from .db.database import FlashcardDatabase
from .exceptions import DatabaseError, LoadError, MediaResolutionError
from .media import MediaResolver
from .models import Card, ResolvedMedia, StoredMedia

logger = logging.getLogger(__name__)

_MEDIA_FIELDS = ("front_media", "back_media")


class CardSetLoader:
    """Resolves a deck id into an ordered, immutable list of cards."""

    def __init__(
        self,
        db_manager: FlashcardDatabase,
        resolver: Optional[MediaResolver] = None,
    ):
        self.db_manager = db_manager
        self.resolver = resolver

    def _fetch(self, deck_id: str) -> List[Card]:
        with self.db_manager.lock:
            return self.db_manager.get_cards_for_deck(deck_id)

    async def load_cards(self, deck_id: str) -> List[Card]:
        """
        Load the cards of ``deck_id`` with media resolved.

        Raises:
            LoadError: If the deck cannot be fetched. Media failures never raise.
        """
        try:
            cards = await asyncio.to_thread(self._fetch, deck_id)
        except DatabaseError as e:
            logger.error(f"Failed to load cards for deck {deck_id}: {e}")
            raise LoadError(
                f"Could not load deck '{deck_id}': {e}", original_exception=e
            ) from e

        if self.resolver is None:
            return cards
        resolved = await asyncio.gather(
            *(self._resolve_card(card) for card in cards)
        )
        logger.info(f"Loaded {len(resolved)} cards for deck {deck_id}")
        return list(resolved)

    async def _resolve_card(self, card: Card) -> Card:
        updates = {}
        for field in _MEDIA_FIELDS:
            media = getattr(card, field)
            if isinstance(media, StoredMedia):
                updates[field] = await self._resolve_key(card, media.key)
        return card.model_copy(update=updates) if updates else card

    async def _resolve_key(self, card: Card, key: str) -> Optional[ResolvedMedia]:
        try:
            return await self.resolver.resolve(key)
        except MediaResolutionError as e:
            logger.warning(f"Card {card.card_id}: media '{key}' dropped: {e}")
        except Exception as e:
            logger.warning(
                f"Card {card.card_id}: unexpected error resolving media '{key}': {e}"
            )
        return None
