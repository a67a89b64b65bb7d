"""
YAML deck import for flashdeck.

A deck file looks like::

    deck:
      id: spanish-basics      # optional, generated when missing
      title: Spanish basics
    cards:
      - front: hola
        back: hello
        front_image: images/wave.png   # optional, relative to the file
      - front: adios
        back: goodbye
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .db.database import FlashcardDatabase
from .exceptions import DeckImportError, MediaResolutionError
from .media import stage_media
from .models import Card, Deck, PendingMedia, StoredMedia

logger = logging.getLogger(__name__)


class _RawDeckHeader(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = Field(default=None, min_length=1)
    title: str = Field(..., min_length=1)


class _RawCard(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = Field(default=None, min_length=1)
    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)
    front_image: Optional[Path] = None
    back_image: Optional[Path] = None


class _RawDeckFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    deck: _RawDeckHeader
    cards: List[_RawCard] = Field(default_factory=list)


def _pending(base_dir: Path, image: Optional[Path]) -> Optional[PendingMedia]:
    if image is None:
        return None
    path = image if image.is_absolute() else base_dir / image
    return PendingMedia(local_path=path)


def load_deck_yaml(path: Path) -> Tuple[Deck, List[Card]]:
    """
    Parse and validate a deck file.

    Image paths come back as PendingMedia; call ``stage_deck_media`` before
    saving.

    Raises:
        DeckImportError: If the file is unreadable, not YAML, or invalid.
    """
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise DeckImportError(f"Cannot read {path}: {e}", original_exception=e) from e
    except yaml.YAMLError as e:
        raise DeckImportError(f"Invalid YAML in {path}: {e}", original_exception=e) from e

    try:
        parsed = _RawDeckFile.model_validate(raw)
    except ValidationError as e:
        raise DeckImportError(
            f"Invalid deck file {path}: {e}", original_exception=e
        ) from e

    ids = [raw_card.id for raw_card in parsed.cards if raw_card.id is not None]
    duplicates = sorted({card_id for card_id in ids if ids.count(card_id) > 1})
    if duplicates:
        raise DeckImportError(
            f"Invalid deck file {path}: duplicate card ids {', '.join(duplicates)}"
        )

    header = parsed.deck
    deck = Deck(title=header.title) if header.id is None else Deck(deck_id=header.id, title=header.title)
    base_dir = path.parent
    cards = []
    for raw_card in parsed.cards:
        fields = dict(
            front=raw_card.front,
            back=raw_card.back,
            front_media=_pending(base_dir, raw_card.front_image),
            back_media=_pending(base_dir, raw_card.back_image),
        )
        if raw_card.id is not None:
            fields["card_id"] = raw_card.id
        cards.append(Card(**fields))
    return deck, cards


def stage_deck_media(cards: List[Card], assets_dir: Path) -> List[Card]:
    """
    Copy every pending image into the media store.

    Raises:
        DeckImportError: If an image is missing or cannot be copied.
    """
    staged = []
    for card in cards:
        updates = {}
        for field in ("front_media", "back_media"):
            media = getattr(card, field)
            if isinstance(media, PendingMedia):
                try:
                    updates[field] = stage_media(media, assets_dir)
                except MediaResolutionError as e:
                    raise DeckImportError(
                        f"Card '{card.front}': {e}", original_exception=e
                    ) from e
        staged.append(card.model_copy(update=updates) if updates else card)
    return staged


def import_deck(
    db_manager: FlashcardDatabase, path: Path, assets_dir: Path
) -> Tuple[Deck, int]:
    """
    Load a deck file, store its images and save it.

    Returns:
        Tuple[Deck, int]: The saved deck and the number of cards written.
    """
    deck, cards = load_deck_yaml(path)
    cards = stage_deck_media(cards, assets_dir)
    stored = sum(
        isinstance(media, StoredMedia)
        for card in cards
        for media in (card.front_media, card.back_media)
    )
    count = db_manager.upsert_deck(deck, cards)
    logger.info(f"Imported deck '{deck.title}' from {path}: {count} cards, {stored} images")
    return deck, count
