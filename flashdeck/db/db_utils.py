"""
Utility functions for data marshalling between Pydantic models and database formats.
This module keeps row conversion out of the FlashcardDatabase facade.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import Card, Deck, Media, ResolvedMedia, SessionRecord, StoredMedia


def media_to_key(media: Optional[Media]) -> Optional[str]:
    """
    Return the store key of a media reference.

    Raises:
        MarshallingError: If the media is still pending upload.
    """
    if media is None:
        return None
    if isinstance(media, (StoredMedia, ResolvedMedia)):
        return media.key
    raise MarshallingError(
        f"Media at {media.local_path} must be staged before it is saved."
    )


def key_to_media(key: Optional[str]) -> Optional[StoredMedia]:
    return StoredMedia(key=key) if key else None


def cards_to_db_params_list(
    deck_id: str, cards: Sequence[Card]
) -> List[Tuple]:
    """
    Convert cards into insert tuples, numbering positions in sequence order.

    Returns:
        List[Tuple]: (card_id, deck_id, position, front, back, front_media_key, back_media_key) per card.
    """
    return [
        (
            card.card_id,
            deck_id,
            position,
            card.front,
            card.back,
            media_to_key(card.front_media),
            media_to_key(card.back_media),
        )
        for position, card in enumerate(cards)
    ]


def db_row_to_card(row_dict: Dict[str, Any]) -> Card:
    """
    Build a Card from a cards row; media keys become StoredMedia.

    Raises:
        MarshallingError: If validation fails.
    """
    try:
        return Card(
            card_id=row_dict["card_id"],
            front=row_dict["front"],
            back=row_dict["back"],
            front_media=key_to_media(row_dict.get("front_media_key")),
            back_media=key_to_media(row_dict.get("back_media_key")),
        )
    except (KeyError, ValidationError) as e:
        raise MarshallingError(
            f"Data validation failed for card: {e}", original_exception=e
        ) from e


def db_row_to_deck(row_dict: Dict[str, Any]) -> Deck:
    try:
        return Deck(**row_dict)
    except ValidationError as e:
        raise MarshallingError(
            f"Data validation failed for deck: {e}", original_exception=e
        ) from e


def session_record_to_db_params_tuple(record: SessionRecord) -> Tuple:
    """(user_id, deck_id, score, duration_seconds, is_focused, created_at)"""
    return (
        record.user_id,
        record.deck_id,
        record.score,
        record.duration_seconds,
        record.is_focused,
        record.created_at,
    )


def db_row_to_session_record(row_dict: Dict[str, Any]) -> SessionRecord:
    """
    Create a SessionRecord from a session_records row.

    Extra columns (e.g. a joined deck title) are ignored.

    Raises:
        MarshallingError: If validation fails.
    """
    fields = {
        name: row_dict[name]
        for name in SessionRecord.model_fields
        if name in row_dict
    }
    try:
        return SessionRecord(**fields)
    except ValidationError as e:
        raise MarshallingError(
            f"Data validation failed for session record: {e}",
            original_exception=e,
        ) from e
