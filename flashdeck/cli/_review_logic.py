import asyncio
from pathlib import Path
from typing import Optional

from flashdeck.card_loader import CardSetLoader
from flashdeck.cli.review_ui import start_review_flow
from flashdeck.config import Settings
from flashdeck.db.database import FlashcardDatabase
from flashdeck.exceptions import LoadError
from flashdeck.gateway import DatabaseSessionGateway
from flashdeck.media import LocalMediaResolver
from flashdeck.review_manager import ReviewSessionManager
from flashdeck.session_recorder import SessionRecorder


def review_logic(
    deck_id: str,
    db_path: Path,
    user_id: str,
    assets_dir: Path,
    settings: Settings,
) -> Optional[LoadError]:
    """
    Wire the review engine to the local store and run the interactive player.

    Parameters:
        deck_id (str): Deck to play.
        db_path (Path): Path to the flashdeck database file.
        user_id (str): Owner of the session records written.
        assets_dir (Path): Media store used to resolve card images.
        settings (Settings): Timeouts, media TTL and dedup windows.

    Returns:
        Optional[LoadError]: The load failure if the deck could not be played.
    """
    with FlashcardDatabase(db_path=db_path) as db_manager:
        loader = CardSetLoader(
            db_manager,
            LocalMediaResolver(assets_dir, ttl_seconds=settings.media_url_ttl_seconds),
        )
        recorder = SessionRecorder(
            DatabaseSessionGateway(db_manager),
            timeout_seconds=settings.submit_timeout_seconds,
            dedup_window_seconds=settings.dedup_window_seconds,
            dedup_retention_seconds=settings.dedup_retention_seconds,
        )
        manager = ReviewSessionManager(
            loader=loader,
            recorder=recorder,
            user_id=user_id,
            deck_id=deck_id,
        )
        asyncio.run(start_review_flow(manager))
        return manager.load_error
