"""
Media store access for flashdeck.

Card images live in a local directory acting as the object store. Stored
keys are turned into short-lived display references on load, and pending
uploads are copied into the store on import.
"""

import asyncio
import logging
import shutil
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Protocol

from .constants import MEDIA_URL_TTL_SECONDS
from .exceptions import MediaResolutionError
from .models import PendingMedia, ResolvedMedia, StoredMedia

logger = logging.getLogger(__name__)


class MediaResolver(Protocol):
    async def resolve(self, key: str) -> ResolvedMedia:
        """Return a display reference for ``key`` or raise MediaResolutionError."""
        ...


class LocalMediaResolver:
    """Resolves store keys to ``file://`` URLs with an expiry timestamp."""

    def __init__(
        self,
        assets_dir: Path,
        ttl_seconds: int = MEDIA_URL_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.assets_dir = Path(assets_dir)
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _locate(self, key: str) -> Path:
        root = self.assets_dir.resolve()
        path = (root / key).resolve()
        if not path.is_relative_to(root):
            raise MediaResolutionError(f"Media key '{key}' escapes the store.")
        if not path.is_file():
            raise MediaResolutionError(f"Media '{key}' not found in {root}.")
        return path

    async def resolve(self, key: str) -> ResolvedMedia:
        path = await asyncio.to_thread(self._locate, key)
        return ResolvedMedia(
            key=key,
            url=path.as_uri(),
            expires_at=self._clock() + self.ttl,
        )


def stage_media(pending: PendingMedia, assets_dir: Path) -> StoredMedia:
    """
    Copy a pending local image into the media store under a fresh key.

    Raises:
        MediaResolutionError: If the source file is missing or cannot be copied.
    """
    source = Path(pending.local_path)
    if not source.is_file():
        raise MediaResolutionError(f"Image file not found: {source}")

    key = f"{uuid.uuid4()}{source.suffix.lower()}"
    assets_dir = Path(assets_dir)
    try:
        assets_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, assets_dir / key)
    except OSError as e:
        raise MediaResolutionError(
            f"Could not store image {source}: {e}", original_exception=e
        ) from e
    logger.debug(f"Staged {source} as {key}")
    return StoredMedia(key=key)
