import sys
import pytest
from pathlib import Path
from typing import Callable, Generator, List
from datetime import datetime, timedelta, timezone

from flashdeck.models import Card, Deck, StoredMedia
from flashdeck.db import FlashcardDatabase


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(request):
    """
    Temporarily change the process working directory to the test's tmpdir and
    prepend that tmpdir to sys.path.
    """
    tmpdir = request.getfixturevalue("tmpdir")
    sys.path.insert(0, str(tmpdir))
    with tmpdir.as_cwd():
        yield


class FakeClock:
    """A controllable clock; call it to read the time, advance() to move it."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


# --- Database Fixtures ---
@pytest.fixture
def db_path_memory() -> str:
    """The DuckDB path identifier for a transient in-memory database."""
    return ":memory:"


@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    return tmp_path / "test_flashdeck.db"


@pytest.fixture(params=["memory", "file"])
def db_manager(
    request, db_path_memory: str, db_path_file: Path
) -> Generator[FlashcardDatabase, None, None]:
    """
    Provide a FlashcardDatabase instance for tests, either in-memory or
    file-backed, and close it on teardown.
    """
    if request.param == "memory":
        db_man = FlashcardDatabase(db_path_memory, testing_mode=True)
    else:
        db_man = FlashcardDatabase(db_path_file, testing_mode=True)
    try:
        yield db_man
    finally:
        db_man.close_connection()
        if request.param == "file" and db_path_file.exists():
            try:
                db_path_file.unlink()
            except OSError as e:
                import logging

                logging.warning(
                    f"Error removing temporary DB file in test fixture teardown: {e}"
                )


@pytest.fixture
def initialized_db_manager(db_manager: FlashcardDatabase) -> FlashcardDatabase:
    db_manager.initialize_schema()
    return db_manager


@pytest.fixture
def make_cards() -> Callable[[int], List[Card]]:
    """Factory for n plain cards with ids c0..c(n-1)."""

    def _make(n: int) -> List[Card]:
        return [
            Card(card_id=f"c{i}", front=f"Front {i}", back=f"Back {i}")
            for i in range(n)
        ]

    return _make


@pytest.fixture
def sample_deck() -> Deck:
    return Deck(
        deck_id="spanish",
        title="Spanish basics",
        created_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_cards() -> List[Card]:
    return [
        Card(card_id="hola", front="hola", back="hello"),
        Card(
            card_id="adios",
            front="adios",
            back="goodbye",
            front_media=StoredMedia(key="wave.png"),
        ),
        Card(card_id="gracias", front="gracias", back="thank you"),
    ]


@pytest.fixture
def seeded_db(
    initialized_db_manager: FlashcardDatabase, sample_deck: Deck, sample_cards: List[Card]
) -> FlashcardDatabase:
    initialized_db_manager.upsert_deck(sample_deck, sample_cards)
    return initialized_db_manager
