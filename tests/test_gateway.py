import pytest

from flashdeck.exceptions import DatabaseConnectionError
from flashdeck.db.database import FlashcardDatabase
from flashdeck.gateway import DatabaseSessionGateway
from flashdeck.models import SessionRecord


@pytest.mark.asyncio
async def test_submit_appends_record(initialized_db_manager):
    gateway = DatabaseSessionGateway(initialized_db_manager)
    record = SessionRecord(user_id="u1", deck_id="d1", score=67, duration_seconds=12)

    saved = await gateway.submit_session_record(record)

    assert saved.record_id is not None
    assert saved.score == 67
    stored = initialized_db_manager.get_session_records(user_id="u1")
    assert [r.record_id for r in stored] == [saved.record_id]


@pytest.mark.asyncio
async def test_gateway_does_not_deduplicate(initialized_db_manager):
    gateway = DatabaseSessionGateway(initialized_db_manager)
    record = SessionRecord(user_id="u1", deck_id="d1", score=50, duration_seconds=3)
    await gateway.submit_session_record(record)
    await gateway.submit_session_record(record)
    assert len(initialized_db_manager.get_session_records()) == 2


@pytest.mark.asyncio
async def test_write_failure_propagates(db_path_file):
    with FlashcardDatabase(db_path_file):
        pass
    with FlashcardDatabase(db_path_file, read_only=True) as ro:
        gateway = DatabaseSessionGateway(ro)
        with pytest.raises(DatabaseConnectionError):
            await gateway.submit_session_record(
                SessionRecord(user_id="u1", deck_id="d1", score=0, duration_seconds=0)
            )
