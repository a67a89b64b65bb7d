# Standard library imports
import re
from pathlib import Path
from unittest.mock import patch

# Third-party imports
import pytest
import yaml
from typer.testing import CliRunner

# Local application imports
from flashdeck.cli.main import app
from flashdeck.db.database import FlashcardDatabase
from flashdeck.models import SessionRecord


runner = CliRunner()


def strip_ansi(text: str) -> str:
    ansi_escape = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
    return ansi_escape.sub("", text)


def normalize_output(text: str) -> str:
    """Strip ANSI codes and collapse whitespace so assertions ignore wrapping."""
    text = strip_ansi(text)
    return re.sub(r"\s+", " ", text).strip()


@pytest.fixture
def db_file(tmp_path) -> Path:
    return tmp_path / "cli.db"


@pytest.fixture
def assets_dir(tmp_path) -> Path:
    return tmp_path / "assets"


@pytest.fixture
def deck_file(tmp_path) -> Path:
    (tmp_path / "wave.png").write_bytes(b"img")
    path = tmp_path / "greetings.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "deck": {"id": "greetings", "title": "Greetings"},
                "cards": [
                    {"front": "hola", "back": "hello", "front_image": "wave.png"},
                    {"front": "adios", "back": "goodbye"},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


def _import(deck_file, db_file, assets_dir):
    return runner.invoke(
        app,
        ["import-deck", str(deck_file), "--db", str(db_file), "--assets-dir", str(assets_dir)],
    )


def test_import_deck(deck_file, db_file, assets_dir):
    result = _import(deck_file, db_file, assets_dir)

    assert result.exit_code == 0, result.output
    assert "Imported 'Greetings' (greetings) with 2 cards." in normalize_output(result.output)
    assert len(list(assets_dir.iterdir())) == 1


def test_import_invalid_deck_fails(tmp_path, db_file, assets_dir):
    bad = tmp_path / "bad.yaml"
    bad.write_text("cards: []\n", encoding="utf-8")
    result = runner.invoke(app, ["import-deck", str(bad), "--db", str(db_file)])
    assert result.exit_code == 1
    assert "Import failed" in normalize_output(result.output)


def test_decks_lists_imported_deck(deck_file, db_file, assets_dir):
    _import(deck_file, db_file, assets_dir)
    result = runner.invoke(app, ["decks", "--db", str(db_file)])
    output = normalize_output(result.output)
    assert result.exit_code == 0
    assert "greetings" in output
    assert "Greetings" in output


def test_decks_empty(db_file):
    result = runner.invoke(app, ["decks", "--db", str(db_file)])
    assert result.exit_code == 0
    assert "No decks yet" in result.output


def test_history_empty(db_file):
    result = runner.invoke(app, ["history", "--db", str(db_file)])
    assert result.exit_code == 0
    assert "No study sessions yet" in normalize_output(result.output)


def test_play_then_focus_records_history(deck_file, db_file, assets_dir):
    _import(deck_file, db_file, assets_dir)
    answers = [
        "", "y",  # card 1: reveal, known
        "", "n",  # card 2: reveal, still learning
        "f",      # focus on the missed card
        "", "n",  # focus card: reveal, still learning
        "q",
    ]
    with patch("rich.console.Console.input", side_effect=answers):
        result = runner.invoke(
            app,
            [
                "play", "greetings",
                "--db", str(db_file),
                "--assets-dir", str(assets_dir),
                "--user", "alice",
            ],
        )

    output = normalize_output(result.output)
    assert result.exit_code == 0, result.output
    assert "Score: 50% (1/2 known)" in output
    assert "Score: 0% (0/1 known)" in output
    assert "Saved to history." in output
    assert "Session finished. Well done!" in output

    with FlashcardDatabase(db_file) as db:
        records = db.get_session_records(user_id="alice")
    assert sorted((r.score, r.is_focused) for r in records) == [(0, True), (50, False)]

    history = runner.invoke(app, ["history", "--db", str(db_file), "--user", "alice"])
    history_output = normalize_output(history.output)
    assert history.exit_code == 0
    assert "Greetings" in history_output
    assert "Focused" in history_output


def test_play_unknown_deck_exits_with_error(db_file):
    result = runner.invoke(app, ["play", "nope", "--db", str(db_file)])
    assert result.exit_code == 1
    assert "Could not load deck" in normalize_output(result.output)


def test_stats(deck_file, db_file, assets_dir):
    _import(deck_file, db_file, assets_dir)
    with FlashcardDatabase(db_file) as db:
        for score in (50, 100):
            db.add_session_record(
                SessionRecord(user_id="bob", deck_id="greetings", score=score, duration_seconds=75)
            )

    result = runner.invoke(app, ["stats", "--db", str(db_file), "--user", "bob"])

    output = normalize_output(result.output)
    assert result.exit_code == 0
    assert "Greetings" in output
    assert "75.0%" in output
    assert "100%" in output


def test_history_uses_envvar_db(deck_file, db_file, assets_dir, monkeypatch):
    _import(deck_file, db_file, assets_dir)
    with FlashcardDatabase(db_file) as db:
        db.add_session_record(
            SessionRecord(user_id="carol", deck_id="greetings", score=80, duration_seconds=75)
        )
    monkeypatch.setenv("FLASHDECK_DB", str(db_file))

    result = runner.invoke(app, ["history", "--user", "carol"])

    output = normalize_output(result.output)
    assert result.exit_code == 0
    assert "80%" in output
    assert "1:15" in output


def test_bracketed_deck_title_is_printed_literally(tmp_path, db_file, assets_dir):
    path = tmp_path / "regex.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "deck": {"id": "regex[1]", "title": "Regex [/] basics"},
                "cards": [{"front": "\\d", "back": "a digit"}],
            }
        ),
        encoding="utf-8",
    )
    imported = _import(path, db_file, assets_dir)
    assert imported.exit_code == 0, imported.output
    assert "Imported 'Regex [/] basics' (regex[1]) with 1 cards." in normalize_output(
        imported.output
    )

    listed = runner.invoke(app, ["decks", "--db", str(db_file)])
    assert listed.exit_code == 0, listed.output
    assert "Regex [/] basics" in normalize_output(listed.output)
    assert "regex[1]" in normalize_output(listed.output)

    with FlashcardDatabase(db_file) as db:
        db.add_session_record(
            SessionRecord(user_id="dana", deck_id="regex[1]", score=100, duration_seconds=5)
        )

    history = runner.invoke(app, ["history", "--db", str(db_file), "--user", "dana"])
    assert history.exit_code == 0, history.output
    assert "Regex [/] basics" in normalize_output(history.output)

    stats = runner.invoke(app, ["stats", "--db", str(db_file), "--user", "dana"])
    assert stats.exit_code == 0, stats.output
    assert "Regex [/] basics" in normalize_output(stats.output)
