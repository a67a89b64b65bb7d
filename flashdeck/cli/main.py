"""
CLI entry point for flashdeck.
"""

# Standard library imports
import logging
import os
from pathlib import Path
from typing import Optional

# Third-party imports
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Local application imports
from flashdeck.config import settings
from flashdeck.db.database import FlashcardDatabase
from flashdeck.exceptions import DatabaseError, DeckImportError
from flashdeck.importer import import_deck
from flashdeck.cli._history_logic import history_logic, stats_logic
from flashdeck.cli._review_logic import review_logic


console = Console()

app = typer.Typer(
    name="flashdeck",
    help="Flashdeck: play flashcard decks and track your study history.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Helpers for resolving paths (flag, then FLASHDECK_DB, then settings)
# ---------------------------------------------------------------------------


def _resolve_db_path(db: Optional[Path]) -> Path:
    """Resolve db path from CLI flag, FLASHDECK_DB envvar or configured default."""
    if db is not None:
        return db
    env_val = os.environ.get("FLASHDECK_DB")
    if env_val:
        return Path(env_val)
    return settings.db_path


def _resolve_assets_dir(assets_dir: Optional[Path]) -> Path:
    return assets_dir if assets_dir is not None else settings.assets_dir


def _resolve_user(user: Optional[str]) -> str:
    return user or settings.user_id


# Common typer options reused across commands
_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to FLASHDECK_DB, then the configured default.",
    envvar="FLASHDECK_DB",
)

_assets_dir_option = typer.Option(  # noqa: B008
    None,
    "--assets-dir",
    help="Directory where card images are stored.",
)

_user_option = typer.Option(  # noqa: B008
    None,
    "--user",
    help="User id for session records (defaults to FLASHDECK_USER_ID).",
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging."
    ),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


@app.command("import-deck")
def import_deck_command(
    file: Path = typer.Argument(  # noqa: B008
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="YAML deck file to import.",
    ),
    db: Optional[Path] = _db_option,
    assets_dir: Optional[Path] = _assets_dir_option,
):
    """
    Import (or replace) a deck from a YAML file, copying its images into the media store.
    """
    db_path = _resolve_db_path(db)
    try:
        with FlashcardDatabase(db_path=db_path) as db_inst:
            deck, count = import_deck(
                db_inst, file, _resolve_assets_dir(assets_dir)
            )
    except DeckImportError as e:
        console.print(f"[bold red]Import failed:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    console.print(
        f"[bold green]Imported[/bold green] '{escape(deck.title)}' "
        f"([cyan]{escape(deck.deck_id)}[/cyan]) with {count} cards."
    )


# ---------------------------------------------------------------------------
# Decks
# ---------------------------------------------------------------------------


@app.command()
def decks(
    db: Optional[Path] = _db_option,
):
    """List decks with their card counts."""
    db_path = _resolve_db_path(db)
    try:
        with FlashcardDatabase(db_path=db_path) as db_inst:
            summaries = db_inst.get_deck_summaries()
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {escape(str(e))}[/bold]")
        raise typer.Exit(code=1) from e

    if not summaries:
        console.print("[yellow]No decks yet. Use import-deck to add one.[/yellow]")
        return

    table = Table(title="Decks")
    table.add_column("Deck Id", style="cyan")
    table.add_column("Title")
    table.add_column("Cards", style="magenta", justify="right")
    for deck in summaries:
        table.add_row(
            escape(deck["deck_id"]), escape(deck["title"]), str(deck["card_count"])
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Play
# ---------------------------------------------------------------------------


@app.command()
def play(
    deck_id: str = typer.Argument(  # noqa: B008
        ..., help="The id of the deck to play."
    ),
    db: Optional[Path] = _db_option,
    assets_dir: Optional[Path] = _assets_dir_option,
    user: Optional[str] = _user_option,
):
    """Play through a deck, then focus on missed cards or restore the full deck."""
    db_path = _resolve_db_path(db)
    console.print(f"Playing deck: [bold cyan]{escape(deck_id)}[/bold cyan]")
    try:
        load_error = review_logic(
            deck_id=deck_id,
            db_path=db_path,
            user_id=_resolve_user(user),
            assets_dir=_resolve_assets_dir(assets_dir),
            settings=settings,
        )
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {escape(str(e))}[/bold]")
        raise typer.Exit(code=1) from e
    if load_error is not None:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# History & stats
# ---------------------------------------------------------------------------


@app.command()
def history(
    db: Optional[Path] = _db_option,
    user: Optional[str] = _user_option,
    limit: int = typer.Option(
        20, "--limit", "-l", help="Maximum number of sessions to show."
    ),
):
    """Show completed sessions, newest first."""
    db_path = _resolve_db_path(db)
    try:
        history_logic(console, db_path, _resolve_user(user), limit)
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {escape(str(e))}[/bold]")
        raise typer.Exit(code=1) from e


@app.command()
def stats(
    db: Optional[Path] = _db_option,
    user: Optional[str] = _user_option,
):
    """Show sessions, average and best score per deck."""
    db_path = _resolve_db_path(db)
    try:
        stats_logic(console, db_path, _resolve_user(user))
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {escape(str(e))}[/bold]")
        raise typer.Exit(code=1) from e


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application.

    If an unexpected exception occurs, print a bold red error message to the console and exit the process with status code 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
