from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flashdeck.db.database import FlashcardDatabase


def format_duration(seconds: Optional[int]) -> str:
    """
    Format a duration as minutes and zero-padded seconds, e.g. 75 -> "1:15".

    Returns "-" when the duration is unknown.
    """
    if seconds is None:
        return "-"
    total = max(0, int(round(seconds)))
    minutes, rest = divmod(total, 60)
    return f"{minutes}:{rest:02d}"


def build_history_table(rows: List[Dict[str, Any]]) -> Table:
    """One row per session record, newest first, as returned by the database."""
    table = Table(title="Study history")
    table.add_column("When", style="dim")
    table.add_column("Deck", style="cyan")
    table.add_column("Score", style="magenta", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("")
    for row in rows:
        table.add_row(
            row["created_at"].strftime("%Y-%m-%d %H:%M"),
            escape(row.get("deck_title") or row["deck_id"]),
            f"{row['score']}%",
            format_duration(row["duration_seconds"]),
            "[yellow]Focused[/yellow]" if row["is_focused"] else "",
        )
    return table


def build_stats_table(rows: List[Dict[str, Any]]) -> Table:
    table = Table(title="Deck stats")
    table.add_column("Deck", style="cyan")
    table.add_column("Sessions", style="magenta", justify="right")
    table.add_column("Average", justify="right")
    table.add_column("Best", justify="right")
    for row in rows:
        table.add_row(
            escape(row["title"]),
            str(row["sessions"]),
            f"{row['average_score']}%",
            f"{row['best_score']}%",
        )
    return table


def history_logic(
    console: Console, db_path: Path, user_id: Optional[str], limit: int
) -> int:
    """
    Print the study history table.

    Returns:
        int: Number of records shown.
    """
    with FlashcardDatabase(db_path=db_path) as db:
        rows = db.get_session_history(user_id=user_id, limit=limit)
    if not rows:
        console.print(
            "[yellow]No study sessions yet. Play some decks to generate history.[/yellow]"
        )
        return 0
    console.print(build_history_table(rows))
    return len(rows)


def stats_logic(console: Console, db_path: Path, user_id: Optional[str]) -> int:
    with FlashcardDatabase(db_path=db_path) as db:
        rows = db.get_deck_stats(user_id=user_id)
    if not rows:
        console.print("[yellow]No study sessions yet.[/yellow]")
        return 0
    console.print(build_stats_table(rows))
    return len(rows)
