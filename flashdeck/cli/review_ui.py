"""
Command-line interface for playing a deck.
"""

import asyncio
import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from flashdeck.cli._history_logic import format_duration
from flashdeck.models import Media, ResolvedMedia
from flashdeck.review_manager import ReviewSessionManager
from flashdeck.session_recorder import RecordState

logger = logging.getLogger(__name__)
console = Console()


async def _ask(prompt: str) -> str:
    # Off the event loop so background record writes keep running.
    return await asyncio.to_thread(console.input, prompt)


async def _get_judgment() -> bool:
    """
    Prompt until the user answers y (known) or n (still learning).

    Returns:
        bool: True if the card was known.
    """
    while True:
        answer = (await _ask("[bold]Did you know it? (y/n): [/bold]")).strip().lower()
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        console.print("[bold red]Please answer y or n.[/bold red]")


def _media_line(media: Optional[Media]) -> str:
    if not isinstance(media, ResolvedMedia):
        return ""
    if media.is_expired():
        return "\n\n[dim]Image link expired; reopen the deck to refresh it.[/dim]"
    return f"\n\n[dim]Image: {escape(media.url)}[/dim]"


def _display_side(text: str, media: Optional[Media], title: str, style: str) -> None:
    console.print(Panel(escape(text) + _media_line(media), title=title, border_style=style))


async def _play_pass(manager: ReviewSessionManager) -> None:
    session = manager.session
    total = len(session.cards)
    label = " (focus)" if session.is_focused else ""
    while (card := session.current_card) is not None:
        index = session.index
        console.rule(f"[bold]Card {index + 1} of {total}{label}[/bold]")
        _display_side(card.front, card.front_media, "Front", "green")
        await _ask("[italic]Press Enter to reveal...[/italic]")
        manager.reveal()
        _display_side(card.back, card.back_media, "Back", "blue")
        is_known = await _get_judgment()
        manager.answer(is_known, at_index=index)
        console.print("")


def _display_results(manager: ReviewSessionManager) -> None:
    results = manager.get_results()
    title = "Focus results" if results["is_focused"] else "Results"
    console.print(
        Panel(
            f"Score: [bold]{results['score']}%[/bold] "
            f"({results['known']}/{results['total']} known)\n"
            f"Time: {format_duration(results['duration_seconds'])}",
            title=title,
            border_style="cyan",
        )
    )
    if results["state"] == RecordState.SUBMITTED.value:
        console.print("[green]Saved to history.[/green]")
    elif results["notice"]:
        console.print(
            f"[yellow]Could not save this result: {escape(results['notice'])}[/yellow]"
        )


def _menu(manager: ReviewSessionManager) -> dict:
    session = manager.session
    options = {}
    if session.known_count < len(session.cards):
        options["f"] = "focus on missed cards"
    if session.is_focused:
        options["r"] = "restore the full deck"
    if manager.recorder.status(session) == RecordState.SUBMIT_FAILED:
        options["s"] = "retry saving"
    options["q"] = "quit"
    return options


async def _prompt_next_action(manager: ReviewSessionManager) -> str:
    options = _menu(manager)
    prompt = ", ".join(f"[bold]{key}[/bold]={text}" for key, text in options.items())
    while True:
        choice = (await _ask(f"{prompt}: ")).strip().lower()
        if choice in options:
            return choice
        console.print("[bold red]Unknown option.[/bold red]")


async def start_review_flow(manager: ReviewSessionManager) -> None:
    """
    Manages the command-line play loop: passes, results, focus and restore.

    Args:
        manager: An instance of ReviewSessionManager.
    """
    console.print("[bold cyan]Loading deck...[/bold cyan]")
    session = await manager.open_deck()
    if manager.load_error is not None:
        console.print(f"[bold red]Could not load deck:[/bold red] {escape(str(manager.load_error))}")
    if not session.cards:
        console.print("[bold yellow]No cards in this deck.[/bold yellow]")
        return

    while True:
        await _play_pass(manager)
        await manager.drain()
        _display_results(manager)

        choice = await _prompt_next_action(manager)
        if choice == "q":
            break
        if choice == "f":
            manager.focus()
        elif choice == "r":
            manager.restore()
        elif choice == "s":
            await manager.retry_submit()

    await manager.drain()
    console.print("[bold cyan]Session finished. Well done![/bold cyan]")
