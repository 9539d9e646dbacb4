"""Reusable UI components for the terminal host."""
from __future__ import annotations

from typing import TYPE_CHECKING

import questionary
from questionary import Choice, Separator
from rich.panel import Panel
from rich.table import Table

from ..navigation import NavigationOutcome, NavigationResult

if TYPE_CHECKING:
    from rich.console import Console


# ═══════════════════════════════════════════════════════════════════════════════
# BRAND STYLING
# ═══════════════════════════════════════════════════════════════════════════════

BRAND_STYLE = questionary.Style([
    ("qmark", "fg:#00b4d8 bold"),         # Cyan accent
    ("question", "bold"),
    ("answer", "fg:#90e0ef bold"),         # Light cyan for answers
    ("highlighted", "fg:#00b4d8 bold"),    # Highlighted item
    ("pointer", "fg:#00b4d8 bold"),        # Arrow pointer
    ("selected", "fg:#90e0ef"),            # Selected item
])


def nav_choices(include_separator: bool = True) -> list:
    """Standard Back/Quit choices appended to every walkthrough menu."""
    choices: list = []
    if include_separator:
        choices.append(Separator())
    choices.extend([
        Choice(title="← Back", value="back"),
        Choice(title="Quit", value="quit"),
    ])
    return choices


def money(amount: float) -> str:
    return f"${amount:,.2f}"


# ═══════════════════════════════════════════════════════════════════════════════
# NAVIGATION OUTCOMES
# ═══════════════════════════════════════════════════════════════════════════════

def render_failure(console: Console, outcome: NavigationOutcome) -> None:
    """Render a failed navigation with retry / alternate path / reference code.

    Args:
        console: Rich Console for output
        outcome: The FAILED_CRITICAL outcome to explain
    """
    content = "[bold red]✗ We couldn't open that step[/bold red]\n\n"
    content += f"[yellow]Cause:[/yellow] {outcome.reason or 'unknown'}\n"
    for attempt in outcome.attempts:
        content += f"  [dim]{attempt.strategy}: {attempt.reason}[/dim]\n"
    content += "\n[bold]What you can do[/bold]\n"
    content += "  1. Retry the step\n"
    content += "  2. Go back to your cart and continue from there\n"
    if outcome.reference_code:
        content += f"\n[dim]Reference code for support:[/dim] [bold]{outcome.reference_code}[/bold]"

    console.print(Panel.fit(content, border_style="red", title="Navigation Error"))
    console.print()


def render_data_preserved(console: Console, outcome: NavigationOutcome) -> None:
    """Tell the user their data is safe although the screen did not change.

    Args:
        console: Rich Console for output
        outcome: The DATA_PRESERVED outcome
    """
    content = "[bold yellow]Your order details are saved.[/bold yellow]\n\n"
    content += "The next step could not be displayed right now, but nothing you entered was lost.\n"
    if outcome.session_id:
        content += f"\n[dim]Resume with session[/dim] [bold]{outcome.session_id}[/bold]"

    console.print(Panel.fit(content, border_style="yellow", title="Data Preserved"))
    console.print()


def render_outcome(console: Console, outcome: NavigationOutcome) -> None:
    """One line for successes, the matching panel otherwise."""
    result = outcome.result
    if result.is_success():
        style = "green" if result is NavigationResult.SUCCESS else "yellow"
        console.print(
            f"[{style}]✓ {outcome.request.target_screen}: {result.value}[/{style}]"
            f" [dim]via {outcome.strategy}[/dim]"
        )
    elif result is NavigationResult.DATA_PRESERVED:
        render_data_preserved(console, outcome)
    elif result is NavigationResult.FAILED_CRITICAL:
        render_failure(console, outcome)
    else:
        console.print(f"[dim]{result.description}[/dim]")


def render_stats_table(console: Console, stats: dict[str, object], title: str = "Navigation") -> None:
    """Render a two-column statistics table.

    Args:
        console: Rich Console for output
        stats: Statistics to display
        title: Table title
    """
    table = Table(title=f"[bold]{title}[/bold]", show_header=False)
    table.add_column("Metric", style="bold", no_wrap=True)
    table.add_column("Value", style="cyan", justify="right")

    for key, value in stats.items():
        if isinstance(value, int) and not isinstance(value, bool):
            table.add_row(key, f"{value:,}")
        else:
            table.add_row(key, "-" if value is None else str(value))

    console.print(table)
    console.print()
